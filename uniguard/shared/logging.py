"""Logging setup shared by the entrypoints.

All modules log through ``bt.logging`` with dict payloads keyed by
component; this only selects the verbosity and quiets duplicate output.
"""

from __future__ import annotations

import argparse
import logging as std_logging

import bittensor as bt

LOG_LEVELS = ("trace", "debug", "info", "warning")


def add_logging_args(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default="info",
        help="Console log verbosity.",
    )


def configure_logging(level: str = "info") -> None:
    if level == "trace":
        bt.logging.set_trace(True)
    elif level == "debug":
        bt.logging.set_debug(True)
    elif level == "warning":
        bt.logging.set_warning(True)
    else:
        bt.logging.set_info(True)

    # bittensor has its own console handler; don't also print via root.
    std_logging.getLogger("bittensor").propagate = False
    # web3 request logging is far too chatty at debug.
    std_logging.getLogger("web3").setLevel(std_logging.WARNING)


__all__ = ["LOG_LEVELS", "add_logging_args", "configure_logging"]
