"""Periodically create metrics tasks for a hook.

Calls ``createNewTask("metrics_<hook>_<unixMillis>")`` on the service
manager every CHECK_INTERVAL milliseconds (default 24s) so operators have
something to answer. Meant for local devnets.

Usage:
    uniguard-create-metrics-tasks 0x5037e7747faa78fc0ecf8dfc526dcd19f73076ce
    uniguard-create-metrics-tasks <hook-address> --interval-ms 12000
"""

import argparse
import asyncio
import os
import signal
import sys
from typing import Any

import bittensor as bt
from dotenv import load_dotenv
from web3 import Web3

from uniguard.chain import AVSDeployment, ChainClient, load_abi
from uniguard.config import ConfigError, OperatorConfig
from uniguard.operator.tasks import generate_metrics_task_name
from uniguard.shared.logging import add_logging_args, configure_logging


class MetricsTaskCreator:
    """Fixed-interval task creation with explicit cancellation."""

    def __init__(self, chain: Any, service_manager: Any, hook_address: str, interval: float):
        self.chain = chain
        self.service_manager = service_manager
        self.hook_address = Web3.to_checksum_address(hook_address)
        self.interval = interval
        self._stop = asyncio.Event()

    async def create_task(self) -> str | None:
        """Create one task. Failures are logged, not raised."""
        task_name = generate_metrics_task_name(self.hook_address)
        try:
            receipt = await self.chain.transact(self.service_manager, "createNewTask", task_name)
        except Exception as e:
            bt.logging.error({"metrics_task_creator": {"event": "create_failed", "error": str(e)}})
            return None

        bt.logging.info({
            "metrics_task_creator": {
                "event": "task_created",
                "hook": self.hook_address,
                "task_name": task_name,
                "tx_hash": Web3.to_hex(receipt["transactionHash"]),
            }
        })
        return task_name

    async def run(self) -> None:
        bt.logging.info({
            "metrics_task_creator": {"event": "starting", "hook": self.hook_address, "interval": self.interval}
        })
        while not self._stop.is_set():
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=self.interval)
                break
            except asyncio.TimeoutError:
                pass
            await self.create_task()
        bt.logging.info({"metrics_task_creator": {"event": "stopped"}})

    def request_stop(self) -> None:
        self._stop.set()


def main(argv: list[str] | None = None) -> None:
    if os.environ.get("UNIGUARD_TEST_MODE") != "true":
        load_dotenv()

    parser = argparse.ArgumentParser(description="Create UniGuard metrics tasks on an interval")
    parser.add_argument("hook_address", nargs="?", help="Hook contract address")
    parser.add_argument("--interval-ms", type=int, default=None, help="Overrides CHECK_INTERVAL")
    add_logging_args(parser)
    args = parser.parse_args(argv)

    configure_logging(args.log_level)

    if not args.hook_address:
        print("Usage: uniguard-create-metrics-tasks <hook-address>", file=sys.stderr)
        sys.exit(1)
    if not Web3.is_address(args.hook_address):
        bt.logging.error({"metrics_task_creator": "invalid hook address", "hook": args.hook_address})
        sys.exit(1)

    try:
        config = OperatorConfig.from_env(check_interval_ms=args.interval_ms)
        chain = ChainClient(config.rpc_url, config.private_key.get_secret_value())
        service_manager_address = (
            config.service_manager_address
            or AVSDeployment.load(config.deployments_dir, config.chain_id).service_manager
        )
        service_manager = chain.contract(
            service_manager_address, load_abi(config.abi_dir, "UniGuardServiceManager"),
        )
    except (ConfigError, ValueError) as e:
        bt.logging.error({"metrics_task_creator": "config_error", "error": str(e)})
        sys.exit(1)

    creator = MetricsTaskCreator(
        chain, service_manager, args.hook_address, interval=config.check_interval_seconds,
    )

    loop = asyncio.new_event_loop()

    def _signal_handler(sig, frame):
        loop.call_soon_threadsafe(creator.request_stop)

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    try:
        loop.run_until_complete(creator.run())
    finally:
        loop.close()


if __name__ == "__main__":
    main()
