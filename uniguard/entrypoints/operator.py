# The MIT License (MIT)
# Copyright © 2025 UniGuard
#
# Permission is hereby granted, free of charge, to any person obtaining a copy of this software and associated
# documentation files (the "Software"), to deal in the Software without restriction, including without limitation
# the rights to use, copy, modify, merge, publish, distribute, sublicense, and/or sell copies of the Software,
# and to permit persons to whom the Software is furnished to do so, subject to the following conditions:
#
# The above copyright notice and this permission notice shall be included in all copies or substantial portions of
# the Software.
#
# THE SOFTWARE IS PROVIDED "AS IS", WITHOUT WARRANTY OF ANY KIND, EXPRESS OR IMPLIED, INCLUDING BUT NOT LIMITED TO
# THE WARRANTIES OF MERCHANTABILITY, FITNESS FOR A PARTICULAR PURPOSE AND NONINFRINGEMENT. IN NO EVENT SHALL
# THE AUTHORS OR COPYRIGHT HOLDERS BE LIABLE FOR ANY CLAIM, DAMAGES OR OTHER LIABILITY, WHETHER IN AN ACTION
# OF CONTRACT, TORT OR OTHERWISE, ARISING FROM, OUT OF OR IN CONNECTION WITH THE SOFTWARE OR THE USE OR OTHER
# DEALINGS IN THE SOFTWARE.

"""Operator entrypoint.

Registers the operator if needed, then listens for service manager tasks
and answers them with signed risk scores until SIGINT/SIGTERM.

Task types:
- metrics (default): EigenLayer deployment from DEPLOYMENTS_DIR,
  ``NewTaskCreated`` tasks named ``metrics_<hook>_<ts>``.
- risk: hook registry at REGISTRY_ADDRESS, ``NewRiskTaskCreated`` tasks.
"""

import argparse
import asyncio
import os
import signal
import sys

import bittensor as bt
from dotenv import load_dotenv

from uniguard import __version__
from uniguard.chain import AVSDeployment, ChainClient, load_abi
from uniguard.config import ConfigError, OperatorConfig
from uniguard.operator.handlers import MetricsTaskHandler, RiskTaskHandler
from uniguard.operator.metrics import StaticMetricsProvider
from uniguard.operator.registration import EigenLayerRegistrar, HookRegistryRegistrar
from uniguard.operator.runtime import OperatorRuntime
from uniguard.operator.source import EventTaskSource
from uniguard.shared.logging import add_logging_args, configure_logging


def build_runtime(config: OperatorConfig, chain: ChainClient) -> OperatorRuntime:
    """Wire contracts, registrar, task source and handler for ``config.task_type``.

    Raises:
        ConfigError: missing addresses, ABIs or deployment files.
    """
    metrics_provider = StaticMetricsProvider()

    if config.task_type == "risk":
        config.require("registry_address")
        registry = chain.contract(config.registry_address, load_abi(config.abi_dir, "HookRegistry"))
        # Single-contract deployments expose respondToTask on the registry itself.
        service_manager_address = config.service_manager_address or config.registry_address
        service_manager = chain.contract(service_manager_address, load_abi(config.abi_dir, "ServiceManager"))
        registrar = HookRegistryRegistrar(chain, registry, stake_amount=config.stake_amount)
        handler = RiskTaskHandler(chain, service_manager, metrics_provider)
    else:
        deployment = AVSDeployment.load(config.deployments_dir, config.chain_id)
        service_manager_address = config.service_manager_address or deployment.service_manager
        service_manager = chain.contract(
            service_manager_address, load_abi(config.abi_dir, "UniGuardServiceManager"),
        )
        registrar = EigenLayerRegistrar(
            chain,
            delegation_manager=chain.contract(
                deployment.delegation_manager, load_abi(config.abi_dir, "IDelegationManager"),
            ),
            avs_directory=chain.contract(deployment.avs_directory, load_abi(config.abi_dir, "IAVSDirectory")),
            stake_registry=chain.contract(
                deployment.stake_registry, load_abi(config.abi_dir, "ECDSAStakeRegistry"),
            ),
            service_manager_address=service_manager_address,
        )
        handler = MetricsTaskHandler(chain, service_manager, metrics_provider)

    bt.logging.info({
        "operator_contracts": {
            "task_type": config.task_type,
            "service_manager": service_manager_address,
            "registry": config.registry_address,
            "vault": config.vault_address,
        }
    })

    source = EventTaskSource(
        chain,
        service_manager,
        event_names=[handler.event_name],
        poll_interval=config.check_interval_seconds,
    )
    return OperatorRuntime(chain=chain, registrar=registrar, source=source, handlers=[handler])


def main(argv: list[str] | None = None) -> None:
    # Load .env if not in test mode
    if os.environ.get("UNIGUARD_TEST_MODE") != "true":
        load_dotenv()

    parser = argparse.ArgumentParser(description="UniGuard AVS operator")
    parser.add_argument("--task-type", choices=["metrics", "risk"], default=None)
    add_logging_args(parser)
    args = parser.parse_args(argv)

    configure_logging(args.log_level)
    bt.logging.info({"operator": "starting", "version": __version__})

    try:
        config = OperatorConfig.from_env(task_type=args.task_type)
        bt.logging.info({"operator_config": config.safe_dump()})
        chain = ChainClient(config.rpc_url, config.private_key.get_secret_value())
        runtime = build_runtime(config, chain)
    except (ConfigError, ValueError) as e:
        bt.logging.error({"operator": "config_error", "error": str(e)})
        sys.exit(1)

    loop = asyncio.new_event_loop()

    def _signal_handler(sig, frame):
        bt.logging.info({"operator": "shutdown_signal_received"})
        runtime.request_stop()

    signal.signal(signal.SIGINT, _signal_handler)
    signal.signal(signal.SIGTERM, _signal_handler)

    exit_code = 0
    try:
        loop.run_until_complete(runtime.run())
    except KeyboardInterrupt:
        bt.logging.info({"operator": "keyboard_interrupt"})
    except Exception as e:
        bt.logging.error({"operator": "fatal", "error": str(e), "state": runtime.state.value})
        exit_code = 1
    finally:
        loop.close()
        bt.logging.info({"operator": "stopped", "state": runtime.state.value})

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
