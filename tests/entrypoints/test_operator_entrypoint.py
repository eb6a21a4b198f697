"""Tests for operator wiring and startup failures."""

import json

import pytest

from uniguard.chain import ChainClient
from uniguard.config import ConfigError, OperatorConfig
from uniguard.entrypoints.operator import build_runtime, main
from uniguard.operator.handlers import MetricsTaskHandler, RiskTaskHandler
from uniguard.operator.lifecycle import OperatorState
from uniguard.operator.registration import EigenLayerRegistrar, HookRegistryRegistrar

PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
REGISTRY = "0x5037e7747faa78fc0ecf8dfc526dcd19f73076ce"
ABI_NAMES = (
    "HookRegistry",
    "ServiceManager",
    "UniGuardServiceManager",
    "IDelegationManager",
    "IAVSDirectory",
    "ECDSAStakeRegistry",
)


@pytest.fixture
def workspace(tmp_path):
    abi_dir = tmp_path / "abis"
    abi_dir.mkdir()
    for name in ABI_NAMES:
        (abi_dir / f"{name}.json").write_text("[]")

    for group, addresses in (
        ("hello-world", {
            "uniGuardServiceManager": "0x84ea74d481ee0a5332c457a4d796187f6ba67feb",
            "stakeRegistry": "0x9e545e3c0baab3e08cdfd552c960a1050f373042",
        }),
        ("core", {
            "delegation": "0xcf7ed3acca5a467e9e704c703e8d87f634fb0fc9",
            "avsDirectory": "0x5fc8d32690cc91d4c39d9d3abcbd16989f875707",
        }),
    ):
        path = tmp_path / "deployments" / group
        path.mkdir(parents=True)
        (path / "31337.json").write_text(json.dumps({"addresses": addresses}))
    return tmp_path


def _config(workspace, **env) -> OperatorConfig:
    return OperatorConfig.from_env({
        "RPC_URL": "http://127.0.0.1:8545",
        "PRIVATE_KEY": PRIVATE_KEY,
        "ABI_DIR": str(workspace / "abis"),
        "DEPLOYMENTS_DIR": str(workspace / "deployments"),
        **env,
    })


class TestBuildRuntime:

    def test_metrics_mode(self, workspace):
        config = _config(workspace)
        runtime = build_runtime(config, ChainClient(config.rpc_url, PRIVATE_KEY))
        assert runtime.state is OperatorState.STARTING
        assert runtime.handlers == ["metrics"]
        assert isinstance(runtime.registrar, EigenLayerRegistrar)
        assert isinstance(runtime._handlers["NewTaskCreated"], MetricsTaskHandler)
        assert runtime.source.event_names == ["NewTaskCreated"]
        assert runtime.source.poll_interval == 24.0

    def test_risk_mode(self, workspace):
        config = _config(workspace, TASK_TYPE="risk", REGISTRY_ADDRESS=REGISTRY, STAKE_AMOUNT="7")
        runtime = build_runtime(config, ChainClient(config.rpc_url, PRIVATE_KEY))
        assert runtime.handlers == ["risk"]
        assert isinstance(runtime.registrar, HookRegistryRegistrar)
        assert runtime.registrar.stake_amount == 7
        assert isinstance(runtime._handlers["NewRiskTaskCreated"], RiskTaskHandler)
        assert runtime.source.event_names == ["NewRiskTaskCreated"]

    def test_risk_mode_requires_registry(self, workspace):
        config = _config(workspace, TASK_TYPE="risk")
        with pytest.raises(ConfigError, match="registry_address"):
            build_runtime(config, ChainClient(config.rpc_url, PRIVATE_KEY))

    def test_metrics_mode_requires_deployment(self, workspace):
        config = _config(workspace, CHAIN_ID="1")
        with pytest.raises(ConfigError):
            build_runtime(config, ChainClient(config.rpc_url, PRIVATE_KEY))


class TestMain:

    @pytest.fixture(autouse=True)
    def _test_mode(self, monkeypatch):
        monkeypatch.setenv("UNIGUARD_TEST_MODE", "true")

    def test_missing_environment_exits(self, monkeypatch):
        monkeypatch.delenv("RPC_URL", raising=False)
        monkeypatch.delenv("PRIVATE_KEY", raising=False)
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    def test_bad_private_key_exits(self, monkeypatch, workspace):
        monkeypatch.setenv("RPC_URL", "http://127.0.0.1:8545")
        monkeypatch.setenv("PRIVATE_KEY", "0x1234")
        monkeypatch.setenv("ABI_DIR", str(workspace / "abis"))
        monkeypatch.setenv("DEPLOYMENTS_DIR", str(workspace / "deployments"))
        with pytest.raises(SystemExit) as exc_info:
            main([])
        assert exc_info.value.code == 1

    def test_unknown_task_type_rejected(self):
        with pytest.raises(SystemExit) as exc_info:
            main(["--task-type", "weights"])
        assert exc_info.value.code == 2
