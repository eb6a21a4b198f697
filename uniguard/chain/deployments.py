"""Contract ABI and deployment address loading.

ABIs live in ``<abi_dir>/<Name>.json`` either as a bare list or as a
Foundry/Hardhat artifact with an ``abi`` key. Deployment files live in
``<deployments_dir>/<group>/<chain_id>.json`` with an ``addresses`` map.
Any failure here is a startup error.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import bittensor as bt
from web3 import Web3

from uniguard.config import ConfigError


def _read_json(path: Path) -> Any:
    try:
        with open(path, encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ConfigError(f"file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"invalid JSON in {path}: {e}") from e


def load_abi(abi_dir: str | Path, name: str) -> list[dict[str, Any]]:
    """Load a contract ABI by name."""
    path = Path(abi_dir) / f"{name}.json"
    data = _read_json(path)
    if isinstance(data, dict):
        data = data.get("abi")
    if not isinstance(data, list):
        raise ConfigError(f"no ABI found in {path}")
    return data


def load_deployment(deployments_dir: str | Path, group: str, chain_id: int) -> dict[str, str]:
    """Load the ``addresses`` map of a deployment file."""
    path = Path(deployments_dir) / group / f"{chain_id}.json"
    data = _read_json(path)
    addresses = data.get("addresses") if isinstance(data, dict) else None
    if not isinstance(addresses, dict):
        raise ConfigError(f"no addresses in deployment file {path}")
    bt.logging.debug({"deployment_loaded": {"group": group, "chain_id": chain_id, "addresses": addresses}})
    return addresses


def _require_address(addresses: dict[str, str], key: str, source: str) -> str:
    value = addresses.get(key)
    if not value or not Web3.is_address(value):
        raise ConfigError(f"{key} address not found in {source} (available: {sorted(addresses)})")
    return Web3.to_checksum_address(value)


@dataclass(frozen=True)
class AVSDeployment:
    """Addresses the EigenLayer metrics operator talks to."""

    service_manager: str
    stake_registry: str
    delegation_manager: str
    avs_directory: str

    @classmethod
    def load(cls, deployments_dir: str | Path, chain_id: int) -> AVSDeployment:
        avs = load_deployment(deployments_dir, "hello-world", chain_id)
        core = load_deployment(deployments_dir, "core", chain_id)
        return cls(
            service_manager=_require_address(avs, "uniGuardServiceManager", "hello-world deployment"),
            stake_registry=_require_address(avs, "stakeRegistry", "hello-world deployment"),
            delegation_manager=_require_address(core, "delegation", "core deployment"),
            avs_directory=_require_address(core, "avsDirectory", "core deployment"),
        )


__all__ = ["AVSDeployment", "load_abi", "load_deployment"]
