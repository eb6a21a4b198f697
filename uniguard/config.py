"""Operator configuration.

Built once at process start from environment variables (a ``.env`` file is
loaded by the entrypoints) and passed explicitly into everything that needs
it. Immutable after construction.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, ValidationError, field_validator
from web3 import Web3

DEFAULT_CHECK_INTERVAL_MS = 24_000
DEFAULT_CHAIN_ID = 31337

_SENSITIVE_KEYS = ("private_key", "secret", "password", "token")


class ConfigError(Exception):
    """Missing or invalid startup configuration. Fatal."""


def _checksum(value: str | None) -> str | None:
    if value is None or value == "":
        return None
    if not Web3.is_address(value):
        raise ValueError(f"invalid address: {value}")
    return Web3.to_checksum_address(value)


def sanitize_dict(data: Mapping[str, Any]) -> dict[str, Any]:
    """Copy of ``data`` with secret-looking values masked, for logging."""
    out: dict[str, Any] = {}
    for key, value in data.items():
        if isinstance(value, Mapping):
            out[key] = sanitize_dict(value)
        elif any(s in str(key).lower() for s in _SENSITIVE_KEYS):
            out[key] = "***" if value else value
        else:
            out[key] = value
    return out


class OperatorConfig(BaseModel):
    """Settings shared by the operator and the task creation script."""

    model_config = ConfigDict(frozen=True)

    rpc_url: str = Field(min_length=1)
    private_key: SecretStr
    registry_address: str | None = None
    vault_address: str | None = None
    service_manager_address: str | None = None
    stake_amount: int = Field(default=0, ge=0, description="Stake in wei")
    check_interval_ms: int = Field(default=DEFAULT_CHECK_INTERVAL_MS, gt=0)
    chain_id: int = DEFAULT_CHAIN_ID
    abi_dir: str = "abis"
    deployments_dir: str = "deployments"
    task_type: Literal["metrics", "risk"] = "metrics"

    @field_validator("registry_address", "vault_address", "service_manager_address", mode="before")
    @classmethod
    def _validate_address(cls, value: str | None) -> str | None:
        return _checksum(value)

    @property
    def check_interval_seconds(self) -> float:
        return self.check_interval_ms / 1000

    def require(self, *fields: str) -> None:
        """Raise ConfigError unless every named optional field is set."""
        missing = [name for name in fields if getattr(self, name) in (None, "")]
        if missing:
            raise ConfigError(f"missing required configuration: {', '.join(missing)}")

    def safe_dump(self) -> dict[str, Any]:
        return sanitize_dict(self.model_dump(mode="json"))

    @classmethod
    def from_env(
        cls,
        environ: Mapping[str, str] | None = None,
        **overrides: Any,
    ) -> OperatorConfig:
        """Build from environment variables.

        Raises:
            ConfigError: required variables missing or values invalid.
        """
        env = os.environ if environ is None else environ

        values: dict[str, Any] = {
            "rpc_url": env.get("RPC_URL"),
            "private_key": env.get("PRIVATE_KEY"),
            "registry_address": env.get("REGISTRY_ADDRESS"),
            "vault_address": env.get("VAULT_ADDRESS"),
            "service_manager_address": env.get("SERVICE_MANAGER_ADDRESS"),
            "stake_amount": env.get("STAKE_AMOUNT") or 0,
            "check_interval_ms": env.get("CHECK_INTERVAL") or DEFAULT_CHECK_INTERVAL_MS,
            "chain_id": env.get("CHAIN_ID") or DEFAULT_CHAIN_ID,
            "abi_dir": env.get("ABI_DIR") or "abis",
            "deployments_dir": env.get("DEPLOYMENTS_DIR") or "deployments",
            "task_type": (env.get("TASK_TYPE") or "metrics").strip().lower(),
        }
        values.update({k: v for k, v in overrides.items() if v is not None})

        missing = [
            var for var, key in (("RPC_URL", "rpc_url"), ("PRIVATE_KEY", "private_key"))
            if not values.get(key)
        ]
        if missing:
            raise ConfigError(f"missing required environment variables: {', '.join(missing)}")

        try:
            return cls(**values)
        except ValidationError as e:
            raise ConfigError(f"invalid configuration: {e}") from e


__all__ = [
    "DEFAULT_CHAIN_ID",
    "DEFAULT_CHECK_INTERVAL_MS",
    "ConfigError",
    "OperatorConfig",
    "sanitize_dict",
]
