"""Operator registration strategies.

The runtime only needs ``is_registered()`` and ``register()``; which
contracts are involved depends on the deployment:

- HookRegistryRegistrar: a single registry contract with a payable
  ``registerOperator()`` that takes the stake as msg.value.
- EigenLayerRegistrar: register with the EigenLayer DelegationManager, then
  with the AVS's ECDSA stake registry using an AVSDirectory digest signed
  by the operator key.
"""

from __future__ import annotations

import os
import time
from typing import Any, Protocol, runtime_checkable

import bittensor as bt
from web3 import Web3

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
REGISTRATION_SIGNATURE_TTL_SECONDS = 3600


@runtime_checkable
class Registrar(Protocol):
    async def is_registered(self) -> bool:
        ...

    async def register(self) -> None:
        ...


class HookRegistryRegistrar:
    """Stake-and-register against a hook registry contract."""

    def __init__(self, chain: Any, registry: Any, stake_amount: int = 0):
        self.chain = chain
        self.registry = registry
        self.stake_amount = stake_amount

    async def is_registered(self) -> bool:
        return bool(await self.chain.call(self.registry, "isOperator", self.chain.address))

    async def register(self) -> None:
        receipt = await self.chain.transact(self.registry, "registerOperator", value=self.stake_amount)
        bt.logging.info({
            "operator_registration": {
                "registry": "hook_registry",
                "status": "registered",
                "stake_amount": self.stake_amount,
                "block": receipt["blockNumber"],
            }
        })


class EigenLayerRegistrar:
    """EigenLayer core + ECDSA stake registry registration."""

    def __init__(
        self,
        chain: Any,
        delegation_manager: Any,
        avs_directory: Any,
        stake_registry: Any,
        service_manager_address: str,
        signature_ttl: int = REGISTRATION_SIGNATURE_TTL_SECONDS,
    ):
        self.chain = chain
        self.delegation_manager = delegation_manager
        self.avs_directory = avs_directory
        self.stake_registry = stake_registry
        self.service_manager_address = service_manager_address
        self.signature_ttl = signature_ttl

    async def is_registered(self) -> bool:
        registered = bool(
            await self.chain.call(self.stake_registry, "operatorRegistered", self.chain.address)
        )
        bt.logging.info({"operator_registration": {"registry": "ecdsa_stake_registry", "registered": registered}})
        return registered

    async def register(self) -> None:
        operator = self.chain.address
        bt.logging.info({"operator_registration": {"step": "start", "operator": operator}})

        operator_details = (operator, ZERO_ADDRESS, 0)
        receipt = await self.chain.transact(
            self.delegation_manager, "registerAsOperator", operator_details, "",
        )
        bt.logging.info({
            "operator_registration": {"step": "core_registered", "block": receipt["blockNumber"]}
        })

        salt = os.urandom(32)
        expiry = int(time.time()) + self.signature_ttl
        digest = await self.chain.call(
            self.avs_directory,
            "calculateOperatorAVSRegistrationDigestHash",
            operator,
            self.service_manager_address,
            salt,
            expiry,
        )
        signature = Web3.to_bytes(hexstr=self.chain.sign_hash(bytes(digest)))

        receipt = await self.chain.transact(
            self.stake_registry,
            "registerOperatorWithSignature",
            (signature, salt, expiry),
            operator,
        )
        bt.logging.info({
            "operator_registration": {"step": "avs_registered", "block": receipt["blockNumber"]}
        })


__all__ = ["EigenLayerRegistrar", "HookRegistryRegistrar", "Registrar"]
