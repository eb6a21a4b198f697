"""Async EVM chain client.

Thin wrapper over ``web3.AsyncWeb3`` and a local ``eth_account`` signer.
Exposes only what the operator needs: contract calls, signed transactions
with receipt waiting, event log queries and message signing.
"""

from __future__ import annotations

import asyncio
from typing import Any

import bittensor as bt
from eth_account import Account
from eth_account.messages import encode_defunct
from eth_account.signers.local import LocalAccount
from web3 import AsyncWeb3, Web3


class ChainError(Exception):
    """A chain interaction failed."""


class TransactionFailedError(ChainError):
    """Transaction was mined but reverted."""

    def __init__(self, method: str, tx_hash: str):
        super().__init__(f"transaction {tx_hash} for {method} reverted")
        self.method = method
        self.tx_hash = tx_hash


class ChainClient:
    """RPC connection plus the operator's wallet."""

    def __init__(
        self,
        rpc_url: str,
        private_key: str,
        w3: AsyncWeb3 | None = None,
        receipt_timeout: float = 120.0,
    ):
        self.rpc_url = rpc_url
        self.w3 = w3 or AsyncWeb3(AsyncWeb3.AsyncHTTPProvider(rpc_url))
        self.account: LocalAccount = Account.from_key(private_key)
        self._receipt_timeout = receipt_timeout
        # One writer at a time so pending nonces never collide.
        self._tx_lock = asyncio.Lock()

    @property
    def address(self) -> str:
        return self.account.address

    # -- Reads --

    def contract(self, address: str, abi: list[dict[str, Any]]) -> Any:
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def call(self, contract: Any, method: str, *args: Any) -> Any:
        fn = getattr(contract.functions, method)
        return await fn(*args).call()

    async def block_number(self) -> int:
        return await self.w3.eth.block_number

    async def get_block(self, number: int | str = "latest") -> Any:
        return await self.w3.eth.get_block(number)

    async def get_logs(
        self,
        contract: Any,
        event_name: str,
        from_block: int,
        to_block: int,
    ) -> list[Any]:
        event = getattr(contract.events, event_name)
        return list(await event().get_logs(from_block=from_block, to_block=to_block))

    # -- Writes --

    async def transact(
        self,
        contract: Any,
        method: str,
        *args: Any,
        value: int = 0,
        gas: int | None = None,
    ) -> Any:
        """Build, sign and send a transaction, then wait for its receipt.

        Raises:
            TransactionFailedError: the receipt status is 0.
        """
        fn = getattr(contract.functions, method)(*args)
        async with self._tx_lock:
            params: dict[str, Any] = {
                "from": self.address,
                "value": value,
                "nonce": await self.w3.eth.get_transaction_count(self.address, "pending"),
            }
            if gas is not None:
                params["gas"] = gas
            tx = await fn.build_transaction(params)
            signed = self.account.sign_transaction(tx)
            tx_hash = await self.w3.eth.send_raw_transaction(signed.raw_transaction)

        bt.logging.debug({"chain_client": {"event": "tx_sent", "method": method, "tx_hash": Web3.to_hex(tx_hash)}})
        receipt = await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=self._receipt_timeout)
        if receipt["status"] != 1:
            raise TransactionFailedError(method, Web3.to_hex(tx_hash))
        return receipt

    # -- Signing --

    def sign_message(self, digest: bytes) -> str:
        """EIP-191 personal-sign over raw digest bytes. Returns 0x-hex."""
        signed = self.account.sign_message(encode_defunct(primitive=digest))
        return Web3.to_hex(signed.signature)

    def sign_hash(self, digest: bytes) -> str:
        """Sign a 32-byte hash directly, without the EIP-191 prefix."""
        signed = self.account.unsafe_sign_hash(digest)
        return Web3.to_hex(signed.signature)


__all__ = ["ChainClient", "ChainError", "TransactionFailedError"]
