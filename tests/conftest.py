"""Shared test fixtures.

FakeChain stands in for ChainClient: it records calls and transactions,
serves canned call results and event logs, and signs with a real
eth_account key so signatures can be recovered in assertions.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3

from uniguard.operator.risk.models import PoolMetrics

TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
HOOK_ADDRESS = "0x5037e7747faa78fc0ecf8dfc526dcd19f73076ce"


class FakeChain:
    """In-memory ChainClient replacement."""

    def __init__(self, private_key: str = TEST_PRIVATE_KEY, block: int = 100):
        self.account = Account.from_key(private_key)
        self.address = self.account.address
        self.block = block
        self.block_timestamp = 1_700_000_000
        self.call_results: dict[str, Any] = {}
        self.transact_errors: dict[str, Exception] = {}
        self.logs: dict[str, list[dict]] = {}
        self.calls: list[tuple[Any, str, tuple]] = []
        self.transactions: list[dict[str, Any]] = []
        self.log_queries: list[tuple[str, int, int]] = []

    async def call(self, contract: Any, method: str, *args: Any) -> Any:
        self.calls.append((contract, method, args))
        result = self.call_results.get(method)
        if isinstance(result, Exception):
            raise result
        return result(*args) if callable(result) else result

    async def transact(self, contract: Any, method: str, *args: Any, value: int = 0, gas: int | None = None) -> Any:
        self.transactions.append({
            "contract": contract, "method": method, "args": args, "value": value, "gas": gas,
        })
        if method in self.transact_errors:
            raise self.transact_errors[method]
        await asyncio.sleep(0)
        return {"status": 1, "blockNumber": self.block, "transactionHash": b"\x11" * 32}

    async def block_number(self) -> int:
        return self.block

    async def get_block(self, number: Any = "latest") -> Any:
        return {"number": number, "timestamp": self.block_timestamp}

    async def get_logs(self, contract: Any, event_name: str, from_block: int, to_block: int) -> list[Any]:
        self.log_queries.append((event_name, from_block, to_block))
        return [
            log for log in self.logs.get(event_name, [])
            if from_block <= log["blockNumber"] <= to_block
        ]

    def sign_message(self, digest: bytes) -> str:
        return Web3.to_hex(self.account.sign_message(encode_defunct(primitive=digest)).signature)

    def sign_hash(self, digest: bytes) -> str:
        return Web3.to_hex(self.account.unsafe_sign_hash(digest).signature)

    def transactions_for(self, method: str) -> list[dict[str, Any]]:
        return [tx for tx in self.transactions if tx["method"] == method]


@pytest.fixture
def fake_chain() -> FakeChain:
    return FakeChain()


@pytest.fixture
def hook_address() -> str:
    return Web3.to_checksum_address(HOOK_ADDRESS)


@pytest.fixture
def baseline_metrics() -> PoolMetrics:
    return PoolMetrics(
        volume_usd=500_000,
        tvl_usd=1_000_000,
        price_impact=0.02,
        swap_count=500,
        failed_tx_count=5,
        gas_used=1_000_000,
    )


@pytest.fixture
def risky_metrics() -> PoolMetrics:
    return PoolMetrics(
        volume_usd=2_000_000,
        tvl_usd=50_000,
        price_impact=0.1,
        swap_count=2000,
        failed_tx_count=200,
        gas_used=0,
    )


async def wait_for(predicate, timeout: float = 2.0, interval: float = 0.01) -> None:
    """Poll ``predicate`` until true or fail after ``timeout`` seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met before timeout")
        await asyncio.sleep(interval)


@pytest.fixture
def wait_until():
    return wait_for
