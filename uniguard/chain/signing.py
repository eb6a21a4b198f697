"""Task response digests and signature helpers.

The service manager recovers the operator address from an EIP-191
signature over a packed keccak digest, so the digest layout here must
match the contract's ``abi.encodePacked`` exactly.
"""

from __future__ import annotations

from eth_abi import encode
from eth_account import Account
from eth_account.messages import encode_defunct
from web3 import Web3


def _as_bytes(value: bytes | str) -> bytes:
    if isinstance(value, str):
        return Web3.to_bytes(hexstr=value)
    return bytes(value)


def risk_task_digest(hook: str, pool_id: bytes | str, checkpoint_id: int, risk_score: int) -> bytes:
    """keccak256(abi.encodePacked(hook, poolId, checkpointId, riskScore))."""
    return bytes(
        Web3.solidity_keccak(
            ["address", "bytes32", "uint256", "uint256"],
            [Web3.to_checksum_address(hook), _as_bytes(pool_id), checkpoint_id, risk_score],
        )
    )


def metrics_task_digest(metrics_json: str, task_name: str, risk_score: int, hook: str) -> bytes:
    """keccak256(abi.encodePacked(metricsJson, taskName, riskScore, hook))."""
    return bytes(
        Web3.solidity_keccak(
            ["string", "string", "uint256", "address"],
            [metrics_json, task_name, risk_score, Web3.to_checksum_address(hook)],
        )
    )


def encode_signed_task(operators: list[str], signatures: list[str], reference_block: int) -> bytes:
    """ABI-encode (address[] operators, bytes[] signatures, uint32 block).

    This is the ECDSA stake registry's signature bundle format.
    """
    return encode(
        ["address[]", "bytes[]", "uint32"],
        [
            [Web3.to_checksum_address(op) for op in operators],
            [_as_bytes(sig) for sig in signatures],
            reference_block,
        ],
    )


def recover_signer(digest: bytes, signature: str) -> str:
    """Address that produced an EIP-191 signature over ``digest``."""
    return Account.recover_message(encode_defunct(primitive=digest), signature=signature)


def verify_signature(digest: bytes, signature: str, expected_address: str) -> bool:
    """True if ``signature`` over ``digest`` was made by ``expected_address``."""
    if not signature:
        return False
    try:
        recovered = recover_signer(digest, signature)
    except Exception:
        return False
    return recovered.lower() == expected_address.lower()


__all__ = [
    "encode_signed_task",
    "metrics_task_digest",
    "recover_signer",
    "risk_task_digest",
    "verify_signature",
]
