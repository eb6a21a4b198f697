"""EVM chain access for the operator.

Wraps web3.py / eth-account behind a small async client, plus ABI and
deployment loading and the digest formats the service manager verifies.
"""

from .client import ChainClient, ChainError, TransactionFailedError
from .deployments import AVSDeployment, load_abi, load_deployment
from .signing import (
    encode_signed_task,
    metrics_task_digest,
    recover_signer,
    risk_task_digest,
    verify_signature,
)

__all__ = [
    "AVSDeployment",
    "ChainClient",
    "ChainError",
    "TransactionFailedError",
    "encode_signed_task",
    "load_abi",
    "load_deployment",
    "metrics_task_digest",
    "recover_signer",
    "risk_task_digest",
    "verify_signature",
]
