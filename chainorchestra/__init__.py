"""
chainorchestra — Hyperledger peer REST client with transaction confirmation.

Public API:

    Confirmation (the core):
        - ``ConfirmationTracker`` — submit, then poll the ledger until the
          transaction is found or the wait budget runs out.
        - ``ConfirmationOutcome``, ``ConfirmationStatus``,
          ``ConfirmationState``, ``ConfirmationRequest``.

    Peer client:
        - ``PeerClient`` — deploy / query / invoke, chain and block queries,
          registrar login/logout.
        - ``ChaincodeRequest``, ``ChaincodeID``, ``InvokeParams``,
          ``RequestKind`` — JSON-RPC payload building.

    Protocols (for dependency injection):
        - ``LedgerClient`` — what the tracker needs from a peer.
        - ``PeerTransport`` — HTTP seam; ``HttpxTransport`` is the default.

    Result types:
        - ``SubmitResult``, ``RpcResult``, ``Block``, ``TxRecord``, ``ChainInfo``.

    Errors:
        - ``PeerError`` — raised for transport/peer failures.
        - ``ConfirmationError``, ``ConfirmationErrorCode`` — delivered to
          failure callbacks.

    Configuration:
        - ``TrackerConfig``, ``PeerConfig``.
"""

from chainorchestra.chaincode import ChaincodeID, ChaincodeRequest, InvokeParams, RequestKind
from chainorchestra.client import (
    Block,
    ChainInfo,
    LedgerClient,
    RpcResult,
    SubmitResult,
    TxRecord,
)
from chainorchestra.config import PeerConfig, TrackerConfig
from chainorchestra.errors import ConfirmationError, ConfirmationErrorCode, PeerError
from chainorchestra.peer import PeerClient
from chainorchestra.tracker import (
    ConfirmationOutcome,
    ConfirmationRequest,
    ConfirmationState,
    ConfirmationStatus,
    ConfirmationTracker,
)
from chainorchestra.transport import HttpxTransport, PeerTransport

__version__ = "0.0.3"

__all__ = [
    "Block",
    "ChainInfo",
    "ChaincodeID",
    "ChaincodeRequest",
    "ConfirmationError",
    "ConfirmationErrorCode",
    "ConfirmationOutcome",
    "ConfirmationRequest",
    "ConfirmationState",
    "ConfirmationStatus",
    "ConfirmationTracker",
    "HttpxTransport",
    "InvokeParams",
    "LedgerClient",
    "PeerClient",
    "PeerConfig",
    "PeerError",
    "PeerTransport",
    "RequestKind",
    "RpcResult",
    "SubmitResult",
    "TrackerConfig",
    "TxRecord",
]
