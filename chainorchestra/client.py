"""
Ledger client protocol — the network boundary of the confirmation tracker.

Defines the interface the tracker depends on, not a concrete
implementation. This keeps the tracker testable and keeps HTTP out of the
confirmation algorithm.

Concrete implementations:
    - PeerClient (REST/JSON-RPC against a peer)
    - FakeLedger (tests)

The protocol has three methods:
    - submit(params) → SubmitResult
    - query_height() → int
    - query_block(index) → Block

``submit`` returns a boring frozen dataclass: a peer refusing the
invocation is an expected outcome and is captured in the result. The two
query methods raise on failure; the tracker treats any raised exception as
a failed query.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


# =========================================================================
# Ledger types
# =========================================================================


@dataclass(frozen=True)
class TxRecord:
    """One transaction as recorded in a block.

    Attributes:
        txid: Transaction identifier assigned at submission.
        payload: The raw record as returned by the peer.
    """

    txid: str
    payload: dict[str, Any] = field(default_factory=dict, compare=False)


@dataclass(frozen=True)
class Block:
    """A committed block.

    Attributes:
        index: Position in the chain (0-based, dense).
        transactions: Records in ledger order. Empty for blocks without
            transactions.
    """

    index: int
    transactions: tuple[TxRecord, ...] = ()

    def tx_index(self, txid: str) -> int:
        """Position of ``txid`` in this block, or -1 if absent."""
        for i, record in enumerate(self.transactions):
            if record.txid == txid:
                return i
        return -1

    def contains(self, txid: str) -> bool:
        return self.tx_index(txid) >= 0


@dataclass(frozen=True)
class ChainInfo:
    """Chain summary as reported by the peer.

    Attributes:
        height: Number of committed blocks.
        current_block_hash: Hash of the newest block, if reported.
        previous_block_hash: Hash of the block before it, if reported.
    """

    height: int
    current_block_hash: str | None = None
    previous_block_hash: str | None = None


# =========================================================================
# Result types
# =========================================================================


@dataclass(frozen=True)
class SubmitResult:
    """Result of submitting a transaction invocation.

    Attributes:
        accepted: Whether the peer accepted the invocation. True does NOT
            mean committed; confirmation decides that.
        txid: Transaction identifier assigned by the peer. None when the
            invocation was refused.
        payload: The raw JSON-RPC response, handed back verbatim to the
            caller on confirmation.
        error_code: Machine-readable error category when accepted is False.
        detail: Human-readable detail for diagnostics.
    """

    accepted: bool
    txid: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    error_code: str | None = None
    detail: str | None = None


@dataclass(frozen=True)
class RpcResult:
    """Result of a deploy or query JSON-RPC call.

    Attributes:
        ok: True if the response carried a result rather than an error.
        message: ``result.message``: the deployed chaincode name for a
            deploy, the query value for a query.
        payload: The raw JSON-RPC response.
        error_code: Machine-readable error category when ok is False.
        detail: Human-readable detail for diagnostics.
    """

    ok: bool
    message: str | None = None
    payload: dict[str, Any] = field(default_factory=dict)
    error_code: str | None = None
    detail: str | None = None


# =========================================================================
# Protocol
# =========================================================================


@runtime_checkable
class LedgerClient(Protocol):
    """Interface for the peer operations the tracker needs.

    Methods are async because network I/O is inherently asynchronous.
    Implementations may be called concurrently by independent
    confirmations; one confirmation never overlaps its own calls.
    """

    async def submit(self, params: Any) -> SubmitResult:
        """Submit a transaction invocation.

        Args:
            params: Opaque invocation parameters, forwarded verbatim.

        Returns:
            SubmitResult. A refused invocation is reported with
            ``accepted=False`` rather than raised.
        """
        ...

    async def query_height(self) -> int:
        """Return the current number of committed blocks.

        Raises:
            Exception: If the query fails.
        """
        ...

    async def query_block(self, index: int) -> Block:
        """Return the block at ``index``.

        Raises:
            Exception: If the query fails.
        """
        ...
