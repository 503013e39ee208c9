"""
Error taxonomy for peer calls and transaction confirmation.

Two layers:

    - ``PeerError`` is raised by the transport and the peer client when a
      call never produced a usable answer (connection refused, timeout,
      non-200 status). It carries a machine-readable ``error_code`` and a
      ``details`` dict for diagnostics.
    - ``ConfirmationError`` is the value handed to a confirmation's failure
      callback. It is never raised; the tracker resolves every failure
      through its declared failure channel.

Confirmation error codes:
    - SUBMISSION_REJECTED: the peer refused the invocation (or the submit
      call itself failed). No polling was attempted.
    - QUERY_FAILED: a chain height or block query failed while polling.
      The search was abandoned, not retried.
    - CONFIRMATION_TIMEOUT: the peer is healthy but the transaction was not
      observed in the ledger in time (height never grew, or the search
      window was exhausted).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from chainorchestra.client import SubmitResult


class PeerError(Exception):
    """Operational failure talking to a peer.

    Attributes:
        message: Human-readable summary.
        error_code: One of TIMEOUT, CONNECTION_FAILED, HTTP_ERROR, RPC_ERROR,
            INVALID_RESPONSE.
        details: Diagnostic context (url, status_code, body, ...).
    """

    def __init__(
        self,
        message: str,
        *,
        error_code: str = "HTTP_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ConfirmationErrorCode(StrEnum):
    """Why a confirmation failed."""

    SUBMISSION_REJECTED = "SUBMISSION_REJECTED"
    QUERY_FAILED = "QUERY_FAILED"
    CONFIRMATION_TIMEOUT = "CONFIRMATION_TIMEOUT"


@dataclass(frozen=True)
class ConfirmationError:
    """Structured failure delivered to ``on_failed``.

    Attributes:
        code: Failure category.
        detail: Human-readable detail for diagnostics.
        txid: Transaction id, once submission assigned one.
        submission: The accepted submission result, when the failure
            happened after submission (timeout, query failure while
            polling). For a rejected submission this is the rejecting
            result, if the peer answered at all.
    """

    code: ConfirmationErrorCode
    detail: str | None = None
    txid: str | None = None
    submission: SubmitResult | None = None

    def to_dict(self) -> dict[str, object]:
        result: dict[str, object] = {"code": str(self.code)}
        if self.detail is not None:
            result["detail"] = self.detail
        if self.txid is not None:
            result["txid"] = self.txid
        return result


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def classify_submission_error(
    detail: str | None = None,
    submission: SubmitResult | None = None,
) -> ConfirmationError:
    """Build the error for a submission the peer refused or never answered."""
    return ConfirmationError(
        code=ConfirmationErrorCode.SUBMISSION_REJECTED,
        detail=detail,
        submission=submission,
    )


def classify_query_error(
    exc: BaseException,
    *,
    txid: str | None = None,
    submission: SubmitResult | None = None,
) -> ConfirmationError:
    """Build the error for a failed height or block query.

    Any exception counts: the query interface is free to raise whatever its
    transport raises, and a failed query is fatal to the request.
    """
    return ConfirmationError(
        code=ConfirmationErrorCode.QUERY_FAILED,
        detail=f"ledger query failed: {exc}",
        txid=txid,
        submission=submission,
    )


def classify_timeout(
    detail: str,
    *,
    txid: str | None = None,
    submission: SubmitResult | None = None,
) -> ConfirmationError:
    """Build the error for a transaction not observed in time."""
    return ConfirmationError(
        code=ConfirmationErrorCode.CONFIRMATION_TIMEOUT,
        detail=detail,
        txid=txid,
        submission=submission,
    )
