"""
Chaincode requests — the JSON-RPC payloads sent to ``/chaincode``.

A request is one of three kinds, each a plain tagged value:

    - DEPLOY: install chaincode from a source path; ctor function "init".
    - QUERY: read-only call against deployed chaincode.
    - INVOKE: state-changing transaction; the peer answers with a txid
      that still has to be confirmed against the ledger.

Payload shape (JSON-RPC 2.0):

    {
        "jsonrpc": "2.0",
        "method": "deploy" | "query" | "invoke",
        "params": {
            "type": 1,
            "chaincodeID": {"path": ...} | {"name": ...},
            "ctorMsg": {"function": ..., "args": [...]},
            "attributes": [...],
            "secureContext": "<user>"        # only when set
        },
        "id": <n>
    }

Pure module: no I/O.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

JSONRPC_VERSION = "2.0"

# Chaincode language type sent in params.type (1 == GOLANG).
CHAINCODE_TYPE_GOLANG = 1

_ID_TYPES = frozenset({"path", "name"})

# JSON-RPC request ID counter (simple, no thread-safety needed for async)
_REQUEST_ID = 0


def _next_request_id() -> int:
    global _REQUEST_ID
    _REQUEST_ID += 1
    return _REQUEST_ID


class RequestKind(StrEnum):
    """The JSON-RPC method of a chaincode request."""

    DEPLOY = "deploy"
    QUERY = "query"
    INVOKE = "invoke"

    @property
    def default_function(self) -> str:
        return _DEFAULT_FUNCTIONS[self]


_DEFAULT_FUNCTIONS: dict[RequestKind, str] = {
    RequestKind.DEPLOY: "init",
    RequestKind.QUERY: "query",
    RequestKind.INVOKE: "invoke",
}


@dataclass(frozen=True)
class ChaincodeID:
    """Identifies chaincode either by source path or by deployed name."""

    id_type: str
    value: str

    def __post_init__(self) -> None:
        if self.id_type not in _ID_TYPES:
            raise ValueError(
                f"chaincode id_type must be 'path' or 'name', got: {self.id_type!r}"
            )
        if not self.value:
            raise ValueError("chaincode id value must be non-empty")

    @classmethod
    def from_path(cls, path: str) -> ChaincodeID:
        return cls("path", path)

    @classmethod
    def from_name(cls, name: str) -> ChaincodeID:
        return cls("name", name)

    def to_dict(self) -> dict[str, str]:
        return {self.id_type: self.value}


@dataclass(frozen=True)
class InvokeParams:
    """Parameters of a transaction invocation.

    Opaque to the confirmation tracker, which forwards them verbatim to
    ``submit``.
    """

    function: str = RequestKind.INVOKE.default_function
    args: tuple[str, ...] = ()

    @classmethod
    def of(cls, function: str, args: Sequence[str] = ()) -> InvokeParams:
        return cls(function=function, args=tuple(args))


@dataclass(frozen=True)
class ChaincodeRequest:
    """A chaincode call, tagged by kind.

    Attributes:
        kind: Which JSON-RPC method to call.
        function: ctorMsg function name. Defaults to the kind's default.
        args: ctorMsg arguments.
        chaincode_id: Target chaincode. Empty dict on the wire if unset.
        secure_context: User on whose behalf the call is made.
        attributes: Attribute names requested for the transaction certificate.
    """

    kind: RequestKind
    function: str | None = None
    args: tuple[str, ...] = ()
    chaincode_id: ChaincodeID | None = None
    secure_context: str | None = None
    attributes: tuple[str, ...] = ()

    @property
    def ctor_function(self) -> str:
        return self.function if self.function is not None else self.kind.default_function

    def to_params(self) -> dict[str, Any]:
        params: dict[str, Any] = {
            "type": CHAINCODE_TYPE_GOLANG,
            "chaincodeID": self.chaincode_id.to_dict() if self.chaincode_id else {},
            "ctorMsg": {
                "function": self.ctor_function,
                "args": list(self.args),
            },
            "attributes": list(self.attributes),
        }
        if self.secure_context:
            params["secureContext"] = self.secure_context
        return params

    def to_jsonrpc(self, request_id: int | None = None) -> dict[str, Any]:
        """Build the JSON-RPC 2.0 envelope for this request."""
        return {
            "jsonrpc": JSONRPC_VERSION,
            "method": str(self.kind),
            "params": self.to_params(),
            "id": request_id if request_id is not None else _next_request_id(),
        }
