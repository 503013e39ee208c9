"""
Peer REST/JSON-RPC client — the real implementation of LedgerClient.

Talks to a peer's REST interface:

    POST   /chaincode              JSON-RPC deploy / query / invoke
    GET    /chain                  chain height and head hashes
    GET    /chain/blocks/{index}   one block and its transactions
    POST   /registrar              enroll (login) a member
    DELETE /registrar/{enrollId}   remove a member's enrollment

Uses an injectable transport (PeerTransport) so the HTTP layer can be
swapped for test fakes without changing parsing logic.

The client is configured the way a peer proxy is: set the chaincode id and
the secure context once, then issue calls. Both setters return the client
so they can be chained.

Response parsing targets the peer's JSON-RPC conventions:
    - Success: {"jsonrpc": "2.0", "result": {"status": "OK", "message": ...}}
    - Error:   {"jsonrpc": "2.0", "error": {"code": ..., "message": ..., "data": ...}}
    - The invoke result message is the transaction id.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING, Any

from chainorchestra.chaincode import (
    ChaincodeID,
    ChaincodeRequest,
    InvokeParams,
    RequestKind,
)
from chainorchestra.client import Block, ChainInfo, RpcResult, SubmitResult, TxRecord
from chainorchestra.config import PeerConfig, TrackerConfig
from chainorchestra.errors import PeerError
from chainorchestra.transport import HttpxTransport, PeerTransport

if TYPE_CHECKING:
    import asyncio

    from chainorchestra.tracker import ConfirmationOutcome, OnConfirmed, OnFailed

logger = logging.getLogger(__name__)

_CHAINCODE_ID_FACTORIES = {
    "path": ChaincodeID.from_path,
    "name": ChaincodeID.from_name,
}


class PeerClient:
    """Client for one peer, implementing the LedgerClient protocol.

    Args:
        host: Peer address.
        port: Peer REST port.
        transport: Injectable transport. Defaults to HttpxTransport.
        scheme: "http" or "https".
    """

    def __init__(
        self,
        host: str,
        port: int | str,
        transport: PeerTransport | None = None,
        *,
        scheme: str = "http",
    ) -> None:
        self._base_url = f"{scheme}://{host}:{port}"
        self._transport = transport or HttpxTransport()
        self._chaincode_id: ChaincodeID | None = None
        self._secure_context: str | None = None

    @classmethod
    def from_config(
        cls,
        config: PeerConfig,
        transport: PeerTransport | None = None,
    ) -> PeerClient:
        return cls(
            config.host,
            config.port,
            transport or HttpxTransport(timeout=config.timeout_s),
            scheme=config.scheme,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @property
    def chaincode_id(self) -> ChaincodeID | None:
        return self._chaincode_id

    @property
    def secure_context(self) -> str | None:
        return self._secure_context

    # -----------------------------------------------------------------
    # Proxy configuration
    # -----------------------------------------------------------------

    def set_secure_context(self, user: str | None) -> PeerClient:
        """Make subsequent chaincode calls on behalf of ``user`` (None clears)."""
        self._secure_context = user or None
        return self

    def set_chaincode_id(self, id_type: str, value: str) -> PeerClient:
        """Target chaincode by "path" (to deploy) or "name" (deployed hash)."""
        factory = _CHAINCODE_ID_FACTORIES.get(id_type)
        if factory is None:
            raise ValueError(
                f"chaincode id_type must be 'path' or 'name', got: {id_type!r}"
            )
        self._chaincode_id = factory(value)
        return self

    def build_request(
        self,
        kind: RequestKind,
        function: str | None = None,
        args: Sequence[str] = (),
    ) -> ChaincodeRequest:
        return ChaincodeRequest(
            kind=kind,
            function=function,
            args=tuple(args),
            chaincode_id=self._chaincode_id,
            secure_context=self._secure_context,
        )

    # -----------------------------------------------------------------
    # Chaincode calls
    # -----------------------------------------------------------------

    async def deploy(self, function: str = "init", args: Sequence[str] = ()) -> RpcResult:
        """Deploy the chaincode set with ``set_chaincode_id("path", ...)``.

        On success ``message`` holds the deployed chaincode name.
        Transport exceptions propagate to the caller.
        """
        request = self.build_request(RequestKind.DEPLOY, function, args)
        response = await self._post_chaincode(request)
        return _parse_rpc_response(response)

    async def query(self, function: str = "query", args: Sequence[str] = ()) -> RpcResult:
        """Run a read-only chaincode query on this peer."""
        request = self.build_request(RequestKind.QUERY, function, args)
        response = await self._post_chaincode(request)
        return _parse_rpc_response(response)

    async def submit(self, params: InvokeParams) -> SubmitResult:
        """Submit a transaction invocation.

        Acceptance only means the peer took the invocation; use a
        ConfirmationTracker (or ``invoke``) to learn whether it was committed.
        Transport exceptions propagate to the caller.
        """
        request = self.build_request(RequestKind.INVOKE, params.function, params.args)
        response = await self._post_chaincode(request)
        return _parse_submit_response(response)

    def invoke(
        self,
        function: str,
        args: Sequence[str],
        on_confirmed: OnConfirmed | None = None,
        on_failed: OnFailed | None = None,
        *,
        config: TrackerConfig | None = None,
    ) -> asyncio.Task[ConfirmationOutcome]:
        """Submit a transaction and confirm it was committed to the ledger.

        Returns the background task; exactly one of the callbacks fires
        when it finishes. Must be called from a running event loop.
        """
        from chainorchestra.tracker import ConfirmationTracker

        tracker = ConfirmationTracker(self, config)
        return tracker.confirm_transaction(
            InvokeParams.of(function, args), on_confirmed, on_failed
        )

    # -----------------------------------------------------------------
    # Ledger queries
    # -----------------------------------------------------------------

    async def chain_info(self) -> ChainInfo:
        response = await self._transport.get_json(f"{self._base_url}/chain")
        return _parse_chain_response(response)

    async def query_height(self) -> int:
        return (await self.chain_info()).height

    async def query_block(self, index: int) -> Block:
        response = await self._transport.get_json(f"{self._base_url}/chain/blocks/{index}")
        return _parse_block_response(index, response)

    # -----------------------------------------------------------------
    # Registrar
    # -----------------------------------------------------------------

    async def login(self, user: str, password: str) -> dict[str, Any]:
        """Enroll ``user`` with the peer's member services."""
        logger.debug("Registrar login for %s", user)
        return await self._transport.post_json(
            f"{self._base_url}/registrar",
            {"enrollId": user, "enrollSecret": password},
        )

    async def logout(self, user: str) -> dict[str, Any]:
        """Remove ``user``'s enrollment. The user cannot log in again."""
        logger.debug("Registrar logout for %s", user)
        return await self._transport.delete_json(f"{self._base_url}/registrar/{user}")

    async def _post_chaincode(self, request: ChaincodeRequest) -> dict[str, Any]:
        logger.debug("Chaincode %s %s", request.kind, request.ctor_function)
        return await self._transport.post_json(
            f"{self._base_url}/chaincode", request.to_jsonrpc()
        )


# =====================================================================
# Response parsing (pure functions, no I/O)
# =====================================================================


def _rpc_error_detail(error: Any) -> str:
    if not isinstance(error, dict):
        return str(error)
    parts = [str(error[key]) for key in ("message", "data") if error.get(key)]
    return ": ".join(parts) if parts else "unknown rpc error"


def _parse_rpc_response(response: dict[str, Any]) -> RpcResult:
    """Parse a deploy or query JSON-RPC response into RpcResult."""
    if response.get("error"):
        return RpcResult(
            ok=False,
            payload=response,
            error_code="RPC_ERROR",
            detail=_rpc_error_detail(response["error"]),
        )

    result = response.get("result")
    if not isinstance(result, dict):
        return RpcResult(
            ok=False,
            payload=response,
            error_code="INVALID_RESPONSE",
            detail="no result in response",
        )

    message = result.get("message")
    return RpcResult(
        ok=True,
        message=str(message) if message is not None else None,
        payload=response,
    )


def _parse_submit_response(response: dict[str, Any]) -> SubmitResult:
    """Parse an invoke JSON-RPC response into SubmitResult.

    Handles:
        - Accepted invocation (result.message is the txid)
        - JSON-RPC error member
        - Missing result or txid (accepted=False with detail)
    """
    parsed = _parse_rpc_response(response)
    if not parsed.ok:
        return SubmitResult(
            accepted=False,
            payload=response,
            error_code=parsed.error_code,
            detail=parsed.detail,
        )
    if not parsed.message:
        return SubmitResult(
            accepted=False,
            payload=response,
            error_code="INVALID_RESPONSE",
            detail="no txid in invoke result",
        )
    return SubmitResult(accepted=True, txid=parsed.message, payload=response)


def _parse_chain_response(response: dict[str, Any]) -> ChainInfo:
    """Parse ``GET /chain``. The peer may report height as a string."""
    height = response.get("height")
    try:
        value = int(height)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        raise PeerError(
            "chain response has no valid height",
            error_code="INVALID_RESPONSE",
            details={"body": response},
        ) from None
    return ChainInfo(
        height=value,
        current_block_hash=response.get("currentBlockHash"),
        previous_block_hash=response.get("previousBlockHash"),
    )


def _parse_block_response(index: int, response: dict[str, Any]) -> Block:
    """Parse ``GET /chain/blocks/{index}``. No transactions key means none."""
    records = []
    for tx in response.get("transactions") or ():
        if isinstance(tx, dict) and tx.get("txid") is not None:
            records.append(TxRecord(txid=str(tx["txid"]), payload=tx))
    return Block(index=index, transactions=tuple(records))
