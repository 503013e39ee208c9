"""
Confirmation tracker — did a submitted transaction actually land?

A peer acknowledging an invocation does not mean the transaction will be
committed. The tracker submits the invocation, then watches the ledger
until it can say where the transaction was committed, or that it was not
committed in time.

There is no notification channel, so the tracker polls. One request moves
through an explicit state machine, one peer call per step:

    SUBMITTING
        Snapshot the chain height (the inclusive lower bound of the search
        window), then submit. A refused submission ends the request;
        nothing is polled.
    AWAITING_GROWTH
        Poll the chain height. While it still equals the snapshot and wait
        budget remains, sleep ``delay_step`` and poll again. Once it grew
        (or the budget ran out), the newest block index becomes the upper
        bound of the window.
    SCANNING
        Fetch blocks from the upper bound down to the lower bound, newest
        first, looking for the txid. The first hit confirms. Running past
        the lower bound (or starting with an empty window) times out.
    DONE
        The outcome has been resolved and is delivered exactly once.

The lower bound is captured before submitting so that a transaction
committed in the very next block is inside the window. The window size is
fixed once scanning starts, so the scan always ends after a bounded number
of block fetches.

Every failure resolves through the outcome (and the failure callback). The
tracker does not raise past its boundary: an unexpected exception in a
step fails the request with SUBMISSION_REJECTED while submitting, and
QUERY_FAILED otherwise. Cancellation is not a failure and propagates.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from enum import StrEnum
from typing import Any

from chainorchestra.client import LedgerClient, SubmitResult
from chainorchestra.config import TrackerConfig
from chainorchestra.errors import (
    ConfirmationError,
    classify_query_error,
    classify_submission_error,
    classify_timeout,
)

logger = logging.getLogger(__name__)

OnConfirmed = Callable[[SubmitResult], Any]
OnFailed = Callable[[ConfirmationError], Any]


# =========================================================================
# Request state
# =========================================================================


class ConfirmationState(StrEnum):
    """Where a confirmation request is in its lifecycle."""

    SUBMITTING = "SUBMITTING"
    AWAITING_GROWTH = "AWAITING_GROWTH"
    SCANNING = "SCANNING"
    DONE = "DONE"


class ConfirmationStatus(StrEnum):
    """Terminal outcome of a confirmation."""

    CONFIRMED = "CONFIRMED"
    FAILED = "FAILED"


@dataclass(frozen=True)
class ConfirmationOutcome:
    """Terminal result of one confirmation.

    Attributes:
        status: CONFIRMED or FAILED.
        txid: Transaction id, once submission assigned one.
        submission: The submission result. On CONFIRMED this is what the
            success callback receives.
        block_index: Block where the txid was found (CONFIRMED only).
        error: What went wrong (FAILED only).
    """

    status: ConfirmationStatus
    txid: str | None = None
    submission: SubmitResult | None = None
    block_index: int | None = None
    error: ConfirmationError | None = None

    @property
    def confirmed(self) -> bool:
        return self.status == ConfirmationStatus.CONFIRMED


@dataclass
class ConfirmationRequest:
    """Mutable state of one confirmation, owned by a single tracker run.

    Attributes:
        params: Invocation parameters, forwarded verbatim to submit().
        remaining: Wait budget left for the growth phase, in seconds.
        waits_left: Growth-phase waits still allowed. Gates the waiting;
            ``remaining`` is informational.
        state: Current state.
        txid: Assigned by submission.
        submission: The accepted submission result.
        height_at_submission: Chain height before submitting; inclusive
            lower bound of the search window.
        height_at_search: Newest block index when scanning started;
            inclusive upper bound of the search window.
        scan_index: Next block index to fetch.
        outcome: Set exactly once, when the request reaches DONE.
        height_queries: Chain height queries issued, snapshot included.
        block_queries: Block fetches issued.
    """

    params: Any
    remaining: float
    waits_left: int = 0
    state: ConfirmationState = ConfirmationState.SUBMITTING
    txid: str | None = None
    submission: SubmitResult | None = None
    height_at_submission: int | None = None
    height_at_search: int | None = None
    scan_index: int | None = None
    outcome: ConfirmationOutcome | None = None
    height_queries: int = 0
    block_queries: int = 0

    @property
    def window(self) -> range:
        """Block indices to scan, newest first. Empty until scanning."""
        if self.height_at_search is None or self.height_at_submission is None:
            return range(0)
        return range(self.height_at_search, self.height_at_submission - 1, -1)

    def resolve(self, outcome: ConfirmationOutcome) -> None:
        if self.outcome is not None:
            raise RuntimeError(
                f"confirmation already resolved as {self.outcome.status}"
            )
        self.outcome = outcome
        self.state = ConfirmationState.DONE

    def confirm(self, block_index: int) -> None:
        self.resolve(
            ConfirmationOutcome(
                status=ConfirmationStatus.CONFIRMED,
                txid=self.txid,
                submission=self.submission,
                block_index=block_index,
            )
        )

    def fail(self, error: ConfirmationError) -> None:
        self.resolve(
            ConfirmationOutcome(
                status=ConfirmationStatus.FAILED,
                txid=self.txid,
                submission=self.submission,
                error=error,
            )
        )


# =========================================================================
# Tracker
# =========================================================================


class ConfirmationTracker:
    """Submits transactions and confirms their inclusion in the ledger.

    The tracker holds no per-request state, so any number of confirmations
    may run concurrently on one instance.

    Args:
        client: Ledger client (submission and queries).
        config: Polling policy. Defaults to TrackerConfig().
        sleep: Awaitable sleep used between height polls. Inject for tests.
    """

    def __init__(
        self,
        client: LedgerClient,
        config: TrackerConfig | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self._client = client
        self._config = config or TrackerConfig()
        self._sleep = sleep
        self._tasks: set[asyncio.Task[ConfirmationOutcome]] = set()

    @property
    def config(self) -> TrackerConfig:
        return self._config

    # -----------------------------------------------------------------
    # Public API
    # -----------------------------------------------------------------

    def new_request(self, params: Any) -> ConfirmationRequest:
        return ConfirmationRequest(
            params=params,
            remaining=self._config.delay_timeout,
            waits_left=self._config.max_waits,
        )

    async def confirm(self, params: Any) -> ConfirmationOutcome:
        """Submit ``params`` and wait for the confirmation outcome."""
        return await self.run(self.new_request(params))

    async def run(self, request: ConfirmationRequest) -> ConfirmationOutcome:
        """Drive ``request`` to DONE and return its outcome."""
        while request.state != ConfirmationState.DONE:
            try:
                await self._step(request)
            except Exception as exc:
                if request.outcome is not None:
                    raise
                logger.exception(
                    "Unexpected error in state %s for %s", request.state, request.txid
                )
                request.fail(self._classify_unexpected(request, exc))

        outcome = request.outcome
        assert outcome is not None
        if outcome.confirmed:
            logger.info(
                "Transaction %s confirmed in block %d",
                outcome.txid, outcome.block_index,
            )
        else:
            assert outcome.error is not None
            logger.warning(
                "Transaction %s not confirmed: %s (%s)",
                outcome.txid, outcome.error.code, outcome.error.detail,
            )
        return outcome

    def confirm_transaction(
        self,
        params: Any,
        on_confirmed: OnConfirmed | None = None,
        on_failed: OnFailed | None = None,
    ) -> asyncio.Task[ConfirmationOutcome]:
        """Start a confirmation in the background.

        Returns immediately with the task running the confirmation. When it
        finishes, exactly one of ``on_confirmed(submit_result)`` or
        ``on_failed(error)`` is called, exactly once.

        Must be called from a running event loop.
        """
        task = asyncio.get_running_loop().create_task(
            self._confirm_and_deliver(params, on_confirmed, on_failed)
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    # -----------------------------------------------------------------
    # States
    # -----------------------------------------------------------------

    async def _step(self, request: ConfirmationRequest) -> None:
        if request.state == ConfirmationState.SUBMITTING:
            await self._submit(request)
        elif request.state == ConfirmationState.AWAITING_GROWTH:
            await self._await_growth(request)
        else:
            await self._scan_next(request)

    async def _submit(self, request: ConfirmationRequest) -> None:
        try:
            request.height_at_submission = await self._query_height(request)
        except Exception as exc:
            request.fail(classify_query_error(exc))
            return

        try:
            result = await self._client.submit(request.params)
        except Exception as exc:
            request.fail(classify_submission_error(f"submit failed: {exc}"))
            return

        if not result.accepted:
            request.fail(
                classify_submission_error(
                    result.detail or result.error_code or "submission refused",
                    submission=result,
                )
            )
            return
        if not result.txid:
            request.fail(
                classify_submission_error("no txid in submission response", submission=result)
            )
            return

        request.txid = result.txid
        request.submission = result
        request.state = ConfirmationState.AWAITING_GROWTH
        logger.debug(
            "Submitted %s at height %d", request.txid, request.height_at_submission
        )

    async def _await_growth(self, request: ConfirmationRequest) -> None:
        try:
            height = await self._query_height(request)
        except Exception as exc:
            request.fail(
                classify_query_error(exc, txid=request.txid, submission=request.submission)
            )
            return

        if height == request.height_at_submission and request.waits_left > 0:
            logger.debug(
                "Height still %d for %s, %d waits left",
                height, request.txid, request.waits_left,
            )
            await self._sleep(self._config.delay_step)
            request.waits_left -= 1
            request.remaining = max(0.0, request.remaining - self._config.delay_step)
            return

        request.height_at_search = height - 1
        request.scan_index = request.height_at_search
        request.state = ConfirmationState.SCANNING

    async def _scan_next(self, request: ConfirmationRequest) -> None:
        assert request.txid is not None
        assert request.scan_index is not None
        assert request.height_at_submission is not None

        if request.scan_index < request.height_at_submission:
            request.fail(
                classify_timeout(
                    self._timeout_detail(request),
                    txid=request.txid,
                    submission=request.submission,
                )
            )
            return

        index = request.scan_index
        request.block_queries += 1
        try:
            block = await self._client.query_block(index)
            found = block.contains(request.txid)
        except Exception as exc:
            request.fail(
                classify_query_error(exc, txid=request.txid, submission=request.submission)
            )
            return

        logger.debug("Block %d scanned for %s: %s", index, request.txid, found)
        if found:
            request.confirm(index)
            return
        request.scan_index = index - 1

    # -----------------------------------------------------------------
    # Helpers
    # -----------------------------------------------------------------

    async def _query_height(self, request: ConfirmationRequest) -> int:
        request.height_queries += 1
        return int(await self._client.query_height())

    @staticmethod
    def _classify_unexpected(
        request: ConfirmationRequest, exc: Exception
    ) -> ConfirmationError:
        # Once the snapshot is taken, anything going wrong before AWAITING_GROWTH
        # concerns the submission itself.
        if (
            request.state == ConfirmationState.SUBMITTING
            and request.height_at_submission is not None
        ):
            return classify_submission_error(f"submit failed: {exc}")
        return classify_query_error(exc, txid=request.txid, submission=request.submission)

    def _timeout_detail(self, request: ConfirmationRequest) -> str:
        low = request.height_at_submission
        high = request.height_at_search
        assert low is not None and high is not None
        if high < low - 1:
            return f"chain height regressed from {low} to {high + 1}"
        if request.block_queries == 0:
            return (
                f"chain did not grow past height {low} "
                f"within {self._config.delay_timeout}s (newest block index {high})"
            )
        return f"txid not found in blocks {low}..{high}"

    async def _confirm_and_deliver(
        self,
        params: Any,
        on_confirmed: OnConfirmed | None,
        on_failed: OnFailed | None,
    ) -> ConfirmationOutcome:
        outcome = await self.confirm(params)
        try:
            if outcome.confirmed:
                if on_confirmed is not None:
                    assert outcome.submission is not None
                    on_confirmed(outcome.submission)
            elif on_failed is not None:
                assert outcome.error is not None
                on_failed(outcome.error)
        except Exception:
            logger.exception("Confirmation callback raised for %s", outcome.txid)
        return outcome
