"""Bulk audit orchestrator.

Runs one audit kind over a deduplicated batch of targets, strictly one
item at a time. Every item reaches a terminal lifecycle state; a failure
on one item is recorded on that item and never aborts the batch.

Listed reputation results with a release timeline spawn a background
release-date fetch that runs concurrently with the main loop. Each batch
carries a generation number and background writes for a superseded
generation are discarded.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Sequence

from posture_audit.errors import AuditError, InvalidTarget, QueryTimeout
from posture_audit.models.audit_item import (
    AuditItem,
    AuditKind,
    LifecycleState,
    ReleaseStatus,
)
from posture_audit.models.audit_target import parse_targets
from posture_audit.models.batch_summary import BatchSummary
from posture_audit.models.reputation_record import ReputationVerdict
from posture_audit.services.auditor import AuditOutcome, TargetAuditor, validate_target
from posture_audit.services.logger import log_batch_summary, log_item_result
from posture_audit.services.release_lookup import ReleaseDateClient


logger = logging.getLogger(__name__)


class BulkAuditOrchestrator:
    """Sequential state machine over a batch of AuditItems.

    Args:
        auditor: Performs the per-item audit step.
        release_client: Release-date client; background fetches are skipped
            when None.
        item_timeout: Per-item bound in seconds; exceeding it yields the
            ``timeout`` state. None disables the bound.
        max_targets: Cap on unique targets per batch.
    """

    def __init__(
        self,
        auditor: TargetAuditor,
        release_client: ReleaseDateClient | None = None,
        item_timeout: float | None = None,
        max_targets: int | None = None,
    ):
        self.auditor = auditor
        self.release_client = release_client
        self.item_timeout = item_timeout
        self.max_targets = max_targets

        self.generation = 0
        self.kind: AuditKind | None = None
        self.items: list[AuditItem] = []
        self._release_tasks: set[asyncio.Task] = set()

    def reset(self) -> None:
        """Discard the current batch.

        In-flight background fetches keep running but their results are
        dropped because the generation moves on.
        """
        self.generation += 1
        self.items = []
        self.kind = None

    def submit(
        self,
        raw_input: str,
        kind: AuditKind,
        selectors: Sequence[str] | None = None,
    ) -> list[AuditItem]:
        """Start a new batch, replacing any previous one.

        Args:
            raw_input: Newline or comma separated targets.
            kind: Audit to run for every target.
            selectors: DKIM selectors; each domain is paired with each
                selector (domain-major order).

        Returns:
            list[AuditItem]: Pending items with 1-based ids in input order.

        Raises:
            ValueError: If a DKIM batch is submitted without selectors.
        """
        self.reset()
        self.kind = kind
        targets = parse_targets(raw_input, self.max_targets)

        if kind == AuditKind.DKIM:
            selector_list = [s.strip() for s in selectors or [] if s.strip()]
            if not selector_list:
                raise ValueError("DKIM audits require at least one selector")
            pairs = [(t, s) for t in targets for s in selector_list]
        else:
            pairs = [(t, None) for t in targets]

        self.items = [
            AuditItem(
                id=index,
                target=target,
                kind=kind,
                generation=self.generation,
                selector=selector,
            )
            for index, (target, selector) in enumerate(pairs, start=1)
        ]
        logger.info(
            f"Submitted {kind.value} batch {self.generation} with {len(self.items)} items"
        )
        return self.items

    async def run(self) -> BatchSummary:
        """Process every pending item of the current batch in order.

        Returns:
            BatchSummary: Summary over the batch's items. Background
            release fetches may still be running; await ``drain()`` before
            rendering release dates.

        Raises:
            RuntimeError: If no batch has been submitted.
        """
        if self.kind is None:
            raise RuntimeError("No batch submitted")

        generation = self.generation
        kind = self.kind
        items = self.items
        start_time = time.time()

        for item in items:
            if self.generation != generation:
                logger.info(f"Batch {generation} was reset, stopping")
                break
            if item.state != LifecycleState.PENDING:
                continue
            await self._process_item(item)

        duration_sec = time.time() - start_time
        summary = BatchSummary(
            kind=kind,
            generation=generation,
            timestamp=datetime.now(timezone.utc),
            execution_duration_ms=int(duration_sec * 1000),
            items=list(items),
        )
        log_batch_summary(
            kind=kind.value,
            total_items=len(items),
            state_counts=summary.state_counts,
            listed=summary.listed_items,
            duration_sec=duration_sec,
        )
        return summary

    async def drain(self) -> None:
        """Wait for every outstanding background release fetch."""
        if self._release_tasks:
            await asyncio.gather(*list(self._release_tasks))

    async def _process_item(self, item: AuditItem) -> None:
        item_start = time.time()

        try:
            validate_target(item.kind, item.target)
        except InvalidTarget as e:
            item.transition(LifecycleState.INVALID)
            item.reason = str(e)
            item.error_kind = type(e).__name__
            self._log_item(item, item_start)
            return

        item.transition(LifecycleState.LOADING)

        try:
            outcome = await self._audit_with_timeout(item)
        except (QueryTimeout, asyncio.TimeoutError) as e:
            outcome = AuditOutcome(
                LifecycleState.TIMEOUT,
                reason=str(e) or f"Timed out after {self.item_timeout}s",
                error_kind=type(e).__name__,
            )
            logger.warning(f"Item {item.id} ({item.target.value}) timed out")
        except InvalidTarget as e:
            outcome = AuditOutcome(
                LifecycleState.INVALID, reason=str(e), error_kind=type(e).__name__
            )
        except AuditError as e:
            outcome = AuditOutcome(
                LifecycleState.ERROR, reason=str(e), error_kind=type(e).__name__
            )
            logger.warning(f"Item {item.id} ({item.target.value}) failed: {e}")
        except Exception as e:
            outcome = AuditOutcome(
                LifecycleState.ERROR, reason=str(e), error_kind=type(e).__name__
            )
            logger.error(
                f"Unexpected error auditing item {item.id} ({item.target.value}): {e}",
                exc_info=True,
            )

        if item.generation != self.generation:
            logger.debug(f"Discarding stale result for item {item.id} (batch {item.generation})")
            return

        item.transition(outcome.state)
        item.result = outcome.result
        item.reason = outcome.reason
        item.error_kind = outcome.error_kind
        self._log_item(item, item_start)

        if isinstance(item.result, ReputationVerdict) and item.result.release_eligible:
            self._schedule_release_fetch(item)

    async def _audit_with_timeout(self, item: AuditItem) -> AuditOutcome:
        audit = self.auditor.audit(item.kind, item.target, item.selector)
        if self.item_timeout is None:
            return await audit
        return await asyncio.wait_for(audit, timeout=self.item_timeout)

    def _schedule_release_fetch(self, item: AuditItem) -> None:
        if self.release_client is None:
            return
        item.release_status = ReleaseStatus.PENDING
        task = asyncio.create_task(self._fetch_release(item))
        self._release_tasks.add(task)
        task.add_done_callback(self._release_tasks.discard)

    async def _fetch_release(self, item: AuditItem) -> None:
        try:
            fetch = self.release_client.fetch_release_date(item.target)
            if self.item_timeout is None:
                release_date = await fetch
            else:
                release_date = await asyncio.wait_for(fetch, timeout=self.item_timeout)
        except Exception as e:
            if item.generation != self.generation:
                logger.debug(f"Discarding stale release failure for item {item.id}")
                return
            item.release_status = ReleaseStatus.FETCH_ERROR
            logger.warning(
                f"Release date fetch failed for {item.target.value}: {type(e).__name__}: {e}"
            )
            return

        if item.generation != self.generation:
            logger.debug(f"Discarding stale release date for item {item.id}")
            return
        item.release_date = release_date
        item.release_status = ReleaseStatus.RESOLVED

    @staticmethod
    def _log_item(item: AuditItem, item_start: float) -> None:
        log_item_result(
            item_id=item.id,
            target=item.target.value,
            kind=item.kind.value,
            state=item.state.value,
            reason=item.reason,
            duration_ms=int((time.time() - item_start) * 1000),
        )
