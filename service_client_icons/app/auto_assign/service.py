"""
Auto-assignment service.

Drives the pure reconciler through the injected tag source and assignment
store. Write-back is serialized per client so two triggers for the same
client cannot interleave their read-diff-write cycles.
"""

import asyncio
import time
from contextlib import AsyncExitStack, asynccontextmanager
from typing import Any, AsyncIterator, Dict, Iterable, List, Mapping, Optional

from shared.config import ServiceConfig, get_config
from shared.logging import client_context, get_logger
from shared.metrics import MetricsCollector, get_metrics_collector
from ..conditions.records import to_record
from .models import AutoAssignOutcome, RecomputeReport, Tag, TagAssignmentDiff
from .reconciler import AutoAssignReconciler
from .store import AssignmentStore, TagSource


def _record_id(record: Mapping, *keys: str) -> Optional[str]:
    for key in keys:
        value = record.get(key)
        if value is not None:
            return str(value)
    return None


class AutoAssignService:
    """Keeps auto-assigned client icons in sync with icon conditions."""

    def __init__(
        self,
        tag_source: TagSource,
        store: AssignmentStore,
        reconciler: Optional[AutoAssignReconciler] = None,
        config: Optional[ServiceConfig] = None,
        metrics: Optional[MetricsCollector] = None
    ):
        self.tag_source = tag_source
        self.store = store
        self.reconciler = reconciler or AutoAssignReconciler()
        self.config = config or get_config()
        self.metrics = metrics
        if self.metrics is None and self.config.metrics_enabled:
            self.metrics = get_metrics_collector(self.config.service_name)
        self.logger = get_logger("client_icons.auto_assign")
        self._client_locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _client_lock(self, client_id: str) -> AsyncIterator[None]:
        """Hold the per-client lock; the entry is dropped once nobody holds or awaits it."""
        lock = self._client_locks.get(client_id)
        if lock is None:
            lock = self._client_locks[client_id] = asyncio.Lock()
        self._lock_users[client_id] = self._lock_users.get(client_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._lock_users[client_id] -= 1
            if not self._lock_users[client_id]:
                del self._lock_users[client_id]
                del self._client_locks[client_id]

    async def evaluate_and_assign(
        self,
        client: Any,
        company_id: Optional[str] = None,
        trigger: str = "client_saved"
    ) -> AutoAssignOutcome:
        """Reconcile one client after it was created or updated.

        Icon loading and store failures are logged and reported on the
        outcome instead of propagating into the client save path. A record
        without an id is a caller error and raises ValueError.
        """
        record = to_record(client)
        client_id = _record_id(record, "id", "client_id", "clientId")
        if client_id is None:
            raise ValueError("Client record has no id")
        company_id = company_id or _record_id(record, "companyId", "company_id")

        with client_context(client_id, company_id):
            try:
                tags = await self.tag_source.list_auto_assign_tags(company_id)
            except Exception as e:
                self.logger.warning(
                    "Failed to load icons for auto-assignment",
                    client_id=client_id,
                    company_id=company_id,
                    error=str(e)
                )
                self._record_error("tag_source")
                return AutoAssignOutcome(client_id=client_id, error=str(e))

            return await self._reconcile_client(client_id, record, tags, trigger)

    async def _reconcile_client(
        self,
        client_id: str,
        record: Mapping,
        tags: List[Tag],
        trigger: str
    ) -> AutoAssignOutcome:
        start_time = time.time()
        outcome = AutoAssignOutcome(client_id=client_id)
        try:
            async with self._client_lock(client_id):
                current = await self.store.list_assignments(client_id)
                outcome.diff = self.reconciler.reconcile(record, tags, current)
                if not outcome.diff.is_empty:
                    await self.store.apply_diff(client_id, outcome.diff)
            outcome.applied = True
        except Exception as e:
            outcome.error = str(e)
            self.logger.warning(
                "Failed to auto-assign icons for client",
                client_id=client_id,
                trigger=trigger,
                error=str(e)
            )
            self._record_error("assignment_store")
            return outcome

        if not outcome.diff.is_empty:
            self.logger.info(
                "Auto-assignments applied",
                client_id=client_id,
                trigger=trigger,
                added=list(outcome.diff.to_add),
                removed=list(outcome.diff.to_remove)
            )
        if self.metrics is not None:
            self.metrics.record_reconciliation(
                trigger,
                len(outcome.diff.to_add),
                len(outcome.diff.to_remove),
                time.time() - start_time
            )
        return outcome

    async def reevaluate_tag_for_all_clients(
        self,
        tag: Tag,
        clients: Iterable[Any]
    ) -> TagAssignmentDiff:
        """Re-apply one icon's condition across a company's active clients.

        Called after an icon's condition is created, changed or cleared.
        Store errors propagate to the caller saving the icon.
        """
        records: Dict[str, Mapping] = {}
        for client in clients:
            record = to_record(client)
            client_id = _record_id(record, "id", "client_id", "clientId")
            if client_id is None:
                self.logger.warning("Skipping client record without id", tag_id=tag.id)
                continue
            records[client_id] = record

        start_time = time.time()
        assignments = await self.store.list_tag_assignments(tag.id)
        diff = self.reconciler.reconcile_tag(tag, records, assignments)
        if not diff.is_empty:
            async with AsyncExitStack() as stack:
                # Fixed lock order across callers
                for client_id in sorted(set(diff.to_add) | set(diff.to_remove)):
                    await stack.enter_async_context(self._client_lock(client_id))
                await self.store.apply_tag_diff(diff)

        self.logger.info(
            "Icon re-evaluated for clients",
            tag_id=tag.id,
            clients=len(records),
            added=len(diff.to_add),
            removed=len(diff.to_remove)
        )
        if self.metrics is not None:
            self.metrics.record_reconciliation(
                "tag_changed",
                len(diff.to_add),
                len(diff.to_remove),
                time.time() - start_time
            )
        return diff

    async def recompute_company(self, company_id: str, clients: Iterable[Any]) -> RecomputeReport:
        """Bulk recompute job: reconcile every given client of a company."""
        report = RecomputeReport(company_id=company_id)
        tags = await self.tag_source.list_auto_assign_tags(company_id)
        semaphore = asyncio.Semaphore(self.config.recompute_concurrency)

        async def run(client_id: str, record: Mapping) -> AutoAssignOutcome:
            async with semaphore:
                return await self._reconcile_client(client_id, record, tags, "recompute")

        jobs = []
        for client in clients:
            record = to_record(client)
            client_id = _record_id(record, "id", "client_id", "clientId")
            if client_id is None:
                self.logger.warning("Skipping client record without id", company_id=company_id)
                continue
            jobs.append(run(client_id, record))

        report.outcomes = list(await asyncio.gather(*jobs))
        self.logger.info("Company recompute finished", **report.to_dict())
        return report

    def _record_error(self, error_type: str):
        if self.metrics is not None:
            self.metrics.record_error(error_type)
