from __future__ import annotations

import logging
from collections.abc import Callable

from ..models.record import RecordStatus, RecordVariant, SavedRecord
from ..models.status import SyncSummary
from ..storage.record_store import RecordStore
from .connectivity import ConnectivityMonitor
from .error_classifier import sync_interrupted
from .report_gen import GenerationClient
from .status_tracker import StatusTracker

logger = logging.getLogger(__name__)


class SyncCoordinator:
    """Drains pending records once connectivity is available.

    Records are resolved one at a time, Technical first, from working copies.
    Results reach the store (and disk) in a single write-back at the end; an
    interrupted run leaves both untouched.
    """

    def __init__(
        self,
        store: RecordStore,
        status: StatusTracker,
        generator: GenerationClient,
        connectivity: ConnectivityMonitor,
        auto_sync: Callable[[], bool] = lambda: True,
    ):
        self.store = store
        self.status = status
        self.generator = generator
        self.connectivity = connectivity
        self.auto_sync = auto_sync

    async def sync_queue(self) -> SyncSummary:
        if not self.connectivity.is_online or self.status.is_loading:
            return SyncSummary(ran=False)
        if not self.status.try_begin():
            return SyncSummary(ran=False)

        try:
            return await self._drain()
        finally:
            if self.status.is_loading:
                self.status.finish()

    async def _drain(self) -> SyncSummary:
        summary = SyncSummary(ran=True)
        try:
            working = {variant: self.store.records(variant) for variant in RecordVariant}
            resolved: list[SavedRecord] = []
            for variant in RecordVariant:
                for record in working[variant]:
                    if record.status != RecordStatus.pending:
                        continue
                    summary.attempted += 1
                    try:
                        report = await self.generator.generate(variant, record.input)
                    except Exception as exc:
                        logger.warning("Sync: %s record %s failed: %s", variant.value, record.id, exc)
                        resolved.append(record.fail())
                        summary.failed_ids.append(record.id)
                    else:
                        resolved.append(record.resolve(report))
                        summary.completed_ids.append(record.id)

            self.store.replace_many(resolved)
        except Exception as exc:
            logger.error("Sync interrupted after %d record(s): %s", summary.attempted, exc)
            self.status.fail(sync_interrupted(exc))
            return SyncSummary(ran=True, interrupted=True, attempted=summary.attempted)

        summary.completed = len(summary.completed_ids)
        summary.failed = len(summary.failed_ids)
        self.status.finish()
        if summary.attempted:
            logger.info(
                "Sync finished: %d completed, %d failed",
                summary.completed,
                summary.failed,
            )
        return summary

    async def on_connectivity_change(self, online: bool) -> None:
        if not online or not self.auto_sync():
            return
        if not self.store.has_pending():
            return
        await self.sync_queue()
