from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable

from ..models.record import (
    AnyInput,
    RecordStatus,
    RecordVariant,
    SavedRecord,
    iso_timestamp,
    variant_of_input,
    variant_spec,
)
from ..storage.record_store import RecordStore
from .connectivity import ConnectivityMonitor
from .error_classifier import classify
from .report_gen import GenerationClient
from .status_tracker import StatusTracker

logger = logging.getLogger(__name__)


class OrchestratorBusyError(RuntimeError):
    pass


class RecordIdFactory:
    """``<prefix>-<epoch millis>`` ids; millis never repeat within a process."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._lock = threading.Lock()
        self._last_ms = 0

    def next_id(self, prefix: str) -> str:
        with self._lock:
            ms = int(self._clock() * 1000)
            if ms <= self._last_ms:
                ms = self._last_ms + 1
            self._last_ms = ms
            return f"{prefix}-{ms}"


class RequestOrchestrator:
    """Sends an intake now or queues it, and records the outcome.

    Retrying never mutates the failed record: it submits the retained input
    again, so the failed attempt stays in history next to the new record.
    """

    def __init__(
        self,
        store: RecordStore,
        status: StatusTracker,
        generator: GenerationClient,
        connectivity: ConnectivityMonitor,
        id_factory: RecordIdFactory | None = None,
    ):
        self.store = store
        self.status = status
        self.generator = generator
        self.connectivity = connectivity
        self.id_factory = id_factory or RecordIdFactory()

    def _new_id(self, variant: RecordVariant) -> str:
        prefix = variant_spec(variant).id_prefix
        record_id = self.id_factory.next_id(prefix)
        while self.store.get(record_id, variant) is not None:
            record_id = self.id_factory.next_id(prefix)
        return record_id

    async def submit(self, payload: AnyInput, variant: RecordVariant | None = None) -> SavedRecord:
        variant = variant or variant_of_input(payload)
        spec = variant_spec(variant)
        if not isinstance(payload, spec.input_cls):
            raise TypeError(f"{variant.label} requests take {spec.input_cls.__name__}")

        record_id = self._new_id(variant)
        timestamp = iso_timestamp()

        if not self.connectivity.is_online:
            self.status.remember_request(variant, payload)
            record = spec.record_cls(id=record_id, input=payload, timestamp=timestamp, status=RecordStatus.pending)
            self.store.upsert_front(record)
            logger.info("Offline: queued %s request %s", variant.value, record_id)
            return record

        if not self.status.try_begin():
            raise OrchestratorBusyError("Another request or sync is already in progress")
        self.status.remember_request(variant, payload)

        try:
            return await self._send(record_id, timestamp, variant, payload)
        finally:
            # Cancellation must not leave the process stuck in LOADING.
            if self.status.is_loading:
                self.status.finish()

    async def _send(self, record_id: str, timestamp: str, variant: RecordVariant, payload: AnyInput) -> SavedRecord:
        record_cls = variant_spec(variant).record_cls
        try:
            try:
                report = await self.generator.generate(variant, payload)
            except Exception as exc:
                logger.warning("%s request %s failed: %s", variant.label, record_id, exc)
                record = record_cls(id=record_id, input=payload, timestamp=timestamp, status=RecordStatus.failed)
                self.store.upsert_front(record)
                self.status.fail(classify(exc, variant))
                return record

            record = record_cls(
                id=record_id,
                input=payload,
                report=report,
                timestamp=timestamp,
                status=RecordStatus.completed,
            )
            self.store.upsert_front(record)
        except Exception as exc:
            logger.error("Failed to store %s request %s: %s", variant.value, record_id, exc)
            self.status.fail(classify(exc, variant))
            raise

        self.status.finish()
        self.status.forget_request()
        logger.info("%s request %s completed", variant.label, record_id)
        return record

    async def retry(self) -> SavedRecord | None:
        last = self.status.last_request
        if last is None:
            return None
        self.status.dismiss()
        return await self.submit(last.payload, last.variant)

    def delete(self, record_id: str, variant: RecordVariant) -> bool:
        deleted = self.store.delete(record_id, variant)
        if deleted:
            logger.info("Deleted %s record %s", variant.value, record_id)
        return deleted

    def dismiss_error(self) -> bool:
        return self.status.dismiss()
