from __future__ import annotations

import json
import logging
import threading
from collections import Counter
from collections.abc import Iterable
from typing import Protocol

from pydantic import TypeAdapter, ValidationError

from ..models.record import (
    VARIANT_SPECS,
    MergedEntry,
    RecordStatus,
    RecordVariant,
    SavedRecord,
    variant_spec,
)

logger = logging.getLogger(__name__)


class KeyValueStorage(Protocol):
    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...


_ADAPTERS = {
    variant: TypeAdapter(list[spec.record_cls]) for variant, spec in VARIANT_SPECS.items()
}


def variant_of_record(record: SavedRecord) -> RecordVariant:
    for spec in VARIANT_SPECS.values():
        if isinstance(record, spec.record_cls):
            return spec.variant
    raise TypeError(f"unsupported record type: {type(record).__name__}")


class RecordStore:
    """Technical and Strategic record collections, newest first.

    Order is maintained by construction (new records go to index 0), never by
    re-sorting. Every mutating call writes the affected collection through to
    storage.
    """

    def __init__(self, storage: KeyValueStorage):
        self._storage = storage
        self._lock = threading.RLock()
        self._collections: dict[RecordVariant, list[SavedRecord]] = {
            variant: [] for variant in RecordVariant
        }

    # -------- loading / persistence --------

    def load(self) -> None:
        with self._lock:
            for variant in RecordVariant:
                self._collections[variant] = self._load_collection(variant)

    def _load_collection(self, variant: RecordVariant) -> list[SavedRecord]:
        key = variant_spec(variant).storage_key
        raw = self._storage.get(key)
        if raw is None or not raw.strip():
            return []
        try:
            records = _ADAPTERS[variant].validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "Discarding malformed %s collection (%s): %d error(s)",
                variant.value,
                key,
                exc.error_count(),
            )
            return []

        seen: set[str] = set()
        unique: list[SavedRecord] = []
        for record in records:
            if record.id in seen:
                logger.warning("Dropping duplicate %s record id %s", variant.value, record.id)
                continue
            seen.add(record.id)
            unique.append(record)
        return unique

    def _write(self, variant: RecordVariant, records: list[SavedRecord]) -> None:
        payload = json.dumps([r.to_storage() for r in records], ensure_ascii=False)
        self._storage.set(variant_spec(variant).storage_key, payload)

    # -------- reads --------

    def records(self, variant: RecordVariant) -> list[SavedRecord]:
        with self._lock:
            return list(self._collections[variant])

    def get(self, record_id: str, variant: RecordVariant) -> SavedRecord | None:
        with self._lock:
            for record in self._collections[variant]:
                if record.id == record_id:
                    return record
            return None

    def pending(self, variant: RecordVariant) -> list[SavedRecord]:
        return [r for r in self.records(variant) if r.status == RecordStatus.pending]

    def has_pending(self) -> bool:
        return any(self.pending(variant) for variant in RecordVariant)

    def counts(self) -> dict[str, dict[str, int]]:
        with self._lock:
            result: dict[str, dict[str, int]] = {}
            for variant, records in self._collections.items():
                counter = Counter(r.status.value for r in records)
                result[variant.value] = {status.value: counter.get(status.value, 0) for status in RecordStatus}
            return result

    def merged_view(self) -> list[MergedEntry]:
        with self._lock:
            entries = [
                MergedEntry(variant=variant, record=record)
                for variant in RecordVariant
                for record in self._collections[variant]
            ]
        # ISO-8601 strings of equal width sort chronologically.
        return sorted(entries, key=lambda e: e.record.timestamp, reverse=True)

    # -------- mutations --------

    def upsert_front(self, record: SavedRecord) -> None:
        variant = variant_of_record(record)
        with self._lock:
            items = [r for r in self._collections[variant] if r.id != record.id]
            items.insert(0, record)
            self._collections[variant] = items
            self._write(variant, items)

    def replace(self, record_id: str, updated: SavedRecord) -> bool:
        if updated.id != record_id:
            raise ValueError(f"replacement id {updated.id} does not match {record_id}")
        variant = variant_of_record(updated)
        with self._lock:
            items = list(self._collections[variant])
            for idx, current in enumerate(items):
                if current.id == record_id:
                    if current.input != updated.input:
                        raise ValueError(f"record {record_id} input is immutable")
                    items[idx] = updated
                    break
            else:
                return False
            self._collections[variant] = items
            self._write(variant, items)
            return True

    def replace_many(self, updates: Iterable[SavedRecord]) -> int:
        """Apply in-place replacements and persist both collections in full.

        Records whose id is no longer present are skipped. The in-memory
        collections only change once every write has succeeded.
        """
        with self._lock:
            staged = {variant: list(items) for variant, items in self._collections.items()}
            applied = 0
            for updated in updates:
                variant = variant_of_record(updated)
                items = staged[variant]
                for idx, current in enumerate(items):
                    if current.id == updated.id:
                        items[idx] = updated
                        applied += 1
                        break

            for variant in RecordVariant:
                self._write(variant, staged[variant])
            self._collections = staged
            return applied

    def delete(self, record_id: str, variant: RecordVariant) -> bool:
        with self._lock:
            items = self._collections[variant]
            remaining = [r for r in items if r.id != record_id]
            if len(remaining) == len(items):
                return False
            self._write(variant, remaining)
            self._collections[variant] = remaining
            return True
