from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException

from ..models.record import MergedEntry, RecordVariant
from ..services.request_orchestrator import RequestOrchestrator
from ..storage.record_store import RecordStore
from .shared import get_orchestrator, get_record_store

router = APIRouter(prefix="/api/records", tags=["records"])

_VARIANT_TITLES = {
    RecordVariant.technical: "Signal Decoder",
    RecordVariant.strategic: "Decision Roadmap",
}


def _display_date(timestamp: str) -> str:
    try:
        return datetime.fromisoformat(timestamp.replace("Z", "+00:00")).strftime("%d/%m/%Y")
    except ValueError:
        return ""


def registry_item(entry: MergedEntry) -> dict:
    record = entry.record
    return {
        "id": record.id,
        "type": entry.variant.label,
        "variant": entry.variant.value,
        "title": _VARIANT_TITLES[entry.variant],
        "name": record.input.client.name,
        "date": _display_date(record.timestamp),
        "year": record.input.vehicle.year,
        "status": record.status.value,
        "timestamp": record.timestamp,
    }


@router.get("")
def list_registry(store: RecordStore = Depends(get_record_store)):
    items = [registry_item(entry) for entry in store.merged_view()]
    return {"total": len(items), "items": items}


@router.get("/{variant}")
def list_records(variant: RecordVariant, store: RecordStore = Depends(get_record_store)):
    records = store.records(variant)
    return {
        "variant": variant.value,
        "total": len(records),
        "items": [r.to_storage() for r in records],
    }


@router.get("/{variant}/{record_id}")
def get_record(variant: RecordVariant, record_id: str, store: RecordStore = Depends(get_record_store)):
    record = store.get(record_id, variant)
    if record is None:
        raise HTTPException(status_code=404, detail="Record not found")
    return {"variant": variant.value, "record": record.to_storage()}


@router.delete("/{variant}/{record_id}")
def delete_record(
    variant: RecordVariant,
    record_id: str,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    if not orchestrator.delete(record_id, variant):
        raise HTTPException(status_code=404, detail="Record not found")
    return {"deleted": True, "id": record_id, "variant": variant.value}
