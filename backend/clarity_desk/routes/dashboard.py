from __future__ import annotations

from fastapi import APIRouter, Depends

from ..constants import DISCLAIMER_TEXT, VEHICLE_MAKES, VEHICLE_MODELS
from ..models.status import AppStatus
from ..services.connectivity import ConnectivityMonitor
from ..services.status_tracker import StatusTracker
from ..storage.file_manager import FileManager
from ..storage.record_store import RecordStore
from .records import registry_item
from .shared import get_connectivity, get_file_manager, get_record_store, get_status_tracker

router = APIRouter(prefix="/api", tags=["dashboard"])


@router.get("/dashboard/overview")
def get_overview(
    store: RecordStore = Depends(get_record_store),
    status: StatusTracker = Depends(get_status_tracker),
    monitor: ConnectivityMonitor = Depends(get_connectivity),
    fm: FileManager = Depends(get_file_manager),
):
    settings = fm.get_settings()
    has_pending = store.has_pending()
    snapshot = status.snapshot()
    recent = [registry_item(entry) for entry in store.merged_view()[:10]]

    return {
        "online": monitor.is_online,
        "has_pending": has_pending,
        "can_sync": has_pending and monitor.is_online and snapshot.status != AppStatus.loading,
        "counts": store.counts(),
        "recent": recent,
        "status": snapshot.model_dump(mode="json"),
        "ai": {
            "provider": settings.ai.provider.value,
            "model": settings.ai.model,
        },
    }


@router.get("/catalog/vehicles")
def get_vehicle_catalog():
    return {
        "makes": VEHICLE_MAKES,
        "models": VEHICLE_MODELS,
        "disclaimer": DISCLAIMER_TEXT,
    }
