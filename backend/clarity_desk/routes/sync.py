from __future__ import annotations

from fastapi import APIRouter, Depends

from ..models.status import ConnectivityState, ConnectivityUpdateRequest
from ..services.connectivity import ConnectivityMonitor
from ..services.sync_coordinator import SyncCoordinator
from ..storage.file_manager import FileManager
from .shared import get_connectivity, get_file_manager, get_sync_coordinator

router = APIRouter(prefix="/api", tags=["sync"])


def _connectivity_state(monitor: ConnectivityMonitor, fm: FileManager) -> ConnectivityState:
    return ConnectivityState(
        online=monitor.is_online,
        probe_url=monitor.probe_url,
        auto_sync=fm.get_settings().connectivity.auto_sync,
    )


@router.post("/sync")
async def sync_queue(coordinator: SyncCoordinator = Depends(get_sync_coordinator)):
    summary = await coordinator.sync_queue()
    return {
        "summary": summary.model_dump(mode="json"),
        "status": coordinator.status.snapshot().model_dump(mode="json"),
    }


@router.get("/connectivity", response_model=ConnectivityState)
def get_connectivity_state(
    monitor: ConnectivityMonitor = Depends(get_connectivity),
    fm: FileManager = Depends(get_file_manager),
) -> ConnectivityState:
    return _connectivity_state(monitor, fm)


@router.put("/connectivity", response_model=ConnectivityState)
async def set_connectivity_state(
    req: ConnectivityUpdateRequest,
    monitor: ConnectivityMonitor = Depends(get_connectivity),
    fm: FileManager = Depends(get_file_manager),
) -> ConnectivityState:
    # Async so that an auto-sync listener can be scheduled on the running loop.
    monitor.set_online(req.online)
    return _connectivity_state(monitor, fm)
