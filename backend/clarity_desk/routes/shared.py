from __future__ import annotations

import json
import sys
from pathlib import Path

from ..services.ai_client import AIClient
from ..services.connectivity import ConnectivityMonitor
from ..services.report_gen import ReportGenerator
from ..services.request_orchestrator import RequestOrchestrator
from ..services.status_tracker import StatusTracker
from ..services.sync_coordinator import SyncCoordinator
from ..storage.file_manager import FileManager
from ..storage.record_store import RecordStore


def _get_app_dir() -> Path:
    """Return the application root directory.

    In PyInstaller frozen mode ``__file__`` points into a temporary
    ``_MEI*`` directory that is removed on exit, so use the directory of
    the executable instead.
    """
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[2]


_APP_DIR = _get_app_dir()
_DEFAULT_BASE_DIR = _APP_DIR / "data"
_STORAGE_CONFIG_FILE = _APP_DIR / "storage_config.json"


def resolve_storage_base_dir(path_raw: str | None) -> Path:
    value = (path_raw or "").strip()
    if not value:
        return _DEFAULT_BASE_DIR.resolve()
    return Path(value).expanduser().resolve()


def _load_storage_base_dir() -> Path:
    if not _STORAGE_CONFIG_FILE.exists():
        return _DEFAULT_BASE_DIR.resolve()
    try:
        obj = json.loads(_STORAGE_CONFIG_FILE.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return _DEFAULT_BASE_DIR.resolve()
    if not isinstance(obj, dict):
        return _DEFAULT_BASE_DIR.resolve()
    return resolve_storage_base_dir(str(obj.get("storage_base_dir", "")))


_file_manager = FileManager(_load_storage_base_dir())
_settings = _file_manager.get_settings()

_record_store = RecordStore(_file_manager)
_record_store.load()

_status_tracker = StatusTracker()
_connectivity = ConnectivityMonitor(online=True, probe_url=_settings.connectivity.probe_url)
_ai_client = AIClient()
_report_generator = ReportGenerator(_ai_client, _file_manager.get_settings)
_orchestrator = RequestOrchestrator(_record_store, _status_tracker, _report_generator, _connectivity)
_sync_coordinator = SyncCoordinator(
    _record_store,
    _status_tracker,
    _report_generator,
    _connectivity,
    auto_sync=lambda: _file_manager.get_settings().connectivity.auto_sync,
)
_connectivity.add_listener(_sync_coordinator.on_connectivity_change)


def get_file_manager() -> FileManager:
    return _file_manager


def get_record_store() -> RecordStore:
    return _record_store


def get_status_tracker() -> StatusTracker:
    return _status_tracker


def get_connectivity() -> ConnectivityMonitor:
    return _connectivity


def get_ai_client() -> AIClient:
    return _ai_client


def get_orchestrator() -> RequestOrchestrator:
    return _orchestrator


def get_sync_coordinator() -> SyncCoordinator:
    return _sync_coordinator
