from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from .record import RecordVariant


class AppStatus(str, Enum):
    idle = "IDLE"
    loading = "LOADING"
    error = "ERROR"


class ErrorCategory(str, Enum):
    capacity_limit = "capacity_limit"
    node_interruption = "node_interruption"
    sync_interruption = "sync_interruption"


class ClassifiedError(BaseModel):
    category: ErrorCategory
    title: str
    detail: str
    trace: str


class LastRequestInfo(BaseModel):
    variant: RecordVariant
    client_name: str = ""


class StatusSnapshot(BaseModel):
    status: AppStatus = AppStatus.idle
    error: ClassifiedError | None = None
    last_request: LastRequestInfo | None = None
    loading_message: str | None = None
    can_retry: bool = False


class SyncSummary(BaseModel):
    ran: bool = False
    interrupted: bool = False
    attempted: int = 0
    completed: int = 0
    failed: int = 0
    completed_ids: list[str] = Field(default_factory=list)
    failed_ids: list[str] = Field(default_factory=list)


class ConnectivityState(BaseModel):
    online: bool
    probe_url: str = ""
    auto_sync: bool = True


class ConnectivityUpdateRequest(BaseModel):
    online: bool
