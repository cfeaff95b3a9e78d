from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..models.intake import ClarityInput, JudgmentInput
from ..models.record import AnyInput, RecordVariant, SavedRecord
from ..services.request_orchestrator import OrchestratorBusyError, RequestOrchestrator
from ..services.status_tracker import StatusTracker
from .shared import get_orchestrator, get_status_tracker

router = APIRouter(prefix="/api", tags=["requests"])


def _submit_payload(variant: RecordVariant, record: SavedRecord, status: StatusTracker) -> dict:
    return {
        "variant": variant.value,
        "record": record.to_storage(),
        "status": status.snapshot().model_dump(mode="json"),
    }


async def _submit(payload: AnyInput, variant: RecordVariant, orchestrator: RequestOrchestrator) -> dict:
    try:
        record = await orchestrator.submit(payload, variant)
    except OrchestratorBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    return _submit_payload(variant, record, orchestrator.status)


@router.post("/requests/technical")
async def submit_technical(
    req: ClarityInput,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    return await _submit(req, RecordVariant.technical, orchestrator)


@router.post("/requests/strategic")
async def submit_strategic(
    req: JudgmentInput,
    orchestrator: RequestOrchestrator = Depends(get_orchestrator),
):
    return await _submit(req, RecordVariant.strategic, orchestrator)


@router.post("/requests/retry")
async def retry_last_request(orchestrator: RequestOrchestrator = Depends(get_orchestrator)):
    last = orchestrator.status.last_request
    try:
        record = await orchestrator.retry()
    except OrchestratorBusyError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    if record is None or last is None:
        return {"retried": False, "status": orchestrator.status.snapshot().model_dump(mode="json")}
    return {"retried": True, **_submit_payload(last.variant, record, orchestrator.status)}


@router.get("/status")
def get_status(status: StatusTracker = Depends(get_status_tracker)):
    return status.snapshot().model_dump(mode="json")


@router.post("/status/dismiss")
def dismiss_error(orchestrator: RequestOrchestrator = Depends(get_orchestrator)):
    dismissed = orchestrator.dismiss_error()
    return {"dismissed": dismissed, "status": orchestrator.status.snapshot().model_dump(mode="json")}
