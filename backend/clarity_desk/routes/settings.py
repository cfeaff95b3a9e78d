from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from ..models.settings import (
    AISettings,
    AISettingsUpdateRequest,
    ConnectivitySettings,
    ConnectivitySettingsUpdateRequest,
    PromptSettings,
    PromptSettingsUpdateRequest,
)
from ..services.ai_client import AIClient
from ..services.connectivity import ConnectivityMonitor
from ..services.prompt_renderer import PromptTemplateError, render_template
from ..storage.file_manager import FileManager
from .shared import get_ai_client, get_connectivity, get_file_manager

router = APIRouter(prefix="/api/settings", tags=["settings"])

_CLARITY_FIELDS = (
    "client_json",
    "vehicle_json",
    "symptoms",
    "diagnostic_codes",
    "occurrence",
    "onset",
    "driveability",
    "recent_work",
)
_JUDGMENT_FIELDS = (
    "client_json",
    "vehicle_json",
    "decision_type",
    "subject",
    "context",
    "priority_concerns",
)


def _check_template(name: str, template: str, fields: tuple[str, ...]) -> str:
    if not template.strip():
        raise HTTPException(status_code=400, detail=f"{name} cannot be empty")
    try:
        render_template(template, {field: "" for field in fields})
    except PromptTemplateError as exc:
        raise HTTPException(status_code=400, detail=f"{name}: {exc}") from exc
    return template


@router.get("")
def get_settings(fm: FileManager = Depends(get_file_manager)):
    return fm.get_settings().model_dump(mode="json")


@router.put("/ai")
def update_ai_settings(req: AISettingsUpdateRequest, fm: FileManager = Depends(get_file_manager)):
    settings = fm.update_ai_settings(AISettings(**req.model_dump()))
    return settings.model_dump(mode="json")


@router.post("/ai/test")
async def test_ai_settings(
    fm: FileManager = Depends(get_file_manager),
    ai_client: AIClient = Depends(get_ai_client),
):
    settings = fm.get_settings()
    try:
        reply = await ai_client.test_connection(settings.ai)
    except RuntimeError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"ok": True, "reply": reply}


@router.put("/prompts")
def update_prompt_settings(req: PromptSettingsUpdateRequest, fm: FileManager = Depends(get_file_manager)):
    current = fm.get_settings().prompts
    clarity = current.clarity_template
    judgment = current.judgment_template
    if req.clarity_template is not None:
        clarity = _check_template("clarity_template", req.clarity_template, _CLARITY_FIELDS)
    if req.judgment_template is not None:
        judgment = _check_template("judgment_template", req.judgment_template, _JUDGMENT_FIELDS)
    settings = fm.update_prompt_settings(PromptSettings(clarity_template=clarity, judgment_template=judgment))
    return settings.model_dump(mode="json")


@router.put("/connectivity")
def update_connectivity_settings(
    req: ConnectivitySettingsUpdateRequest,
    fm: FileManager = Depends(get_file_manager),
    monitor: ConnectivityMonitor = Depends(get_connectivity),
):
    settings = fm.update_connectivity_settings(ConnectivitySettings(**req.model_dump()))
    monitor.probe_url = settings.connectivity.probe_url
    return settings.model_dump(mode="json")
