from __future__ import annotations

import json
import logging
import uuid
from collections.abc import Callable
from typing import Protocol

from pydantic import ValidationError

from ..models.intake import ClarityInput, JudgmentInput
from ..models.record import AnyInput, AnyReport, RecordVariant, iso_timestamp, variant_spec
from ..models.report import (
    ClarityReport,
    Confidence,
    DecisionLevel,
    DecisionOption,
    DecisionSummary,
    JudgmentReport,
    JudgmentSections,
    RankedHypothesis,
    RiskBand,
    RiskProfile,
    TitledList,
)
from ..models.settings import AIProvider, PromptSettings, SettingsBundle
from .ai_client import AIClient
from .prompt_renderer import render_template

logger = logging.getLogger(__name__)


class GenerationClient(Protocol):
    async def generate(self, variant: RecordVariant, payload: AnyInput) -> AnyReport: ...


def _json_block(model) -> str:
    return json.dumps(model.model_dump(mode="json", exclude_none=True), ensure_ascii=False, indent=2)


def build_clarity_prompt(payload: ClarityInput, template: str) -> str:
    values = {
        "client_json": _json_block(payload.client),
        "vehicle_json": _json_block(payload.vehicle),
        "symptoms": payload.symptoms,
        "diagnostic_codes": payload.diagnostic_codes or "none reported",
        "occurrence": payload.occurrence.value,
        "onset": payload.onset.value,
        "driveability": payload.driveability.value,
        "recent_work": payload.recent_work or "none reported",
    }
    return render_template(template, values)


def build_judgment_prompt(payload: JudgmentInput, template: str) -> str:
    values = {
        "client_json": _json_block(payload.client),
        "vehicle_json": _json_block(payload.vehicle),
        "decision_type": payload.decision_type.value,
        "subject": payload.subject,
        "context": payload.context or "not provided",
        "priority_concerns": payload.priority_concerns or "not provided",
    }
    return render_template(template, values)


def extract_json_payload(text: str) -> dict:
    candidate = (text or "").strip()
    if not candidate:
        raise RuntimeError("empty report response")

    try:
        loaded = json.loads(candidate)
        if isinstance(loaded, dict):
            return loaded
    except json.JSONDecodeError:
        pass

    # Models sometimes wrap the object in fences or prose.
    start = candidate.find("{")
    end = candidate.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise RuntimeError("report response is not valid JSON")

    try:
        loaded = json.loads(candidate[start : end + 1])
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"report JSON parse failed: {exc}") from exc

    if not isinstance(loaded, dict):
        raise RuntimeError("report response root must be a JSON object")
    return loaded


class ReportGenerator:
    """Turns a validated intake into a Clarity Report or a Judgment brief."""

    def __init__(self, ai_client: AIClient, settings_provider: Callable[[], SettingsBundle]):
        self.ai_client = ai_client
        self.settings_provider = settings_provider

    async def generate(self, variant: RecordVariant, payload: AnyInput) -> AnyReport:
        spec = variant_spec(variant)
        if not isinstance(payload, spec.input_cls):
            raise TypeError(f"{variant.label} generation expects {spec.input_cls.__name__}")

        settings = self.settings_provider()
        if settings.ai.provider == AIProvider.mock:
            report = self._mock_report(variant, payload)
        else:
            prompt = self._build_prompt(variant, payload, settings.prompts)
            images = payload.images.as_base64_list() if payload.images else None
            raw = await self.ai_client.generate_text(prompt, settings.ai, images)
            data = extract_json_payload(raw)
            try:
                report = spec.report_cls.model_validate(data)
            except ValidationError as exc:
                raise RuntimeError(
                    f"{variant.label} report failed validation ({exc.error_count()} error(s))"
                ) from exc

        logger.info("Generated %s report via %s", variant.value, settings.ai.provider.value)
        return report.model_copy(update={"id": uuid.uuid4().hex, "timestamp": iso_timestamp()})

    def _build_prompt(self, variant: RecordVariant, payload: AnyInput, prompts: PromptSettings) -> str:
        if variant == RecordVariant.technical:
            return build_clarity_prompt(payload, prompts.clarity_template)
        return build_judgment_prompt(payload, prompts.judgment_template)

    def _mock_report(self, variant: RecordVariant, payload: AnyInput) -> AnyReport:
        vehicle = payload.vehicle
        name = f"{vehicle.year} {vehicle.make} {vehicle.model}"
        if variant == RecordVariant.technical:
            return ClarityReport(
                bottom_line=f"[mock] {name}: {payload.symptoms.strip()[:120]}",
                risk_profile=RiskProfile(band=RiskBand.amber, label="Monitor", positioning="Mock assessment"),
                hypotheses=[
                    RankedHypothesis(
                        title="Hybrid battery cell imbalance",
                        reasoning=f"Symptoms occur when {payload.occurrence.value}.",
                        confidence=Confidence.medium,
                    )
                ],
                overall_confidence=Confidence.low,
                missing_evidence=["Freeze-frame data"],
                question_script=["Which modules reported codes?"],
                decision_options=[DecisionOption(label="Inspect", description="Book a hybrid system inspection.")],
                signature_feature=TitledList(title="Mock", items=[name]),
                closing_reflection="Generated by the mock provider.",
            )
        return JudgmentReport(
            title=f"[mock] {payload.decision_type.value}: {payload.subject.strip()[:120]}",
            decision_frame=f"Decision about {name}.",
            sections=JudgmentSections(
                suitability="Not assessed by the mock provider.",
                decision_summary=DecisionSummary(level=DecisionLevel.moderate, text="Mock summary."),
            ),
            closing_note="Generated by the mock provider.",
        )
