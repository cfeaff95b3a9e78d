from __future__ import annotations

from enum import Enum

import httpx
from pydantic import BaseModel, Field, field_validator


class AIProvider(str, Enum):
    mock = "mock"
    openai_compatible = "openai_compatible"
    anthropic = "anthropic"


DEFAULT_CLARITY_TEMPLATE = """You are a senior hybrid and electric vehicle diagnostician writing a Clarity Report for a vehicle owner.
You do not scan vehicles or sell parts. Your job is to turn the owner's description into decision support.

## Client
{{client_json}}

## Vehicle
{{vehicle_json}}

## Symptoms
{{symptoms}}

## Diagnostic codes
{{diagnostic_codes}}

## Conditions
- Occurs: {{occurrence}}
- Onset: {{onset}}
- Driveability: {{driveability}}
- Recent work: {{recent_work}}

Attached photos (if any) show the exterior, dashboard, engine bay and battery intake.

Return ONLY valid JSON, no markdown fences, with exactly these keys:
bottom_line (string),
risk_profile {band: "Green"|"Amber"|"Red", label, positioning},
hypotheses [{title, reasoning, confidence: "High"|"Medium"|"Low"}] ranked most likely first,
overall_confidence ("High"|"Medium"|"Low"),
missing_evidence [string],
question_script [string] questions the owner should ask a technician,
decision_options [{label, description}],
signature_feature {title, items [string]},
closing_reflection (string).
""".strip()


DEFAULT_JUDGMENT_TEMPLATE = """You are an independent mobility strategy advisor preparing a Decision Roadmap.
Be skeptical, quantify where you can and say plainly what is unknown.

## Client
{{client_json}}

## Vehicle
{{vehicle_json}}

## Decision
- Type: {{decision_type}}
- Subject: {{subject}}
- Context: {{context}}
- Priority concerns: {{priority_concerns}}

Return ONLY valid JSON, no markdown fences, with exactly these keys:
title (string),
advisory_source {entity, years_in_business},
decision_frame (string),
sections {
  suitability, financial_calibration {import_duty, levies, landed_cost_note},
  mechanical_insight, logistics_alert, skepticism_note,
  false_fixes {title, items [string]}, red_flags [string], unknowns [string],
  verification_questions [string],
  decision_summary {level: "Low"|"Moderate"|"High", text}
},
closing_note (string).
""".strip()


class AISettings(BaseModel):
    provider: AIProvider = AIProvider.mock
    api_base: str = ""
    api_key: str = ""
    model: str = "gpt-4o-mini"
    temperature: float = 0.2
    timeout_seconds: int = 120


class AISettingsUpdateRequest(BaseModel):
    provider: AIProvider
    api_base: str = ""
    api_key: str = ""
    model: str = "gpt-4o-mini"
    temperature: float = Field(default=0.2, ge=0.0, le=2.0)
    timeout_seconds: int = Field(default=120, ge=1)


class PromptSettings(BaseModel):
    clarity_template: str = Field(default=DEFAULT_CLARITY_TEMPLATE)
    judgment_template: str = Field(default=DEFAULT_JUDGMENT_TEMPLATE)


class PromptSettingsUpdateRequest(BaseModel):
    clarity_template: str | None = None
    judgment_template: str | None = None


class ConnectivitySettings(BaseModel):
    # Empty probe_url disables polling; state then changes only via the API.
    probe_url: str = ""
    probe_interval_seconds: float = 15.0
    auto_sync: bool = True


class ConnectivitySettingsUpdateRequest(BaseModel):
    probe_url: str = ""
    probe_interval_seconds: float = Field(default=15.0, gt=0)
    auto_sync: bool = True

    @field_validator("probe_url")
    @classmethod
    def _check_probe_url(cls, value: str) -> str:
        value = value.strip()
        if not value:
            return value
        try:
            url = httpx.URL(value)
        except (httpx.InvalidURL, ValueError) as exc:
            raise ValueError(f"invalid probe_url: {exc}") from exc
        if url.scheme not in {"http", "https"} or not url.host:
            raise ValueError("probe_url must be an absolute http(s) URL")
        return value


class SettingsBundle(BaseModel):
    ai: AISettings = Field(default_factory=AISettings)
    prompts: PromptSettings = Field(default_factory=PromptSettings)
    connectivity: ConnectivitySettings = Field(default_factory=ConnectivitySettings)
