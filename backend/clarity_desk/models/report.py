from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Confidence(str, Enum):
    high = "High"
    medium = "Medium"
    low = "Low"


class RiskBand(str, Enum):
    green = "Green"
    amber = "Amber"
    red = "Red"


class DecisionLevel(str, Enum):
    low = "Low"
    moderate = "Moderate"
    high = "High"


class _ReportModel(BaseModel):
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class RiskProfile(_ReportModel):
    band: RiskBand
    label: str = ""
    positioning: str = ""


class RankedHypothesis(_ReportModel):
    title: str
    reasoning: str = ""
    confidence: Confidence = Confidence.medium


class DecisionOption(_ReportModel):
    label: str
    description: str = ""


class TitledList(_ReportModel):
    title: str = ""
    items: list[str] = Field(default_factory=list)


class ClarityReport(_ReportModel):
    id: str = ""
    timestamp: str = ""
    bottom_line: str = Field(min_length=1)
    risk_profile: RiskProfile
    hypotheses: list[RankedHypothesis] = Field(default_factory=list)
    overall_confidence: Confidence = Confidence.medium
    missing_evidence: list[str] = Field(default_factory=list)
    question_script: list[str] = Field(default_factory=list)
    decision_options: list[DecisionOption] = Field(default_factory=list)
    signature_feature: TitledList = Field(default_factory=TitledList)
    closing_reflection: str = ""


class AdvisorySource(_ReportModel):
    entity: str = ""
    years_in_business: str = ""


class FinancialCalibration(_ReportModel):
    import_duty: str = ""
    levies: str = ""
    landed_cost_note: str = ""


class DecisionSummary(_ReportModel):
    level: DecisionLevel
    text: str = ""


class JudgmentSections(_ReportModel):
    suitability: str = ""
    financial_calibration: FinancialCalibration = Field(default_factory=FinancialCalibration)
    mechanical_insight: str = ""
    logistics_alert: str = ""
    skepticism_note: str = ""
    false_fixes: TitledList = Field(default_factory=TitledList)
    red_flags: list[str] = Field(default_factory=list)
    unknowns: list[str] = Field(default_factory=list)
    verification_questions: list[str] = Field(default_factory=list)
    decision_summary: DecisionSummary


class JudgmentReport(_ReportModel):
    id: str = ""
    timestamp: str = ""
    title: str = Field(min_length=1)
    advisory_source: AdvisorySource = Field(default_factory=AdvisorySource)
    decision_frame: str = ""
    sections: JudgmentSections
    closing_note: str = ""
