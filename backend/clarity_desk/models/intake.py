from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class BatteryType(str, Enum):
    oem = "OEM"
    manufacturer_refurb = "Manufacturer Refurb"
    third_party_reman = "Third-Party Reman"
    unknown = "Unknown"


class Occurrence(str, Enum):
    cold = "cold"
    warm = "warm"
    hills = "hills"
    traffic = "traffic"
    random = "random"


class Onset(str, Enum):
    sudden = "sudden"
    gradual = "gradual"


class Driveability(str, Enum):
    normal = "normal"
    weak = "weak"
    limp = "limp"
    overheating = "overheating"


class DecisionType(str, Enum):
    import_strategy = "Import Strategy"
    fleet_transition = "Fleet Transition"
    infrastructure_planning = "Infrastructure Planning"
    investment_risk = "Investment Risk"
    policy_alignment = "Policy Alignment"


class _FrozenModel(BaseModel):
    # Accepts the camelCase keys the intake forms post as well as snake_case.
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


class ClientInfo(_FrozenModel):
    name: str = Field(min_length=1)
    occupation: str = ""
    email: str = ""
    location: str = ""
    telephone: str = ""


class VehicleInfo(_FrozenModel):
    make: str = Field(min_length=1)
    model: str = Field(min_length=1)
    year: str = Field(min_length=1)
    trim: str = ""
    odometer: str = ""
    vin: str | None = None
    battery_type: BatteryType | None = None
    destination_country: str | None = None
    hybrid_type: str | None = None
    source_country: str | None = None
    intended_use: str | None = None

    @field_validator("year", "odometer", mode="before")
    @classmethod
    def _coerce_numeric_text(cls, value):
        # Forms send these as numbers or strings.
        if isinstance(value, (int, float)):
            return str(value)
        return value


class IntakeImages(_FrozenModel):
    """Optional photos attached to an intake, base64 encoded."""

    exterior: str | None = None
    dashboard: str | None = None
    engine_bay: str | None = None
    battery_intake: str | None = None

    def as_base64_list(self) -> list[str]:
        images: list[str] = []
        for value in (self.exterior, self.dashboard, self.engine_bay, self.battery_intake):
            if not value:
                continue
            # Strip a data URL prefix such as "data:image/jpeg;base64,".
            _, sep, tail = value.partition("base64,")
            images.append(tail if sep else value)
        return images


class ClarityInput(_FrozenModel):
    client: ClientInfo
    vehicle: VehicleInfo
    symptoms: str = Field(min_length=1)
    diagnostic_codes: str = ""
    occurrence: Occurrence = Occurrence.random
    onset: Onset = Onset.gradual
    driveability: Driveability = Driveability.normal
    recent_work: str = ""
    images: IntakeImages | None = None


class JudgmentInput(_FrozenModel):
    client: ClientInfo
    vehicle: VehicleInfo
    decision_type: DecisionType
    subject: str = Field(min_length=1)
    context: str = ""
    priority_concerns: str = ""
    images: IntakeImages | None = None
