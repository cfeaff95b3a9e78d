from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, model_validator

from .intake import ClarityInput, JudgmentInput
from .report import ClarityReport, JudgmentReport


def now_utc() -> datetime:
    return datetime.now(UTC)


def iso_timestamp(dt: datetime | None = None) -> str:
    """ISO-8601 UTC with millisecond precision and a ``Z`` suffix.

    A fixed width keeps lexicographic order equal to chronological order.
    """
    value = (dt or now_utc()).astimezone(UTC)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


class RecordVariant(str, Enum):
    technical = "technical"
    strategic = "strategic"

    @property
    def label(self) -> str:
        return self.value.capitalize()


class RecordStatus(str, Enum):
    pending = "pending"
    completed = "completed"
    failed = "failed"


class InvalidTransitionError(ValueError):
    pass


class SavedRecord(BaseModel):
    """A request/result pair with a lifecycle status.

    Records are immutable; a status change produces a new record with the
    same ``id``, ``input`` and ``timestamp``.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    timestamp: str
    status: RecordStatus = RecordStatus.pending

    @model_validator(mode="after")
    def _completed_requires_report(self):
        report = getattr(self, "report", None)
        if self.status == RecordStatus.completed and report is None:
            raise ValueError("completed record must carry a report")
        if self.status != RecordStatus.completed and report is not None:
            raise ValueError("only completed records carry a report")
        return self

    def resolve(self, report: Any) -> SavedRecord:
        if self.status != RecordStatus.pending:
            raise InvalidTransitionError(f"cannot complete record {self.id} in status {self.status.value}")
        if report is None:
            raise InvalidTransitionError(f"cannot complete record {self.id} without a report")
        return self.model_copy(update={"report": report, "status": RecordStatus.completed})

    def fail(self) -> SavedRecord:
        if self.status != RecordStatus.pending:
            raise InvalidTransitionError(f"cannot fail record {self.id} in status {self.status.value}")
        return self.model_copy(update={"status": RecordStatus.failed})

    def to_storage(self) -> dict:
        return self.model_dump(mode="json", exclude_none=True)


class TechnicalRecord(SavedRecord):
    input: ClarityInput
    report: ClarityReport | None = None


class StrategicRecord(SavedRecord):
    input: JudgmentInput
    report: JudgmentReport | None = None


AnyInput = Union[ClarityInput, JudgmentInput]
AnyReport = Union[ClarityReport, JudgmentReport]


@dataclass(frozen=True)
class VariantSpec:
    variant: RecordVariant
    id_prefix: str
    storage_key: str
    record_cls: type[SavedRecord]
    input_cls: type[BaseModel]
    report_cls: type[BaseModel]


VARIANT_SPECS: dict[RecordVariant, VariantSpec] = {
    RecordVariant.technical: VariantSpec(
        variant=RecordVariant.technical,
        id_prefix="TR",
        storage_key="clarity_history",
        record_cls=TechnicalRecord,
        input_cls=ClarityInput,
        report_cls=ClarityReport,
    ),
    RecordVariant.strategic: VariantSpec(
        variant=RecordVariant.strategic,
        id_prefix="SJ",
        storage_key="judgment_history",
        record_cls=StrategicRecord,
        input_cls=JudgmentInput,
        report_cls=JudgmentReport,
    ),
}


def variant_spec(variant: RecordVariant) -> VariantSpec:
    return VARIANT_SPECS[variant]


def variant_of_input(payload: BaseModel) -> RecordVariant:
    for spec in VARIANT_SPECS.values():
        if isinstance(payload, spec.input_cls):
            return spec.variant
    raise TypeError(f"unsupported intake payload: {type(payload).__name__}")


class MergedEntry(BaseModel):
    """Read-only registry row tagging a record with its variant."""

    model_config = ConfigDict(frozen=True)

    variant: RecordVariant
    record: TechnicalRecord | StrategicRecord

    @property
    def timestamp(self) -> str:
        return self.record.timestamp
