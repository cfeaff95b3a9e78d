from __future__ import annotations

from ..models.record import RecordVariant
from ..models.status import ClassifiedError, ErrorCategory

NO_TRACE_PLACEHOLDER = "No technical trace available."

_CAPACITY_MARKERS = ("429", "quota", "limit")


def _error_text(error: object) -> str:
    if error is None:
        return ""
    try:
        return str(error)
    except Exception:
        return ""


def classify(error: object, context: RecordVariant) -> ClassifiedError:
    """Map a generation failure to a user-facing category.

    Never raises; anything unrecognised is a node interruption.
    """
    raw = _error_text(error)
    trace = raw or NO_TRACE_PLACEHOLDER
    text = raw.lower()
    label = context.label if isinstance(context, RecordVariant) else str(context or "Request")

    if any(marker in text for marker in _CAPACITY_MARKERS):
        return ClassifiedError(
            category=ErrorCategory.capacity_limit,
            title=f"{label} Capacity Limit",
            detail="Authority Tier node handling maximum volume. Resolves shortly.",
            trace=trace,
        )
    return ClassifiedError(
        category=ErrorCategory.node_interruption,
        title=f"{label} Node Interruption",
        detail="Encountered an internal exception during protocol generation.",
        trace=trace,
    )


def sync_interrupted(error: object) -> ClassifiedError:
    return ClassifiedError(
        category=ErrorCategory.sync_interruption,
        title="Sync Interrupted",
        detail="Network error during batch sync.",
        trace=_error_text(error) or NO_TRACE_PLACEHOLDER,
    )
