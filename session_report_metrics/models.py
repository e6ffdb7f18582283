"""
Message and metrics record types shared across the pipeline.
"""

from dataclasses import dataclass, fields
from datetime import datetime

# Canonical field order (display order for summaries and detail rows)
METRIC_FIELDS = [
    "session_hours", "scheduled_hours",
    "soft_pledges", "hard_pledges", "estimated_pledges",
    "number_of_pledges", "number_of_calls", "number_of_pickups",
]

DECIMAL_FIELDS = frozenset({
    "session_hours", "scheduled_hours",
    "soft_pledges", "hard_pledges", "estimated_pledges",
})
INTEGER_FIELDS = frozenset({
    "number_of_pledges", "number_of_calls", "number_of_pickups",
})


@dataclass(frozen=True)
class RawMessage:
    """One email as handed over by a message source. Read-only."""
    sender: str
    to: tuple = ()
    cc: tuple = ()
    bcc: tuple = ()
    sent_at: datetime | None = None
    subject: str = ""
    body: str = ""
    message_id: str = ""

    @property
    def all_recipients(self) -> str:
        return ", ".join(list(self.to) + list(self.cc) + list(self.bcc))


@dataclass
class MetricsRecord:
    """Metrics pulled from one report body.

    ``None`` means the label was not found; ``0`` means it was found with a
    zero value.
    """
    session_hours: float | None = None
    scheduled_hours: float | None = None
    soft_pledges: float | None = None
    hard_pledges: float | None = None
    estimated_pledges: float | None = None
    number_of_pledges: int | None = None
    number_of_calls: int | None = None
    number_of_pickups: int | None = None

    def present_fields(self) -> list[str]:
        return [f.name for f in fields(self) if getattr(self, f.name) is not None]

    def is_empty(self) -> bool:
        return not self.present_fields()

    def as_dict(self, fill_zero: bool = False) -> dict:
        out = {}
        for name in METRIC_FIELDS:
            val = getattr(self, name)
            if val is None and fill_zero:
                val = 0 if name in INTEGER_FIELDS else 0.0
            out[name] = val
        return out


@dataclass
class ScanRequest:
    """What the operator asked for: who the reports went to, and how far back."""
    recipient: str
    date_range: str | None = None
    operator_email: str | None = None
