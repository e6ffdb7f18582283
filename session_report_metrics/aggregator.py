"""
Aggregator – folds per-message metrics into totals and detail rows.

Every eligible message yields one detail row and bumps emails_found.  Only
messages whose body produced at least one field bump emails_with_metrics
and contribute to the totals.  The gap between the two counters is the
main "something didn't parse" signal for the reviewer.
"""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime

from session_report_metrics.metrics_parser import parse_metrics
from session_report_metrics.models import METRIC_FIELDS, MetricsRecord

log = logging.getLogger(__name__)


@dataclass
class TotalsRecord:
    session_hours: float = 0.0
    scheduled_hours: float = 0.0
    soft_pledges: float = 0.0
    hard_pledges: float = 0.0
    estimated_pledges: float = 0.0
    number_of_pledges: int = 0
    number_of_calls: int = 0
    number_of_pickups: int = 0

    def add(self, record: MetricsRecord):
        for name in record.present_fields():
            setattr(self, name, getattr(self, name) + getattr(record, name))


def _ratio(numerator, denominator, scale=1):
    if not denominator:
        return 0.0
    return numerator * scale / denominator


@dataclass
class DerivedMetrics:
    pickup_rate: float = 0.0
    avg_pledge_amount: float = 0.0
    calls_per_hour: float = 0.0

    @classmethod
    def from_totals(cls, totals: TotalsRecord) -> "DerivedMetrics":
        return cls(
            pickup_rate=_ratio(totals.number_of_pickups, totals.number_of_calls, 100),
            avg_pledge_amount=_ratio(totals.estimated_pledges, totals.number_of_pledges),
            calls_per_hour=_ratio(totals.number_of_calls, totals.session_hours),
        )


@dataclass
class DetailRow:
    """One eligible message with its metrics, absent fields shown as zero."""
    sent_at: datetime | None
    subject: str
    sender: str = ""
    has_metrics: bool = False
    session_hours: float = 0.0
    scheduled_hours: float = 0.0
    soft_pledges: float = 0.0
    hard_pledges: float = 0.0
    estimated_pledges: float = 0.0
    number_of_pledges: int = 0
    number_of_calls: int = 0
    number_of_pickups: int = 0

    @classmethod
    def from_message(cls, msg, record: MetricsRecord | None) -> "DetailRow":
        values = (record or MetricsRecord()).as_dict(fill_zero=True)
        return cls(
            sent_at=msg.sent_at,
            subject=msg.subject,
            sender=msg.sender,
            has_metrics=record is not None,
            **values,
        )


@dataclass
class AggregationResult:
    totals: TotalsRecord = field(default_factory=TotalsRecord)
    derived: DerivedMetrics = field(default_factory=DerivedMetrics)
    details: list = field(default_factory=list)
    emails_found: int = 0
    emails_with_metrics: int = 0

    @property
    def missing_metrics(self) -> int:
        return self.emails_found - self.emails_with_metrics

    def to_dict(self) -> dict:
        return {
            "emails_found": self.emails_found,
            "emails_with_metrics": self.emails_with_metrics,
            "totals": asdict(self.totals),
            "derived": asdict(self.derived),
            "details": [asdict(row) for row in self.details],
        }


def aggregate(messages, parse=parse_metrics) -> AggregationResult:
    """Parse each message in order and fold the results.

    A parser blowing up on one message is logged and the message counted as
    having no metrics; the rest of the batch carries on.
    """
    result = AggregationResult()
    for msg in messages:
        try:
            record = parse(msg.body)
        except Exception as exc:
            log.error("Metrics parse error: sender=%s subject=%s error=%s",
                      msg.sender, msg.subject, exc)
            record = None

        result.details.append(DetailRow.from_message(msg, record))
        result.emails_found += 1
        if record is not None:
            result.totals.add(record)
            result.emails_with_metrics += 1
            log.debug("Metrics: subject=%s fields=%s", msg.subject, record.present_fields())
        else:
            log.debug("No metrics: sender=%s subject=%s", msg.sender, msg.subject)

    result.derived = DerivedMetrics.from_totals(result.totals)
    log.info("Aggregated: emails_found=%d emails_with_metrics=%d totals=%s",
             result.emails_found, result.emails_with_metrics,
             {f: getattr(result.totals, f) for f in METRIC_FIELDS})
    return result
