"""
Scanner – one end-to-end scan:

  1) normalise the target recipient and derive the cutoff from the range token
  2) fetch candidate messages from the source
  3) keep only eligible messages (filters.filter_eligible)
  4) parse + aggregate (aggregator.aggregate)

Problems outside the engine (unreadable store, bad range token, missing
recipient) come back as ScanResult(ok=False, error=...) instead of raising.
"""

import logging
from dataclasses import dataclass
from datetime import datetime

from session_report_metrics.aggregator import AggregationResult, aggregate
from session_report_metrics.date_range import InvalidDateRangeError, parse_date_range
from session_report_metrics.filters import filter_eligible, normalize_address
from session_report_metrics.message_source import MessageSourceError
from session_report_metrics.models import ScanRequest

log = logging.getLogger(__name__)


@dataclass
class ScanResult:
    ok: bool
    error: str = ""
    recipient: str = ""
    cutoff: datetime | None = None
    scanned: int = 0
    aggregation: AggregationResult | None = None

    @classmethod
    def failure(cls, error: str, **kwargs) -> "ScanResult":
        log.error("Scan failed: %s", error)
        return cls(ok=False, error=error, **kwargs)


def run_scan(source, request: ScanRequest, now: datetime | None = None) -> ScanResult:
    recipient = normalize_address(request.recipient)
    if not recipient:
        return ScanResult.failure("No recipient given")

    try:
        cutoff = parse_date_range(request.date_range, now=now)
    except InvalidDateRangeError as exc:
        return ScanResult.failure(str(exc), recipient=recipient)

    operator = normalize_address(request.operator_email) or None
    if operator is None:
        log.warning("Operator address unknown – falling back to sender != recipient check")
    log.info("Scan: recipient=%s cutoff=%s operator=%s",
             recipient, cutoff.isoformat() if cutoff else "none", operator)

    try:
        messages = source.fetch_messages()
    except MessageSourceError as exc:
        return ScanResult.failure(f"Could not fetch messages: {exc}",
                                  recipient=recipient, cutoff=cutoff)

    eligible = filter_eligible(messages, recipient, cutoff=cutoff, operator_email=operator)
    result = aggregate(eligible)

    return ScanResult(
        ok=True,
        recipient=recipient,
        cutoff=cutoff,
        scanned=len(messages),
        aggregation=result,
    )
