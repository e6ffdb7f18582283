"""
Metrics parser – turns one report body into a MetricsRecord.

Session length gets its own two-stage handling because reporters put the
completed and the scheduled hours on the same line:

    Session length: 1.5 hours (2hrs scheduled)

Stage A reads that whole line; a labelled line without a number means the
session length is absent.  Stage B is only tried when there is no labelled
line at all; it accepts a value further away from the label but insists on
an hour unit after it.
"""

import logging

from session_report_metrics.field_extractor import extract_field, parse_amount
from session_report_metrics.field_labels import (
    FIELD_SPECS,
    FIRST_NUMBER_RE,
    PAREN_NUMBER_RE,
    SESSION_LINE_RE,
    SESSION_UNIT_RE,
)
from session_report_metrics.models import MetricsRecord

log = logging.getLogger(__name__)

# Non-breaking spaces that rich-text editors sprinkle into reports
_NBSP_CHARS = ("\u00a0", "\u202f", "\u2007")


def normalize_body(body: str | None) -> str:
    body = body or ""
    for ch in _NBSP_CHARS:
        body = body.replace(ch, " ")
    return body


def parse_session_length(text: str):
    """Return (session_hours, scheduled_hours); either may be None."""
    m = SESSION_LINE_RE.search(text)
    if m:
        line = m.group(1)
        first = FIRST_NUMBER_RE.search(line)
        if not first:
            log.debug("Session length line '%s' has no number", line.strip())
            return None, None
        hours = parse_amount(first.group(1))
        scheduled = None
        paren = PAREN_NUMBER_RE.search(line, first.end())
        if paren:
            scheduled = parse_amount(paren.group(1))
        log.debug("Session length line '%s' -> hours=%s scheduled=%s",
                  line.strip(), hours, scheduled)
        return hours, scheduled

    m = SESSION_UNIT_RE.search(text)
    if m:
        hours = parse_amount(m.group(1))
        log.debug("Session length (unit fallback) '%s' -> hours=%s", m.group(0), hours)
        return hours, None

    return None, None


def parse_metrics(body: str | None) -> MetricsRecord | None:
    """Extract every known field from *body*.

    Returns None when nothing at all matched, so callers can tell a report
    without metrics apart from a report of zeros.
    """
    text = normalize_body(body)
    record = MetricsRecord()

    record.session_hours, record.scheduled_hours = parse_session_length(text)

    for name, spec in FIELD_SPECS.items():
        val = extract_field(text, spec)
        if val is not None:
            setattr(record, name, val)

    if record.is_empty():
        return None
    return record
