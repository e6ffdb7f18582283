"""
Field extractor – pulls one numeric value out of report text.

Each FieldSpec carries an ordered list of PatternCandidates.  The first
candidate that both matches and parses wins; if none does the field is
absent (None), which is different from a reported zero.
"""

import logging

from session_report_metrics.field_labels import DECIMAL, FieldSpec

log = logging.getLogger(__name__)


def parse_amount(val):
    """Parse '1,234.50' / '$250' / '2' into a float, or None."""
    if val is None:
        return None
    val = str(val).strip()
    if not val:
        return None
    val = val.replace(',', '').replace('$', '').replace(' ', '')
    try:
        return float(val)
    except ValueError:
        return None


def parse_count(val):
    """Parse '1,200' / '20' into an int, or None.  Fractions are rejected."""
    if val is None:
        return None
    val = str(val).strip().replace(',', '')
    if not val:
        return None
    try:
        return int(val)
    except ValueError:
        return None


def _extract(text: str, spec: FieldSpec, parse):
    if not text:
        return None
    for cand in spec.candidates:
        raw = cand.search(text)
        if raw is None:
            continue
        val = parse(raw)
        if val is None:
            log.debug("Field '%s': label '%s' matched but '%s' did not parse",
                      spec.name, cand.label, raw)
            continue
        log.debug("Field '%s': label '%s' matched '%s'", spec.name, cand.label, raw)
        return val
    return None


def extract_decimal(text: str, spec: FieldSpec) -> float | None:
    return _extract(text, spec, parse_amount)


def extract_integer(text: str, spec: FieldSpec) -> int | None:
    return _extract(text, spec, parse_count)


def extract_field(text: str, spec: FieldSpec):
    """Dispatch on the field's value shape."""
    if spec.shape == DECIMAL:
        return extract_decimal(text, spec)
    return extract_integer(text, spec)
