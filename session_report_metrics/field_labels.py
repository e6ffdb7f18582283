"""
Field labels – ordered label/value-shape patterns for each report metric.

Report writers type these by hand, so every field is known under a few
spellings.  Each spelling becomes one PatternCandidate; a FieldSpec keeps
them in the order they should be tried (most specific first, so that
"Total in soft pledges:" wins over the shorter "Soft pledges:").

Value shapes:
  decimal  – $1,234.50 / 250 / 1.5   (grouping by three digits allowed)
  integer  – 20 / 1,200              (grouping allowed, no fraction)
"""

import re
from dataclasses import dataclass

DECIMAL = "decimal"
INTEGER = "integer"

# A value ends where the number ends: "12,34", "1,2345" and "20.5" (as a count)
# are not cut down to a shorter valid number, they don't match at all.
_VALUE_END = r"(?!\d|[,.]\d)"

_DECIMAL_VALUE = r"(\d{1,3}(?:,\d{3})+(?:\.\d+)?|\d+(?:\.\d+)?)" + _VALUE_END
_INTEGER_VALUE = r"(\d{1,3}(?:,\d{3})+|\d+)" + _VALUE_END

# Anything that isn't a digit or a line break: asterisks, "$", "USD", "approx." ...
_NOISE = r"[^\d\n]*?"

# Canonical field -> label spellings, most specific first
FIELD_LABELS: dict[str, list[str]] = {
    "soft_pledges": ["total in soft pledges", "soft pledges"],
    "hard_pledges": ["total in hard pledges", "hard pledges"],
    "estimated_pledges": ["total estimated pledges", "estimated pledges"],
    "number_of_pledges": ["total number of pledges", "number of pledges"],
    "number_of_calls": ["number of calls", "calls"],
    "number_of_pickups": ["number of pickups", "pickups"],
}

FIELD_SHAPES: dict[str, str] = {
    "soft_pledges": DECIMAL,
    "hard_pledges": DECIMAL,
    "estimated_pledges": DECIMAL,
    "number_of_pledges": INTEGER,
    "number_of_calls": INTEGER,
    "number_of_pickups": INTEGER,
}

SESSION_LABEL = "session length"


@dataclass(frozen=True)
class PatternCandidate:
    """One label spelling plus the value shape captured after it."""
    label: str
    shape: str
    pattern: re.Pattern

    def search(self, text: str) -> str | None:
        m = self.pattern.search(text)
        return m.group(1) if m else None


@dataclass(frozen=True)
class FieldSpec:
    name: str
    shape: str
    candidates: tuple


def label_regex(label: str) -> str:
    """Regex for *label*: word-bounded, any run of spaces between words, optional space before ':'."""
    words = [re.escape(w) for w in label.split()]
    return r"\b" + r"\s+".join(words) + r"\s*:"


def build_candidate(label: str, shape: str) -> PatternCandidate:
    value = _DECIMAL_VALUE if shape == DECIMAL else _INTEGER_VALUE
    pattern = re.compile(label_regex(label) + _NOISE + value, re.IGNORECASE)
    return PatternCandidate(label=label, shape=shape, pattern=pattern)


def build_field_spec(name: str, labels: list[str] | None = None,
                     shape: str | None = None) -> FieldSpec:
    labels = labels if labels is not None else FIELD_LABELS[name]
    shape = shape or FIELD_SHAPES[name]
    return FieldSpec(
        name=name,
        shape=shape,
        candidates=tuple(build_candidate(lbl, shape) for lbl in labels),
    )


FIELD_SPECS: dict[str, FieldSpec] = {
    name: build_field_spec(name) for name in FIELD_LABELS
}


# ------------------------------------------------------------------
# Session length
# ------------------------------------------------------------------
# Stage A: the labelled line, from the label to end of line.
SESSION_LINE_RE = re.compile(
    label_regex(SESSION_LABEL) + r"[^\S\n]*([^\n]*)",
    re.IGNORECASE,
)

# Stage B: no "Session length:" line at all.  Label, short noise possibly
# spanning a line break, then a value that must be followed by an hour unit.
SESSION_UNIT_RE = re.compile(
    r"\bsession\s+length\s*:?[^\d]{0,40}?(\d+(?:\.\d+)?)\s*(?:hours?|hrs?)\b",
    re.IGNORECASE,
)

FIRST_NUMBER_RE = re.compile(r"(\d+(?:\.\d+)?)")

# "(2hrs)", "(scheduled 2.5 hours)" – skip leading non-digits inside the parens
PAREN_NUMBER_RE = re.compile(r"\([^\d)]*(\d+(?:\.\d+)?)")
