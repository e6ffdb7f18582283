"""
Eligibility filtering.

A mailbox search for "messages involving X" returns whole threads: replies
X sent back, messages outside the window, CCs on other people's mail.
is_eligible() is the exact boundary the aggregation relies on:

  1. reject  sent before the cutoff (when a cutoff is set)
  2. reject  sender address is not the operator's (when it is known)
     reject  sent by the recipient    (fallback when it is not)
  3. accept  only if the recipient is among To / Cc / Bcc
"""

import logging
import re
from email.utils import getaddresses

log = logging.getLogger(__name__)

_ADDR_RE = re.compile(r"[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}")


def normalize_address(raw: str | None) -> str:
    """'Dan Smith <Dan@Example.com>' -> 'dan@example.com'.

    Strings that don't look like an address are lowercased and trimmed.
    """
    raw = (raw or "").strip()
    if not raw:
        return ""
    parsed = [addr for _name, addr in getaddresses([raw]) if addr]
    if parsed and "@" in parsed[0]:
        return parsed[0].strip().lower()
    m = _ADDR_RE.search(raw)
    if m:
        return m.group(0).lower()
    return raw.lower()


def _make_cutoff_tz_safe(cutoff, sent_at):
    """Return *cutoff* adjusted so it compares cleanly with *sent_at*.

    Mail headers may or may not carry an offset; the cutoff is usually
    computed from a naive local clock.  Naive values are read as local time.
    """
    sent_aware = sent_at.tzinfo is not None
    cut_aware = cutoff.tzinfo is not None
    if sent_aware and not cut_aware:
        return cutoff.astimezone()
    if cut_aware and not sent_aware:
        return cutoff.astimezone().replace(tzinfo=None)
    return cutoff


def check_eligibility(msg, normalized_recipient, cutoff=None, operator_email=None):
    """Return (eligible, reason) for *msg*."""
    if cutoff is not None:
        if msg.sent_at is None:
            return False, "no_timestamp"
        if msg.sent_at < _make_cutoff_tz_safe(cutoff, msg.sent_at):
            return False, "before_cutoff"

    sender = normalize_address(msg.sender)
    if operator_email:
        if sender != normalize_address(operator_email):
            return False, "not_sent_by_operator"
    elif normalized_recipient in sender:
        return False, "sent_by_recipient"

    if normalized_recipient not in msg.all_recipients.lower():
        return False, "recipient_not_addressed"

    return True, "eligible"


def is_eligible(msg, normalized_recipient, cutoff=None, operator_email=None) -> bool:
    eligible, _reason = check_eligibility(msg, normalized_recipient, cutoff, operator_email)
    return eligible


def filter_eligible(messages, normalized_recipient, cutoff=None, operator_email=None):
    """Return the eligible subset of *messages*, order preserved."""
    eligible = []
    rejected = {}
    for msg in messages:
        ok, reason = check_eligibility(msg, normalized_recipient, cutoff, operator_email)
        _debug_log(msg, reason, ok)
        if ok:
            eligible.append(msg)
        else:
            rejected[reason] = rejected.get(reason, 0) + 1
    log.info("Eligible: %d / %d messages (rejected: %s)",
             len(eligible), len(messages), rejected or "none")
    return eligible


def _debug_log(msg, reason, eligible):
    sent = msg.sent_at.isoformat()[:16].replace("T", " ") if msg.sent_at else ""
    log.debug('email: sent=%s sender=%s subject="%s" reason=%s eligible=%s',
              sent, msg.sender, msg.subject, reason, eligible)
