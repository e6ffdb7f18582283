"""
Message sources – load candidate emails from an on-disk mail store.

Two store shapes are supported:
  * a directory of .eml files (one RFC 822 message per file, searched recursively)
  * a single Unix mbox file

Store-level problems (missing path, unreadable mbox) raise
MessageSourceError.  A single message that can't be parsed is logged and
skipped so one bad file doesn't sink the whole scan.
"""

import html
import logging
import mailbox
import os
import re
from datetime import datetime
from email import policy
from email.parser import BytesParser

from session_report_metrics.models import RawMessage

log = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]+>")
_BR_RE = re.compile(r"<\s*(?:br|/p|/div|/tr)\s*/?\s*>", re.IGNORECASE)


class MessageSourceError(Exception):
    """The mail store itself could not be read."""


# ------------------------------------------------------------------
# RFC 822 -> RawMessage
# ------------------------------------------------------------------

def _html_to_text(raw_html: str) -> str:
    text = _BR_RE.sub("\n", raw_html)
    text = _TAG_RE.sub("", text)
    return html.unescape(text)


def _as_text(em) -> str:
    """Prefer text/plain; fall back to tag-stripped HTML."""
    if not em.is_multipart():
        content = em.get_content()
        if em.get_content_type() == "text/html":
            return _html_to_text(content).strip()
        return content.strip() if isinstance(content, str) else ""
    for part in em.walk():
        if part.get_content_type() == "text/plain" and not part.get_filename():
            return part.get_content().strip()
    for part in em.walk():
        if part.get_content_type() == "text/html":
            return _html_to_text(part.get_content()).strip()
    return ""


def _addresses(em, header) -> tuple:
    values = em.get_all(header) or []
    out = []
    for val in values:
        addrs = getattr(val, "addresses", None)
        if addrs:
            out.extend(a.addr_spec for a in addrs if a.addr_spec)
        elif str(val).strip():
            out.append(str(val).strip())
    return tuple(out)


def _sent_at(em) -> datetime | None:
    dt = em.get("Date")
    if not dt:
        return None
    try:
        return dt.datetime
    except (AttributeError, ValueError, TypeError):
        log.debug("Unparseable Date header: %r", str(dt))
        return None


def message_from_email(em) -> RawMessage:
    """Map a parsed email.message.EmailMessage onto a RawMessage."""
    return RawMessage(
        sender=str(em.get("From") or "").strip(),
        to=_addresses(em, "To"),
        cc=_addresses(em, "Cc"),
        bcc=_addresses(em, "Bcc"),
        sent_at=_sent_at(em),
        subject=str(em.get("Subject") or "").strip(),
        body=_as_text(em),
        message_id=str(em.get("Message-ID") or "").strip(),
    )


def message_from_bytes(rfc822_bytes: bytes) -> RawMessage:
    em = BytesParser(policy=policy.default).parsebytes(rfc822_bytes)
    return message_from_email(em)


# ------------------------------------------------------------------
# Sources
# ------------------------------------------------------------------

class MessageSource:
    """Anything that can hand over the candidate messages for one scan."""

    def fetch_messages(self) -> list:
        raise NotImplementedError


class EmlDirectorySource(MessageSource):
    def __init__(self, path):
        self.path = path

    def fetch_messages(self):
        if not os.path.isdir(self.path):
            raise MessageSourceError(f"Mail directory not found: {self.path}")

        paths = []
        for root, _dirs, files in os.walk(self.path):
            for name in files:
                if name.lower().endswith(".eml"):
                    paths.append(os.path.join(root, name))
        paths.sort()

        messages = []
        for path in paths:
            try:
                with open(path, "rb") as f:
                    messages.append(message_from_bytes(f.read()))
            except Exception as exc:
                log.warning("Skipping unreadable message %s: %s", path, exc)
        log.info("Loaded %d messages from %s (%d files)", len(messages), self.path, len(paths))
        return messages


class MboxSource(MessageSource):
    def __init__(self, path):
        self.path = path

    def fetch_messages(self):
        if not os.path.isfile(self.path):
            raise MessageSourceError(f"Mbox file not found: {self.path}")
        try:
            box = mailbox.mbox(self.path, create=False)
            keys = list(box.keys())
        except Exception as exc:
            raise MessageSourceError(f"Cannot read mbox {self.path}: {exc}") from exc

        messages = []
        try:
            for key in keys:
                try:
                    messages.append(message_from_bytes(box.get_bytes(key)))
                except Exception as exc:
                    log.warning("Skipping unreadable mbox message %s: %s", key, exc)
        finally:
            box.close()
        log.info("Loaded %d messages from %s", len(messages), self.path)
        return messages


class StaticSource(MessageSource):
    """Messages already in memory (tests, other front ends)."""

    def __init__(self, messages):
        self._messages = list(messages)

    def fetch_messages(self):
        return list(self._messages)


def open_source(path) -> MessageSource:
    """Pick a source for *path*: a directory of .eml files, or an mbox file."""
    if not path:
        raise MessageSourceError("No mail source configured (use --source or MAIL_SOURCE)")
    if os.path.isdir(path):
        return EmlDirectorySource(path)
    if os.path.isfile(path):
        return MboxSource(path)
    raise MessageSourceError(f"Mail source not found: {path}")
