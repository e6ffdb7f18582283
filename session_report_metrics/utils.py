"""
Utility functions: .env loading, console-safe printing, Google credential lookup.
"""

import json
import logging
import os
import sys
import tempfile

from dotenv import load_dotenv

_log = logging.getLogger(__name__)


def load_env():
    """Load .env from project root and return os.environ as a dict."""
    env_path = os.path.join(os.path.dirname(__file__), '..', '.env')
    load_dotenv(env_path)
    return dict(os.environ)


def safe_print(*args, **kwargs):
    """Print that won't crash on encoding errors (emoji in subjects, etc.)."""
    try:
        print(*args, **kwargs)
    except UnicodeEncodeError:
        text = ' '.join(str(a) for a in args)
        enc = sys.stdout.encoding or 'utf-8'
        print(text.encode(enc, errors='replace').decode(enc, errors='replace'))


# ---------------------------------------------------------------------------
# Service-account credentials for the Sheets writer
# ---------------------------------------------------------------------------
_CREDS_FILE_KEYS = ("GOOGLE_SERVICE_ACCOUNT_JSON_PATH", "GOOGLE_CREDS_PATH")
_CREDS_INLINE_KEY = "GOOGLE_SERVICE_ACCOUNT_JSON"

# inline JSON -> temp file already written for it in this process
_inline_creds_files: dict[str, str] = {}


def _inline_creds_file(raw_json: str) -> str | None:
    if raw_json in _inline_creds_files:
        return _inline_creds_files[raw_json]
    try:
        info = json.loads(raw_json)
    except json.JSONDecodeError:
        _log.warning("%s is set but is not valid JSON", _CREDS_INLINE_KEY)
        return None
    if not isinstance(info, dict) or info.get("type") != "service_account":
        _log.warning("%s does not hold a service-account key", _CREDS_INLINE_KEY)
        return None
    with tempfile.NamedTemporaryFile("w", suffix=".json", prefix="session_metrics_sa_",
                                     delete=False, encoding="utf-8") as tmp:
        tmp.write(raw_json)
    _inline_creds_files[raw_json] = tmp.name
    _log.info("Google creds: inline %s written to %s", _CREDS_INLINE_KEY, tmp.name)
    return tmp.name


def resolve_google_creds_path(env=None):
    """Path to the service-account key used for Sheets output, or None.

    A key file named by GOOGLE_SERVICE_ACCOUNT_JSON_PATH (or GOOGLE_CREDS_PATH)
    wins; otherwise an inline key in GOOGLE_SERVICE_ACCOUNT_JSON is written to
    a temp file, once per process.  None sends the run to CSV output.
    """
    env = os.environ if env is None else env

    for key in _CREDS_FILE_KEYS:
        path = env.get(key)
        if not path:
            continue
        if os.path.isfile(path):
            _log.info("Google creds: %s=%s", key, path)
            return path
        _log.warning("Google creds: %s points at missing file %s", key, path)

    raw_json = env.get(_CREDS_INLINE_KEY)
    if raw_json:
        return _inline_creds_file(raw_json)
    return None
