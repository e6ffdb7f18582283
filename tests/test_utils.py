"""Unit tests for Google service-account credential resolution."""
from __future__ import annotations

import json
import os
import sys

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from session_report_metrics.utils import resolve_google_creds_path

SA_KEY = json.dumps({"type": "service_account", "client_email": "bot@proj.iam.gserviceaccount.com"})


# =====================================================================
# Credential lookup
# =====================================================================

class TestResolveGoogleCredsPath:

    def test_nothing_configured(self):
        assert resolve_google_creds_path({}) is None

    def test_key_file_wins_over_inline(self, tmp_path):
        key = tmp_path / "sa.json"
        key.write_text(SA_KEY)
        env = {"GOOGLE_SERVICE_ACCOUNT_JSON_PATH": str(key), "GOOGLE_SERVICE_ACCOUNT_JSON": SA_KEY}
        assert resolve_google_creds_path(env) == str(key)

    def test_missing_file_falls_through_to_second_key(self, tmp_path):
        key = tmp_path / "sa.json"
        key.write_text(SA_KEY)
        env = {"GOOGLE_SERVICE_ACCOUNT_JSON_PATH": str(tmp_path / "gone.json"),
               "GOOGLE_CREDS_PATH": str(key)}
        assert resolve_google_creds_path(env) == str(key)

    def test_inline_key_written_once(self):
        env = {"GOOGLE_SERVICE_ACCOUNT_JSON": SA_KEY}
        first = resolve_google_creds_path(env)
        assert first == resolve_google_creds_path(env)
        with open(first, encoding="utf-8") as f:
            assert json.load(f)["type"] == "service_account"

    def test_inline_invalid_json(self):
        assert resolve_google_creds_path({"GOOGLE_SERVICE_ACCOUNT_JSON": "{not json"}) is None

    def test_inline_json_that_is_not_a_service_account(self):
        env = {"GOOGLE_SERVICE_ACCOUNT_JSON": json.dumps({"installed": {}})}
        assert resolve_google_creds_path(env) is None
