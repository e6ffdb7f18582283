"""Tests for settings loading and the command-line entry point."""
from __future__ import annotations

import json
import logging
import os
import sys
from datetime import datetime, timedelta, timezone
from email.message import EmailMessage

import pytest

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from session_report_metrics import run
from session_report_metrics.config import DEFAULTS, load_settings
from session_report_metrics.run_logger import RunLogger


# =====================================================================
# Settings
# =====================================================================

class TestLoadSettings:

    def test_defaults_when_no_file(self, tmp_path):
        settings = load_settings(env={}, path=str(tmp_path / "missing.yml"))
        assert settings == DEFAULTS

    def test_yaml_then_env_precedence(self, tmp_path):
        path = tmp_path / "settings.yml"
        path.write_text("recipient: dan@example.com\ndate_range: 3m\nbogus: 1\n")
        settings = load_settings(env={"DATE_RANGE": "7d"}, path=str(path))
        assert settings["recipient"] == "dan@example.com"
        assert settings["date_range"] == "7d"
        assert "bogus" not in settings

    def test_non_mapping_yaml_ignored(self, tmp_path):
        path = tmp_path / "settings.yml"
        path.write_text("- just\n- a list\n")
        assert load_settings(env={}, path=str(path)) == DEFAULTS


# =====================================================================
# CLI
# =====================================================================

def _write_eml(path, sender, to, body, days_ago):
    em = EmailMessage()
    em["From"] = sender
    em["To"] = to
    em["Subject"] = f"Report {days_ago}"
    em["Date"] = datetime.now(timezone.utc) - timedelta(days=days_ago)
    em.set_content(body)
    path.write_bytes(bytes(em))


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    for key in ("GOOGLE_SHEET_ID", "TARGET_RECIPIENT", "DATE_RANGE",
                "OPERATOR_EMAIL", "MAIL_SOURCE", "OUTPUT_DIR"):
        monkeypatch.delenv(key, raising=False)
    runs_dir = tmp_path / "runs"
    monkeypatch.setattr(run, "RunLogger",
                        lambda **kw: RunLogger(base_dir=str(runs_dir), **kw))
    mail = tmp_path / "mail"
    mail.mkdir()
    _write_eml(mail / "1.eml", "me@example.com", "dan@example.com",
               "Session length: 2 hours\nNumber of calls: 20\nNumber of pickups: 5", 2)
    _write_eml(mail / "2.eml", "me@example.com", "dan@example.com", "No numbers today", 1)
    _write_eml(mail / "3.eml", "dan@example.com", "me@example.com", "Number of calls: 400", 1)
    return tmp_path


class TestMain:

    def test_successful_scan_writes_outputs(self, cli_env):
        out = cli_env / "out"
        code = run.main([
            "--recipient", "dan@example.com", "--range", "30d",
            "--operator", "me@example.com",
            "--source", str(cli_env / "mail"), "--output", str(out),
        ])
        assert code == 0
        assert (out / "summary.csv").exists()
        assert (out / "detail_rows.csv").exists()

        run_dirs = list((cli_env / "runs").iterdir())
        assert len(run_dirs) == 1
        summary = json.loads((run_dirs[0] / "run_summary.json").read_text())
        assert summary["ok"] is True
        assert summary["emails_found"] == 2
        assert summary["emails_with_metrics"] == 1
        assert summary["totals"]["number_of_calls"] == 20
        assert summary["derived"]["pickup_rate"] == 25.0
        review = (run_dirs[0] / "REVIEW.txt").read_text(encoding="utf-8")
        assert "NO METRICS FOUND (1 emails)" in review

    def test_missing_source_fails(self, cli_env):
        code = run.main(["--recipient", "dan@example.com",
                         "--source", str(cli_env / "nowhere")])
        assert code == 1
        run_dir = next((cli_env / "runs").iterdir())
        summary = json.loads((run_dir / "run_summary.json").read_text())
        assert summary["ok"] is False
        assert "not found" in summary["error"]

    def test_bad_range_fails(self, cli_env):
        code = run.main(["--recipient", "dan@example.com", "--range", "2w",
                         "--source", str(cli_env / "mail")])
        assert code == 1

    def test_output_failure_still_writes_log_pack(self, cli_env, monkeypatch):
        def broken_writer(*args, **kwargs):
            raise RuntimeError("sheets unavailable")

        monkeypatch.setattr(run, "_write_outputs", broken_writer)
        with pytest.raises(RuntimeError):
            run.main(["--recipient", "dan@example.com", "--operator", "me@example.com",
                      "--source", str(cli_env / "mail")])

        run_dir = next((cli_env / "runs").iterdir())
        summary = json.loads((run_dir / "run_summary.json").read_text())
        assert summary["emails_found"] == 2
        assert "sheets unavailable" in (run_dir / "raw_debug.log").read_text(encoding="utf-8")
        assert not [h for h in logging.getLogger().handlers
                    if str(run_dir) in getattr(h, "baseFilename", "")]
