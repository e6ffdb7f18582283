"""Unit tests for the CSV and Google Sheets output writers."""
from __future__ import annotations

import csv
import os
import sys
from datetime import datetime, timedelta

import httplib2
import pytest
from googleapiclient.errors import HttpError

# Ensure project root is on sys.path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from session_report_metrics.aggregator import aggregate
from session_report_metrics.models import RawMessage
from session_report_metrics.writers import google_sheets_writer
from session_report_metrics.writers.csv_writer import CSVWriter
from session_report_metrics.writers.google_sheets_writer import (
    GoogleSheetsWriter,
    detail_rows,
    summary_row,
)

START = datetime(2026, 10, 1, 18, 0)


def _result():
    bodies = [
        "Session length: 2 hours\nNumber of calls: 20\nNumber of pickups: 4\n"
        "Total number of pledges: 3\nTotal estimated pledges: $250",
        "Session length: 1 hour\nNumber of calls: 10\nNumber of pickups: 2",
        "",
    ]
    msgs = [
        RawMessage(sender="me@example.com", to=("dan@example.com",),
                   sent_at=START + timedelta(days=i), subject=f"Report {i + 1}", body=b)
        for i, b in enumerate(bodies)
    ]
    return aggregate(msgs)


# =====================================================================
# CSV
# =====================================================================

class TestCSVWriter:

    def test_summary_and_details(self, tmp_path):
        writer = CSVWriter(str(tmp_path))
        assert writer.write(_result()) is True

        with open(writer.summary_path, newline="", encoding="utf-8") as f:
            summary = {row["metric"]: row["value"] for row in csv.DictReader(f)}
        assert summary["emails_found"] == "3"
        assert summary["emails_with_metrics"] == "2"
        assert summary["number_of_calls"] == "30"
        assert summary["pickup_rate"] == "20.0"
        assert summary["avg_pledge_amount"] == "83.33"

        with open(writer.details_path, newline="", encoding="utf-8") as f:
            rows = list(csv.DictReader(f))
        assert [r["subject"] for r in rows] == ["Report 1", "Report 2", "Report 3"]
        assert rows[0]["sent_at"] == "2026-10-01T18:00:00"
        assert rows[2]["has_metrics"] == "False"
        assert rows[2]["number_of_calls"] == "0"


# =====================================================================
# Google Sheets
# =====================================================================

class FakeRequest:
    def __init__(self, service, kwargs):
        self.service = service
        self.kwargs = kwargs

    def execute(self):
        if self.service.fail_with:
            status = self.service.fail_with.pop(0)
            raise HttpError(httplib2.Response({"status": status}), b"{}")
        self.service.calls.append(self.kwargs)
        return {}


class FakeSheetsService:
    """Mimics service.spreadsheets().values().append(...).execute()."""

    def __init__(self, fail_with=None):
        self.calls = []
        self.fail_with = list(fail_with or [])

    def spreadsheets(self):
        return self

    def values(self):
        return self

    def append(self, **kwargs):
        return FakeRequest(self, kwargs)


ENV = {"GOOGLE_SHEET_ID": "sheet-123", "GOOGLE_SHEET_TAB": "Totals"}


class TestGoogleSheetsWriter:

    def test_summary_row_layout(self):
        row = summary_row(_result(), recipient="dan@example.com", run_at=datetime(2026, 10, 18, 9, 5))
        assert row[:4] == ["2026-10-18 09:05", "dan@example.com", 3, 2]
        assert row[-3:] == [20.0, 83.33, 10.0]

    def test_detail_rows_layout(self):
        rows = detail_rows(_result())
        assert rows[0][:2] == ["2026-10-01 18:00", "Report 1"]
        assert len(rows) == 3

    def test_write_appends_summary_then_batched_details(self):
        service = FakeSheetsService()
        writer = GoogleSheetsWriter(ENV, creds_path=None, batch_size=2, service=service)
        appended, failed = writer.write(_result(), recipient="dan@example.com")

        assert (appended, failed) == (4, 0)
        assert [c["range"] for c in service.calls] == [
            "Totals!A1", "Session Details!A1", "Session Details!A1",
        ]
        assert all(c["spreadsheetId"] == "sheet-123" for c in service.calls)
        assert len(service.calls[1]["body"]["values"]) == 2
        assert len(service.calls[2]["body"]["values"]) == 1

    def test_rate_limit_retried(self, monkeypatch):
        monkeypatch.setattr(google_sheets_writer.time, "sleep", lambda s: None)
        service = FakeSheetsService(fail_with=[429, 429])
        writer = GoogleSheetsWriter(ENV, creds_path=None, service=service)
        appended, failed = writer.write(_result())
        assert (appended, failed) == (4, 0)

    def test_non_retryable_error_counts_failures(self):
        service = FakeSheetsService(fail_with=[403])
        writer = GoogleSheetsWriter(ENV, creds_path=None, service=service)
        appended, failed = writer.write(_result())
        assert (appended, failed) == (3, 1)
