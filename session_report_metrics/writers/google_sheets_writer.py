"""
Google Sheets writer – appends the scan summary and detail rows to a sheet.

Rows are sent in batches.  On HTTP 429 the writer retries with exponential
backoff + jitter (1 s -> 60 s, up to 8 retries).
"""

import logging
import random
import time
from datetime import datetime

from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from google.oauth2.service_account import Credentials

from session_report_metrics.models import METRIC_FIELDS

log = logging.getLogger(__name__)

SUMMARY_COLUMNS = (
    ["run_at", "recipient", "emails_found", "emails_with_metrics"]
    + METRIC_FIELDS
    + ["pickup_rate", "avg_pledge_amount", "calls_per_hour"]
)
DETAIL_COLUMNS = ["sent_at", "subject"] + METRIC_FIELDS

# Tunables
DEFAULT_BATCH_SIZE = 200
MAX_RETRIES = 8
INITIAL_BACKOFF = 1.0        # seconds
MAX_BACKOFF = 60.0
JITTER_MAX = 0.25            # seconds


def summary_row(result, recipient="", run_at=None):
    """Flatten totals + derived metrics into one sheet row."""
    run_at = run_at or datetime.now()
    row = [run_at.strftime("%Y-%m-%d %H:%M"), recipient,
           result.emails_found, result.emails_with_metrics]
    row += [getattr(result.totals, f) for f in METRIC_FIELDS]
    row += [round(result.derived.pickup_rate, 2),
            round(result.derived.avg_pledge_amount, 2),
            round(result.derived.calls_per_hour, 2)]
    return row


def detail_rows(result):
    rows = []
    for d in result.details:
        sent = d.sent_at.strftime("%Y-%m-%d %H:%M") if d.sent_at else ""
        rows.append([sent, d.subject] + [getattr(d, f) for f in METRIC_FIELDS])
    return rows


class GoogleSheetsWriter:
    """Batch-capable Google Sheets writer with 429-resilient backoff."""

    def __init__(self, env, creds_path, batch_size=DEFAULT_BATCH_SIZE, service=None):
        self.sheet_id = env.get("GOOGLE_SHEET_ID")
        self.summary_tab = env.get("GOOGLE_SHEET_TAB", "Session Metrics")
        self.detail_tab = env.get("GOOGLE_SHEET_DETAIL_TAB", "Session Details")
        if service is None:
            creds = Credentials.from_service_account_file(
                creds_path, scopes=["https://www.googleapis.com/auth/spreadsheets"]
            )
            service = build("sheets", "v4", credentials=creds)
        self.service = service
        self.batch_size = batch_size

    def write(self, result, recipient=""):
        """Append one summary row and every detail row.  Returns (appended, failed)."""
        appended = failed = 0
        if self._append(self.summary_tab, [summary_row(result, recipient)], 0):
            appended += 1
        else:
            failed += 1

        rows = detail_rows(result)
        for batch_idx, start in enumerate(range(0, len(rows), self.batch_size), 1):
            batch = rows[start:start + self.batch_size]
            if self._append(self.detail_tab, batch, batch_idx):
                appended += len(batch)
            else:
                failed += len(batch)

        log.info("Sheets write complete: appended=%d failed=%d", appended, failed)
        return appended, failed

    def _append(self, tab, values, batch_idx, retry_count=0):
        try:
            self.service.spreadsheets().values().append(
                spreadsheetId=self.sheet_id,
                range=f"{tab}!A1",
                valueInputOption="USER_ENTERED",
                insertDataOption="INSERT_ROWS",
                body={"values": values},
            ).execute()
            log.info("Batch %d: appended %d rows to '%s' (retries=%d)",
                     batch_idx, len(values), tab, retry_count)
            return True

        except HttpError as exc:
            if exc.resp.status == 429 and retry_count < MAX_RETRIES:
                wait = min(INITIAL_BACKOFF * (2 ** retry_count), MAX_BACKOFF)
                wait += random.uniform(0, JITTER_MAX)
                log.warning("Batch %d: 429 rate-limit, retrying in %.1fs (attempt %d/%d)",
                            batch_idx, wait, retry_count + 1, MAX_RETRIES)
                time.sleep(wait)
                return self._append(tab, values, batch_idx, retry_count + 1)
            log.error("Batch %d FAILED: %s", batch_idx, exc)
            return False
