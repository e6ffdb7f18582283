"""
Run Logger – creates a "RUN LOG PACK" per run in logs/runs/<run_id>/
Artifacts produced:
  - run_summary.json
  - detail_rows.csv
  - raw_debug.log   (via Python logging)
  - REVIEW.txt      (single human-readable file for the operator)
"""

import csv
import json
import logging
import os
import sys
from dataclasses import asdict
from datetime import datetime

from session_report_metrics.models import METRIC_FIELDS


class RunLogger:
    """Manages all per-run logging artifacts."""

    DETAIL_FIELDS = ["sent_at", "subject", "sender", "has_metrics"] + METRIC_FIELDS

    def __init__(self, base_dir: str | None = None, console_level=logging.INFO):
        self.run_id = datetime.now().strftime("%Y%m%d_%H%M%S")
        if base_dir is None:
            base_dir = os.path.join(os.path.dirname(__file__), "..", "logs", "runs")
        self.run_dir = os.path.join(base_dir, self.run_id)
        os.makedirs(self.run_dir, exist_ok=True)

        self._setup_file_logging(console_level)
        self._summary: dict = {}
        self._details: list[dict] = []

    # ------------------------------------------------------------------
    # Logging setup
    # ------------------------------------------------------------------
    def _setup_file_logging(self, console_level):
        log_path = os.path.join(self.run_dir, "raw_debug.log")
        root = logging.getLogger()
        root.setLevel(logging.DEBUG)
        for h in root.handlers[:]:
            root.removeHandler(h)
        # File handler: everything (DEBUG+)
        fh = logging.FileHandler(log_path, encoding="utf-8")
        fh.setLevel(logging.DEBUG)
        fh.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
        root.addHandler(fh)
        # Console handler: INFO+ unless --debug
        ch = logging.StreamHandler(sys.stderr)
        ch.setLevel(console_level)
        ch.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
        root.addHandler(ch)
        self._handlers = [fh, ch]

    def close(self):
        root = logging.getLogger()
        for h in self._handlers:
            root.removeHandler(h)
            h.close()

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------
    def set_summary(self, scan_result, duration_sec: float = 0, args: dict | None = None):
        agg = scan_result.aggregation
        self._summary = {
            "run_id": self.run_id,
            "timestamp": datetime.now().isoformat(),
            "ok": scan_result.ok,
            "error": scan_result.error,
            "recipient": scan_result.recipient,
            "cutoff": scan_result.cutoff.isoformat() if scan_result.cutoff else None,
            "scanned": scan_result.scanned,
            "emails_found": agg.emails_found if agg else 0,
            "emails_with_metrics": agg.emails_with_metrics if agg else 0,
            "totals": asdict(agg.totals) if agg else {},
            "derived": asdict(agg.derived) if agg else {},
            "duration_sec": round(duration_sec, 2),
            "args": args or {},
        }
        self._details = [asdict(row) for row in agg.details] if agg else []

    # ------------------------------------------------------------------
    # Flush all artifacts to disk
    # ------------------------------------------------------------------
    def flush(self):
        self._write_csv("detail_rows.csv", self.DETAIL_FIELDS, self._details)
        self._write_json("run_summary.json", self._summary)
        self._write_review()
        logging.getLogger(__name__).info("Run log pack written to %s", self.run_dir)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _write_csv(self, filename: str, fieldnames: list[str], rows: list[dict]):
        path = os.path.join(self.run_dir, filename)
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=fieldnames, extrasaction="ignore")
            writer.writeheader()
            for row in rows:
                writer.writerow(row)

    def _write_json(self, filename: str, data):
        path = os.path.join(self.run_dir, filename)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, default=str)

    def _write_review(self):
        s = self._summary
        lines = []
        lines.append("=" * 70)
        lines.append(f"  SESSION METRICS REVIEW - Run {s.get('run_id', 'N/A')}")
        lines.append("=" * 70)
        lines.append("")
        lines.append(f"  recipient:    {s.get('recipient', '')}")
        lines.append(f"  cutoff:       {s.get('cutoff') or '(none)'}")
        lines.append(f"  start:        {s.get('timestamp', '')}")
        lines.append(f"  duration:     {s.get('duration_sec', 0):.1f}s")
        if not s.get("ok", False):
            lines.append("")
            lines.append(f"  SCAN FAILED: {s.get('error', '')}")

        lines.append("")
        lines.append("-" * 50)
        lines.append("  COUNTS")
        lines.append("-" * 50)
        lines.append(f"  scanned:              {s.get('scanned', 0)}")
        lines.append(f"  emails_found:         {s.get('emails_found', 0)}")
        lines.append(f"  emails_with_metrics:  {s.get('emails_with_metrics', 0)}")

        totals = s.get("totals") or {}
        derived = s.get("derived") or {}
        if totals:
            lines.append("")
            lines.append("-" * 50)
            lines.append("  TOTALS")
            lines.append("-" * 50)
            for name in METRIC_FIELDS:
                lines.append(f"  {name:<20}  {_fmt(totals.get(name))}")
            lines.append("")
            lines.append(f"  {'pickup_rate':<20}  {derived.get('pickup_rate', 0):.2f}%")
            lines.append(f"  {'avg_pledge_amount':<20}  {derived.get('avg_pledge_amount', 0):,.2f}")
            lines.append(f"  {'calls_per_hour':<20}  {derived.get('calls_per_hour', 0):.2f}")

        missing = [d for d in self._details if not d.get("has_metrics")]
        if missing:
            lines.append("")
            lines.append("-" * 50)
            lines.append(f"  NO METRICS FOUND ({len(missing)} emails)")
            lines.append("-" * 50)
            for d in missing[:30]:
                lines.append(f"  {str(d.get('sent_at') or '')[:16]} | {d.get('subject', '')}")
            if len(missing) > 30:
                lines.append(f"  ... {len(missing) - 30} more, see detail_rows.csv")

        lines.append("")
        path = os.path.join(self.run_dir, "REVIEW.txt")
        with open(path, "w", encoding="utf-8") as f:
            f.write("\n".join(lines))


def _fmt(val):
    if isinstance(val, float):
        return f"{val:,.2f}"
    if isinstance(val, int):
        return f"{val:,}"
    return str(val)
