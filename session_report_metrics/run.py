"""
Session Report Metrics – main entry point.

Pipeline:
  1) Load env / settings.yml / CLI flags
  2) Open the mail source (.eml directory or mbox)
  3) Filter to eligible messages (sent by operator, to recipient, within range)
  4) Parse each report body and aggregate totals + derived metrics
  5) Write summary / detail rows (Google Sheets if configured, else CSV)
  6) Write RUN LOG PACK to logs/runs/<run_id>/
"""

import argparse
import logging
import sys
import time

from session_report_metrics.config import load_settings
from session_report_metrics.message_source import MessageSourceError, open_source
from session_report_metrics.models import ScanRequest
from session_report_metrics.run_logger import RunLogger
from session_report_metrics.scanner import ScanResult, run_scan
from session_report_metrics.utils import load_env, resolve_google_creds_path, safe_print
from session_report_metrics.writers.csv_writer import CSVWriter

log = logging.getLogger(__name__)


def build_parser():
    parser = argparse.ArgumentParser(
        description="Total the call-session metrics reported in emails sent to one recipient."
    )
    parser.add_argument("--recipient", type=str, default=None,
                        help="Address the session reports were sent to")
    parser.add_argument("--range", dest="date_range", type=str, default=None,
                        help="How far back to look: <n>d, <n>m or <n>y (e.g. 30d)")
    parser.add_argument("--operator", type=str, default=None,
                        help="Your own address; only messages you sent are counted")
    parser.add_argument("--source", type=str, default=None,
                        help="Directory of .eml files or an mbox file")
    parser.add_argument("--output", type=str, default=None,
                        help="Directory for summary.csv / detail_rows.csv")
    parser.add_argument("--no-sheets", action="store_true",
                        help="Write CSV even if Google Sheets is configured")
    parser.add_argument("--debug", action="store_true", help="Show debug output on the console")
    return parser


def _write_outputs(result, recipient, settings, env, no_sheets):
    creds_path = None
    if env.get("GOOGLE_SHEET_ID") and not no_sheets:
        creds_path = resolve_google_creds_path(env)
    if creds_path:
        from session_report_metrics.writers.google_sheets_writer import GoogleSheetsWriter
        env = dict(env)
        env.setdefault("GOOGLE_SHEET_TAB", settings["google_sheet_tab"])
        writer = GoogleSheetsWriter(env, creds_path)
        writer.write(result, recipient=recipient)
        return f"Google Sheet {env['GOOGLE_SHEET_ID']}"
    writer = CSVWriter(settings["output_dir"] or None)
    writer.write(result)
    return writer.summary_path


def _print_summary(scan, destination, run_dir):
    agg = scan.aggregation
    t, d = agg.totals, agg.derived
    safe_print(f"\n{'='*60}")
    safe_print(f"  SESSION METRICS: {scan.recipient}")
    safe_print(f"{'='*60}")
    safe_print(f"  scanned={scan.scanned}  emails_found={agg.emails_found}  "
               f"emails_with_metrics={agg.emails_with_metrics}")
    safe_print(f"  session_hours={t.session_hours:g}  scheduled_hours={t.scheduled_hours:g}")
    safe_print(f"  soft=${t.soft_pledges:,.2f}  hard=${t.hard_pledges:,.2f}  "
               f"estimated=${t.estimated_pledges:,.2f}")
    safe_print(f"  pledges={t.number_of_pledges}  calls={t.number_of_calls}  "
               f"pickups={t.number_of_pickups}")
    safe_print(f"  pickup_rate={d.pickup_rate:.2f}%  avg_pledge=${d.avg_pledge_amount:,.2f}  "
               f"calls_per_hour={d.calls_per_hour:.2f}")
    if agg.missing_metrics:
        safe_print(f"\n  {agg.missing_metrics} email(s) had no recognisable metrics")
    safe_print(f"\n  Output:       {destination}")
    safe_print(f"  Run log pack: {run_dir}")
    safe_print(f"{'='*60}")


def main(argv=None):
    args = build_parser().parse_args(argv)
    t0 = time.time()

    env = load_env()
    settings = load_settings(env)
    recipient = args.recipient or settings["recipient"]
    date_range = args.date_range or settings["date_range"]
    operator = args.operator or settings["operator_email"]
    source_path = args.source or settings["mail_source"]
    if args.output:
        settings["output_dir"] = args.output

    run_logger = RunLogger(console_level=logging.DEBUG if args.debug else logging.INFO)
    try:
        log.info("=== Session Report Metrics – run %s ===", run_logger.run_id)
        log.info("Args: recipient=%s range=%s operator=%s source=%s",
                 recipient, date_range, operator or "(unknown)", source_path)

        request = ScanRequest(recipient=recipient, date_range=date_range, operator_email=operator)
        try:
            source = open_source(source_path)
        except MessageSourceError as exc:
            scan = ScanResult.failure(str(exc), recipient=recipient)
        else:
            scan = run_scan(source, request)

        run_logger.set_summary(scan, duration_sec=time.time() - t0, args={
            "recipient": recipient, "date_range": date_range,
            "operator": operator, "source": source_path,
        })

        if scan.ok:
            try:
                destination = _write_outputs(scan.aggregation, scan.recipient, settings,
                                             env, args.no_sheets)
            except Exception:
                log.exception("Writing outputs failed")
                raise
    finally:
        run_logger.flush()
        run_logger.close()

    if not scan.ok:
        safe_print(f"\nSCAN FAILED: {scan.error}")
        return 1
    _print_summary(scan, destination, run_logger.run_dir)
    return 0


if __name__ == "__main__":
    sys.exit(main())
