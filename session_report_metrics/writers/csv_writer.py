import csv
import os
from dataclasses import asdict

from session_report_metrics.models import METRIC_FIELDS

SUMMARY_HEADER = ["metric", "value"]
DETAIL_HEADER = ["sent_at", "subject", "sender", "has_metrics"] + METRIC_FIELDS


class CSVWriter:
    def __init__(self, out_dir=None):
        if out_dir is None:
            out_dir = os.path.join(os.path.dirname(__file__), '../../data/output')
        os.makedirs(out_dir, exist_ok=True)
        self.summary_path = os.path.join(out_dir, 'summary.csv')
        self.details_path = os.path.join(out_dir, 'detail_rows.csv')

    def write(self, result):
        """Write summary.csv (counters, totals, derived) and detail_rows.csv."""
        summary = [("emails_found", result.emails_found),
                   ("emails_with_metrics", result.emails_with_metrics)]
        summary += list(asdict(result.totals).items())
        summary += [(k, round(v, 2)) for k, v in asdict(result.derived).items()]
        with open(self.summary_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.writer(f)
            writer.writerow(SUMMARY_HEADER)
            writer.writerows(summary)

        with open(self.details_path, 'w', newline='', encoding='utf-8') as f:
            writer = csv.DictWriter(f, fieldnames=DETAIL_HEADER, extrasaction='ignore')
            writer.writeheader()
            for row in result.details:
                data = asdict(row)
                if data['sent_at'] is not None:
                    data['sent_at'] = data['sent_at'].isoformat()
                writer.writerow(data)
        return True
