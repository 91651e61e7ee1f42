import html
import json
import logging
from pathlib import Path
from typing import Dict, List

from utils.file_utils import format_file_size

logger = logging.getLogger(__name__)


class DuplicateReportGenerator:
    """
    Generate reports for duplicate detection results
    """

    def collect(self, results) -> List[Dict]:
        """Flatten scan results into one record per duplicate verdict"""
        records = []

        for result in results:
            for verdict in result.verdicts:
                record = {
                    'file': result.path,
                    'file_size': result.size,
                    'duplicate_of': verdict.owner,
                    'kind': 'exact' if verdict.is_exact else 'perceptual',
                }
                if verdict.is_exact:
                    record['digest'] = verdict.digest
                else:
                    record['score'] = verdict.score
                    record['total'] = verdict.total
                records.append(record)

        return records

    def generate_report(self, results, output_path: str = "duplicate_report.html", summary=None):
        """
        Write a report of every duplicate verdict

        A .json output path gets machine-readable records, anything else
        gets an HTML page.
        """
        records = self.collect(results)

        if Path(output_path).suffix.lower() == '.json':
            payload = {'duplicates': records}
            if summary is not None:
                payload['summary'] = {
                    'files_indexed': summary.files_indexed,
                    'frames_indexed': summary.frames_indexed,
                    'empty_files': summary.empty_files,
                    'exact_duplicates': summary.exact_duplicates,
                    'perceptual_duplicates': summary.perceptual_duplicates,
                }
            with open(output_path, 'w') as f:
                json.dump(payload, f, indent=2)
        else:
            with open(output_path, 'w') as f:
                f.write(self._render_html(records, summary))

        logger.info("Report generated: %s", output_path)

    def _calculate_space_savings(self, records: List[Dict]) -> int:
        """Bytes freed by deleting every file reported as a duplicate"""
        sizes = {r['file']: r['file_size'] for r in records if r['file_size'] > 0}
        return sum(sizes.values())

    def _render_html(self, records: List[Dict], summary) -> str:
        files_indexed = summary.files_indexed if summary is not None else 'n/a'
        space_savings = self._calculate_space_savings(records)

        stats_html = f"""
        <div class="statistics">
            <h2>Duplicate Detection Summary</h2>
            <p><strong>Videos indexed:</strong> {files_indexed}</p>
            <p><strong>Duplicate verdicts:</strong> {len(records)}</p>
            <p><strong>Potential space savings:</strong> {format_file_size(space_savings)}</p>
        </div>
        """

        rows = []
        for record in records:
            if record['kind'] == 'exact':
                detail = f"{html.escape(record['digest'])}"
            else:
                detail = f"scores {record['score']} out of {record['total']}"
            rows.append(f"""
            <tr class="{record['kind']}">
                <td>{html.escape(record['file'])}</td>
                <td>{html.escape(record['duplicate_of'])}</td>
                <td>{record['kind']}</td>
                <td>{detail}</td>
            </tr>""")

        return self._create_html_template() \
            .replace("{{STATS}}", stats_html) \
            .replace("{{ROWS}}", "".join(rows))

    def _create_html_template(self) -> str:
        """HTML template for report"""
        return """
        <!DOCTYPE html>
        <html>
        <head>
            <title>Video Duplicate Report</title>
            <style>
                body { font-family: Arial, sans-serif; margin: 20px; }
                .statistics { background: #f0f0f0; padding: 20px; border-radius: 5px; }
                table { border-collapse: collapse; width: 100%; margin-top: 20px; }
                td, th { border: 1px solid #ddd; padding: 6px; text-align: left; }
                tr.exact { background: #ffebee; }
                tr.perceptual { background: #fff8e1; }
            </style>
        </head>
        <body>
            <h1>Video Duplicate Report</h1>
            {{STATS}}
            <table>
                <tr><th>File</th><th>Duplicate of</th><th>Kind</th><th>Detail</th></tr>
                {{ROWS}}
            </table>
        </body>
        </html>
        """
