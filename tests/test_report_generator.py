# tests/test_report_generator.py

import json

import pytest

from core.classifier import ExactDuplicate, FileClassification, PerceptualDuplicate
from core.frame_source import VideoMetadata
from core.scanner import ScanResult, ScanSummary
from utils.report_generator import DuplicateReportGenerator


@pytest.fixture
def results():
    def result(path, size, verdicts):
        return ScanResult(
            path=path,
            size=size,
            metadata=VideoMetadata(duration=10.0),
            frames_requested=5,
            classification=FileClassification(file=path, frames_hashed=5, verdicts=verdicts),
        )

    return [
        result("/v/a.mp4", 100, []),
        result("/v/b.mp4", 100, [ExactDuplicate("/v/a.mp4", "abc123")]),
        result("/v/<c>.mkv", 2048, [
            PerceptualDuplicate("/v/a.mp4", score=4, total=5),
            PerceptualDuplicate("/v/b.mp4", score=4, total=5),
        ]),
    ]


def test_collect_flattens_verdicts(results):
    records = DuplicateReportGenerator().collect(results)

    assert records == [
        {'file': "/v/b.mp4", 'file_size': 100, 'duplicate_of': "/v/a.mp4",
         'kind': 'exact', 'digest': "abc123"},
        {'file': "/v/<c>.mkv", 'file_size': 2048, 'duplicate_of': "/v/a.mp4",
         'kind': 'perceptual', 'score': 4, 'total': 5},
        {'file': "/v/<c>.mkv", 'file_size': 2048, 'duplicate_of': "/v/b.mp4",
         'kind': 'perceptual', 'score': 4, 'total': 5},
    ]


def test_json_report_includes_summary(results, tmp_path):
    summary = ScanSummary(files_indexed=3, frames_indexed=15, exact_duplicates=1,
                          perceptual_duplicates=2)
    output = tmp_path / "report.json"

    DuplicateReportGenerator().generate_report(results, str(output), summary=summary)

    data = json.loads(output.read_text())
    assert len(data['duplicates']) == 3
    assert data['summary']['files_indexed'] == 3
    assert data['summary']['perceptual_duplicates'] == 2


def test_html_report_escapes_paths(results, tmp_path):
    output = tmp_path / "report.html"

    DuplicateReportGenerator().generate_report(results, str(output))

    page = output.read_text()
    assert "/v/&lt;c&gt;.mkv" in page
    assert "<c>" not in page
    assert "scores 4 out of 5" in page
    # b.mp4 and <c>.mkv could be deleted
    assert "2.10 KB" in page
