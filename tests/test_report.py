import tempfile

import pytest

from conftest import make_record
from sosdash.engine import Dashboard

docx = pytest.importorskip("docx")
pytest.importorskip("matplotlib")

from sosdash.report import ReportConfig, generate_docx_report


def _records():
    return [
        make_record(district="Colombo", status="RESCUED", priority="CRITICAL", emergencyType="TRAPPED",
                    numberOfPeople=3, source="WEB", createdAt="2024-05-01T00:00:00Z",
                    rescuedAt="2024-05-01T05:00:00Z"),
        make_record(district="Gampaha", status="PENDING", priority="HIGH", emergencyType="MEDICAL_EMERGENCY",
                    numberOfPeople=2, source="SMS", createdAt="2024-05-02T00:00:00Z"),
    ]


def test_report_for_several_districts(tmp_path):
    dash = Dashboard.from_records(_records(), source_label="snapshot.json")
    dash.command_log.append('filter status "RESCUED"')
    out = tmp_path / "reports" / "sitrep.docx"

    assert generate_docx_report(dash, str(out), config=ReportConfig(title="Test report")) == str(out)

    doc = docx.Document(str(out))
    text = "\n".join(p.text for p in doc.paragraphs)
    assert "Test report" in text
    assert 'filter status "RESCUED"' in text
    assert doc.inline_shapes
    headers = [c.text for c in doc.tables[1].rows[0].cells]
    assert headers[:3] == ["District", "Total Cases", "Total People"]


def test_report_for_single_district(tmp_path):
    dash = Dashboard.from_records(_records())
    dash.set_filter("district", "Colombo")
    out = tmp_path / "colombo.docx"
    generate_docx_report(dash, str(out))
    assert out.exists()


def test_empty_view_is_rejected(tmp_path):
    dash = Dashboard.from_records(_records())
    dash.set_filter("district", "Kandy")
    with pytest.raises(ValueError):
        generate_docx_report(dash, str(tmp_path / "empty.docx"))


def test_chart_files_are_cleaned_up(tmp_path, monkeypatch):
    scratch = tmp_path / "scratch"
    scratch.mkdir()
    monkeypatch.setattr(tempfile, "tempdir", str(scratch))

    generate_docx_report(Dashboard.from_records(_records()), str(tmp_path / "sitrep.docx"))

    assert list(scratch.iterdir()) == []
