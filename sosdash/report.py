from __future__ import annotations

"""
SOSDash situation report
------------------------
This module generates a DOCX report from a `Dashboard`'s current view.

Design goals:
- Keep SOSDash usable even if report dependencies are missing (lazy imports).
- Report on the *filtered* view, so the document matches what the CLI shows.
- Choose charts that are informative for the current view. Example: with a
  single district selected, a "cases by district" chart is one bar, so we
  show the daily submission series instead.
"""

from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple
import os
import tempfile

from . import aggregate, timeline
from .engine import CSV_COLUMNS, Dashboard
from .models import SOURCE_LABELS, DistrictSummary


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "SOS Situation Report"
    subtitle: str = "District analytics for flood relief requests"
    # How many districts to show in bar charts
    top_n: int = 10
    # Rows in the response-time table
    response_time_limit: int = 15


def _short(name: str, n: int = 12) -> str:
    return name if len(name) <= n else name[:n] + "..."


def generate_docx_report(dash: Dashboard, out_path: str, *, config: Optional[ReportConfig] = None) -> str:
    """
    Generate a DOCX report + charts for the dashboard's current view.

    The report reads the in-memory view only; nothing is fetched.
    """
    config = config or ReportConfig()

    # Lazy imports: only required when "report" is used.
    try:
        from docx import Document
        from docx.shared import Pt, Inches
        from docx.enum.text import WD_ALIGN_PARAGRAPH
    except ImportError as e:
        raise ImportError(
            "Missing dependency: python-docx.\n"
            "Install it with: python -m pip install python-docx"
        ) from e

    try:
        import matplotlib
        matplotlib.use("Agg")
        import matplotlib.pyplot as plt
        import numpy as np
    except ImportError as e:
        raise ImportError(
            "Missing dependency: matplotlib (and numpy).\n"
            "Install with: python -m pip install matplotlib numpy"
        ) from e

    view = dash.view
    if not view.filtered:
        raise ValueError("No records to report on (current view is empty).")

    summaries: Sequence[DistrictSummary] = view.summaries
    totals = view.totals
    top = list(summaries[: config.top_n])

    # -----------------------------
    # 1) Charts
    # -----------------------------
    # Charts live only until they are embedded in the saved document
    with tempfile.TemporaryDirectory(prefix="sosdash_report_") as tmpdir:
        # Each chart is: (title, file_path)
        chart_paths: List[Tuple[str, str]] = []

        def _save(filename: str) -> str:
            path = os.path.join(tmpdir, filename)
            plt.tight_layout()
            plt.savefig(path, dpi=200)
            plt.close()
            return path

        if len(summaries) > 1:
            labels = [_short(s.district) for s in top]
            x = np.arange(len(top))
            parts = [
                ("Pending", [s.pending for s in top]),
                ("Verified", [s.verified for s in top]),
                ("Rescued", [s.rescued for s in top]),
                ("Cannot Contact", [s.cannot_contact for s in top]),
            ]
            width = 0.8 / len(parts)
            plt.figure(figsize=(9, 5))
            for i, (name, values) in enumerate(parts):
                plt.bar(x + i * width, values, width, label=name)
            plt.xticks(x + width * (len(parts) - 1) / 2, labels, rotation=45, ha="right")
            plt.ylabel("Cases")
            plt.legend()
            title = f"Status by District (Top {len(top)})"
            plt.title(title)
            chart_paths.append((title, _save("status_by_district.png")))

            plt.figure(figsize=(9, 5))
            plt.bar(labels, [s.total_people for s in top])
            plt.xticks(rotation=45, ha="right")
            plt.ylabel("People")
            title = f"People Affected by District (Top {len(top)})"
            plt.title(title)
            chart_paths.append((title, _save("people_by_district.png")))
        else:
            daily = timeline.cumulative_counts(view.filtered, dash.tz)
            if daily:
                plt.figure(figsize=(9, 5))
                keys = [b.key for b in daily]
                plt.bar(keys, [b.count for b in daily], label="Daily new")
                plt.plot(keys, [b.cumulative for b in daily], color="C1", marker="o", label="Cumulative")
                plt.xticks(rotation=45, ha="right")
                plt.legend()
                title = "SOS Submissions Over Time"
                plt.title(title)
                chart_paths.append((title, _save("submissions.png")))

        type_counts = [
            ("Trapped", totals.trapped),
            ("Food/Water", totals.food_water),
            ("Medical", totals.medical),
            ("Rescue", totals.rescue_assistance),
            ("Missing Person", totals.missing_person),
            ("Other", totals.other),
        ]
        type_counts = [(k, v) for k, v in type_counts if v]
        if type_counts:
            plt.figure(figsize=(7, 7))
            plt.pie([v for _, v in type_counts], labels=[k for k, _ in type_counts], autopct="%1.1f%%")
            title = "Emergency Types"
            plt.title(title)
            chart_paths.append((title, _save("emergency_types.png")))

        rt = dash.response_times(limit=config.response_time_limit)
        if rt:
            plt.figure(figsize=(8, max(3, 0.4 * len(rt))))
            plt.barh([_short(r.district) for r in rt][::-1], [r.avg_hours for r in rt][::-1])
            plt.xlabel("Hours")
            title = "Average Response Time by District"
            plt.title(title)
            chart_paths.append((title, _save("response_time.png")))

        # -----------------------------
        # 2) Build DOCX report
        # -----------------------------
        doc = Document()

        style = doc.styles["Normal"]
        style.font.name = "Calibri"
        style.font.size = Pt(11)

        def _center_title(text: str, size: int, bold: bool = False, italic: bool = False) -> None:
            p = doc.add_paragraph()
            r = p.add_run(text)
            r.bold = bold
            r.italic = italic
            r.font.size = Pt(size)
            p.alignment = WD_ALIGN_PARAGRAPH.CENTER

        def _kv(key: str, value: str) -> None:
            p = doc.add_paragraph()
            r = p.add_run(f"{key}: ")
            r.bold = True
            p.add_run(value)

        _center_title(config.title, 22, bold=True)
        _center_title(config.subtitle, 12, italic=True)

        doc.add_paragraph("")
        _kv("Data source", dash.source_label or "in-memory records")
        _kv("Records in view", f"{len(view.filtered):,} of {view.records_total:,}")
        _kv("Districts covered", str(len(summaries)))
        active = dash.filters.active()
        _kv("Filters", ", ".join(f"{k}={v}" for k, v in active.items()) if active else "none")
        if dash.last_progress is not None and dash.last_progress.error is not None:
            _kv("Fetch warning", f"partial data ({dash.last_progress.error})")

        # Headline numbers (stat cards)
        doc.add_paragraph("")
        doc.add_heading("Headline numbers", level=1)
        t = doc.add_table(rows=1, cols=2)
        t.rows[0].cells[0].text = "Metric"
        t.rows[0].cells[1].text = "Value"
        for k, v in [
            ("Total cases", totals.total),
            ("Total people", totals.total_people),
            ("Critical", totals.critical),
            ("Pending", totals.pending),
            ("Verified", totals.verified),
            ("Rescued", totals.rescued),
            ("Missing", totals.missing),
            ("Cannot contact", totals.cannot_contact),
        ]:
            row = t.add_row().cells
            row[0].text = k
            row[1].text = f"{v:,}"

        # Visualizations
        doc.add_paragraph("")
        doc.add_heading("Visualizations", level=1)
        for title, path in chart_paths:
            doc.add_paragraph(title)
            doc.add_picture(path, width=Inches(6.5))
            doc.add_paragraph("")

        # District table, same columns as the CSV export
        doc.add_heading("District summary", level=1)
        cols = CSV_COLUMNS[:8]
        t2 = doc.add_table(rows=1, cols=len(cols))
        for i, (h, _) in enumerate(cols):
            t2.rows[0].cells[i].text = h
        for s in list(summaries) + [totals]:
            row = t2.add_row().cells
            for i, (_, name) in enumerate(cols):
                row[i].text = str(getattr(s, name))

        # Source comparison
        sources = dash.source_comparison()
        if sources:
            doc.add_paragraph("")
            doc.add_heading("Requests by source", level=1)
            t3 = doc.add_table(rows=1, cols=6)
            h = t3.rows[0].cells
            h[0].text = "Source"
            h[1].text = "Requests"
            h[2].text = "People"
            h[3].text = "Critical"
            h[4].text = "Rescued"
            h[5].text = "Rescue rate"
            for s in sources:
                r = t3.add_row().cells
                r[0].text = SOURCE_LABELS.get(s.source, s.source)
                r[1].text = str(s.total)
                r[2].text = str(s.people)
                r[3].text = str(s.critical)
                r[4].text = str(s.rescued)
                r[5].text = f"{s.rescue_rate}%"

        if rt:
            doc.add_paragraph("")
            doc.add_heading("Response time", level=1)
            doc.add_paragraph(
                "Hours from submission to rescue (or completion). Samples of 0 hours or "
                f"longer than {aggregate.MAX_RESPONSE_HOURS:g} hours are excluded as outliers."
            )
            doc.add_paragraph(f"Average across districts: {aggregate.overall_average_hours(rt)} hours")
            t4 = doc.add_table(rows=1, cols=3)
            h = t4.rows[0].cells
            h[0].text = "District"
            h[1].text = "Avg hours"
            h[2].text = "Resolved cases"
            for r in rt:
                row = t4.add_row().cells
                row[0].text = r.district
                row[1].text = str(r.avg_hours)
                row[2].text = str(r.count)

        # -----------------------------
        # Reproducibility footer
        # -----------------------------
        doc.add_paragraph("")
        doc.add_heading("Reproducibility footer", level=1)

        from . import __version__ as sosdash_version
        from datetime import datetime as _dt
        generated_at = _dt.now().isoformat(timespec="seconds")

        doc.add_paragraph(f"SOSDash version: {sosdash_version}")
        doc.add_paragraph(f"Report generated at: {generated_at}")
        if dash.command_log:
            doc.add_paragraph("Commands used (log):")
            for line in dash.command_log:
                doc.add_paragraph(line, style="List Bullet")

        os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
        doc.save(out_path)
    return out_path
