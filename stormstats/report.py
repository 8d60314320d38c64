from __future__ import annotations

"""
stormstats report generator
---------------------------
This module writes a DOCX report for one `DashboardView`: the filters that
produced it, the headline numbers, the top-states and storm-type tables, and
static versions of the dashboard charts.

Design goals:
- Keep stormstats usable without report dependencies (lazy imports).
- Only consume pipeline output; no aggregation happens here.
- Skip a chart when the view has nothing to draw for it.
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
import logging
import os
import tempfile

from .config import STORM_EVENT_CATEGORIES
from .formatting import RadarData, axis_format
from .models import Series

logger = logging.getLogger(__name__)


@dataclass
class ReportConfig:
    """High-level knobs to control how the report is written."""
    title: str = "Severe Weather Events in the USA"
    subtitle: str = "stormstats dashboard report"
    dataset_name: str = "Storm data sums (JSON)"

    # How many states to list in the heat-map table
    heatmap_rows: int = 10

    # How many most recent years to list per series
    series_rows: int = 10

    # Optional: commands used to reach the current filters
    command_log: Optional[List[str]] = field(default=None)


def _radar_figure(plt, np, radar: RadarData, title: str, path: str) -> Optional[str]:
    """Polar chart, one polygon per state. Axes are scaled to their own maximum."""
    if not radar or not radar[0]:
        return None
    labels = [v.axis for v in radar[0]]
    peaks = [max((entry[i].value for entry in radar), default=0) or 1 for i in range(len(labels))]
    angles = np.linspace(0, 2 * np.pi, len(labels), endpoint=False).tolist()
    angles += angles[:1]

    fig = plt.figure(figsize=(6, 6))
    ax = fig.add_subplot(111, polar=True)
    for entry in radar:
        values = [v.value / peaks[i] for i, v in enumerate(entry)]
        values += values[:1]
        ax.plot(angles, values, linewidth=1.5, label=entry[0].group)
        ax.fill(angles, values, alpha=0.1)
    ax.set_xticks(angles[:-1])
    ax.set_xticklabels(labels, fontsize=8)
    ax.set_yticklabels([])
    ax.set_title(title)
    ax.legend(loc="upper right", bbox_to_anchor=(1.3, 1.1), fontsize=8)
    fig.tight_layout()
    fig.savefig(path, dpi=200)
    plt.close(fig)
    return path


def _series_figure(plt, series: Sequence[Series], metric, title: str, path: str) -> Optional[str]:
    if not series:
        return None
    fig = plt.figure(figsize=(7, 4))
    ax = fig.add_subplot(111)
    peak = 0.0
    for s in series:
        xs = [r.year for r in s.values]
        ys = [r.metric(metric) for r in s.values]
        peak = max([peak] + ys)
        ax.plot(xs, ys, linewidth=1.2, label=s.key)
    fmt = axis_format(peak)
    ax.yaxis.set_major_formatter(lambda v, _pos: fmt(v))
    ax.set_title(title)
    ax.set_xlabel("Year")
    ax.legend(fontsize=7, ncol=2)
    fig.tight_layout()
    fig.savefig(path, dpi=200)
    plt.close(fig)
    return path


def generate_docx_report(view, out_path: str, *, config: Optional[ReportConfig] = None) -> str:
    """Generate a DOCX report + charts for a DashboardView."""
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

    f = view.filters
    metric = f.metric
    years = f"{f.year_range[0]} to {f.year_range[1]}" if f.year_range else "All years"

    # -----------------------------
    # 1) Charts
    # -----------------------------
    tmpdir = tempfile.mkdtemp(prefix="stormstats_report_")
    charts: List[Tuple[str, str]] = []

    def _add(title: str, path: Optional[str]) -> None:
        if path:
            charts.append((title, path))

    _add(f"Top {f.top_n} Most Impacted States (Metrics)",
         _radar_figure(plt, np, view.radar_states, "Metrics", os.path.join(tmpdir, "radar_states.png")))
    _add(f"Top {f.top_n} Most Impacted States (Storms, {metric.label})",
         _radar_figure(plt, np, view.radar_storms, "Storm types", os.path.join(tmpdir, "radar_storms.png")))
    _add(f"{metric.label} by Storm Type",
         _series_figure(plt, view.storm_series, metric, f"{metric.label} by Storm Type",
                        os.path.join(tmpdir, "series_storms.png")))
    _add(f"{metric.label} of Top States",
         _series_figure(plt, view.state_series, metric, f"{metric.label} of Top States",
                        os.path.join(tmpdir, "series_states.png")))

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

    def _table(headers: Sequence[str], rows: Sequence[Sequence[str]]) -> None:
        t = doc.add_table(rows=1, cols=len(headers))
        for i, h in enumerate(headers):
            t.rows[0].cells[i].text = h
        for row in rows:
            cells = t.add_row().cells
            for i, value in enumerate(row):
                cells[i].text = value

    _center_title(config.title, 22, bold=True)
    _center_title(config.subtitle, 12, italic=True)

    doc.add_paragraph("")
    _kv("Dataset", config.dataset_name)
    _kv("Years", years)
    _kv("Region", "USA" if f.region == "ALL" else f.region)
    _kv("Severe weather type", "All severe weather" if f.event == "ALL" else f.event)
    _kv("Data to view", metric.label)

    doc.add_heading("Headline numbers", level=1)
    s = view.summary
    fmt_deaths, fmt_storms, fmt_damage = axis_format(s.deaths), axis_format(s.event_count), axis_format(s.property_damage)
    _kv("Total storms", fmt_storms(s.event_count))
    _kv("Deaths", fmt_deaths(s.deaths))
    _kv("Property damage (US$)", fmt_damage(s.property_damage))
    if view.selection_missing:
        doc.add_paragraph(f"{f.region} has no records for these filters; it is not shown below.")

    if config.command_log:
        doc.add_heading("Command log", level=1)
        for line in config.command_log:
            doc.add_paragraph(line, style="List Bullet")

    doc.add_heading(f"Top states by {metric.label}", level=1)
    _table(
        ["State", "Storms", "Deaths", "Injuries", "Property damage"],
        [[row.key, entry[0].formatted(), entry[1].formatted(), f"{row.injuries_direct:.0f}", entry[2].formatted()]
         for row, entry in zip(view.top_states, view.radar_states)],
    )

    doc.add_paragraph("")
    doc.add_heading(f"{metric.label} by storm type", level=1)
    _table(
        ["State"] + list(STORM_EVENT_CATEGORIES),
        [[entry[0].group or ""] + [v.formatted() for v in entry] for entry in view.radar_storms if entry],
    )

    doc.add_paragraph("")
    doc.add_heading(f"Heat map values ({metric.label})", level=1)
    cells = sorted(view.heatmap, key=lambda c: c.value, reverse=True)[:config.heatmap_rows]
    _table(["State", metric.label], [[c.axis, c.formatted()] for c in cells])

    if charts:
        doc.add_paragraph("")
        doc.add_heading("Charts", level=1)
        for title, path in charts:
            doc.add_paragraph(title)
            doc.add_picture(path, width=Inches(6.0))

    doc.add_heading("Recent years by storm type", level=1)
    for series in view.storm_series:
        fmt = axis_format(max((r.metric(metric) for r in series.values), default=0))
        recent = ", ".join(f"{r.year}: {fmt(r.metric(metric))}" for r in series.values[:config.series_rows])
        doc.add_paragraph(f"{series.key}: {recent}", style="List Bullet")

    doc.add_heading("Reproducibility footer", level=1)
    from . import __version__
    from datetime import datetime as _dt
    doc.add_paragraph(f"stormstats version: {__version__}")
    doc.add_paragraph(f"Report generated at: {_dt.now().isoformat(timespec='seconds')}")

    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    doc.save(out_path)
    logger.info("Report written to %s (%d charts)", out_path, len(charts))
    return out_path
