"""
Report Renderer - Format benchmark measurements for Chart.js.

Splits the measurements into an insert series and a query series and renders
them into a static HTML page with two bar charts.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List

from jinja2 import Environment, PackageLoader, select_autoescape

from metabench.errors import DataConsistencyError
from metabench.models import MeasurementPoint, Operation

logger = logging.getLogger(__name__)

CHART_JS_URL = "https://cdn.jsdelivr.net/npm/chart.js@3.7.1/dist/chart.min.js"
REPORT_SUBDIR = "benchmark"
REPORT_TEMPLATE = "report.html.j2"

# Cycled by Chart.js when there are more bars than colors
BAR_COLORS = [
    "rgba(255, 99, 132, {alpha})",
    "rgba(54, 162, 235, {alpha})",
    "rgba(255, 206, 86, {alpha})",
    "rgba(75, 192, 192, {alpha})",
    "rgba(153, 102, 255, {alpha})",
    "rgba(255, 159, 64, {alpha})",
]


@dataclass
class ChartSeries:
    """Labels and values for one bar chart."""

    labels: List[str] = field(default_factory=list)
    values: List[float] = field(default_factory=list)

    def add(self, label: str, value: float) -> None:
        self.labels.append(label)
        self.values.append(value)


@dataclass(frozen=True)
class ReportResult:
    path: Path
    url: str


def build_chart_series(
    measurements: Iterable[MeasurementPoint],
) -> tuple[ChartSeries, ChartSeries]:
    """
    Partition measurements into (insert series, query series).

    Raises:
        DataConsistencyError: on an operation other than insert or query
    """
    insert_series = ChartSeries()
    query_series = ChartSeries()

    for point in measurements:
        if point.operation == Operation.INSERT.value:
            insert_series.add(f"{point.meta_label}_{point.tier}", point.elapsed_seconds)
        elif point.operation == Operation.QUERY.value:
            query_series.add(f"{point.meta_label}_1_post", point.elapsed_seconds)
        else:
            raise DataConsistencyError(f"Invalid operation: {point.operation!r}")

    return insert_series, query_series


def _environment() -> Environment:
    return Environment(
        loader=PackageLoader("metabench", "templates"),
        autoescape=select_autoescape(["html", "j2"]),
    )


def render_html(insert_series: ChartSeries, query_series: ChartSeries) -> str:
    """Render the report page for two chart series."""
    template = _environment().get_template(REPORT_TEMPLATE)
    return template.render(
        chart_js_url=CHART_JS_URL,
        insert_chart=insert_series,
        get_posts_chart=query_series,
        background_colors=[c.format(alpha="0.2") for c in BAR_COLORS],
        border_colors=[c.format(alpha="1") for c in BAR_COLORS],
    )


def render_report(
    measurements: Iterable[MeasurementPoint],
    content_dir: str | Path,
    content_url: str,
) -> ReportResult:
    """
    Write the HTML report for a run.

    The file lands in `<content_dir>/benchmark/<uuid>.html`; the returned URL
    points at the same file under `content_url`.
    """
    insert_series, query_series = build_chart_series(measurements)
    contents = render_html(insert_series, query_series)

    report_dir = Path(content_dir) / REPORT_SUBDIR
    report_dir.mkdir(parents=True, exist_ok=True)

    file_name = f"{uuid.uuid4()}.html"
    path = report_dir / file_name
    path.write_text(contents, encoding="utf-8")

    url = f"{content_url.rstrip('/')}/{REPORT_SUBDIR}/{file_name}"
    logger.info(f"Report written to {path}")
    return ReportResult(path=path, url=url)
