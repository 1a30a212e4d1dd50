"""HTML rendering of aggregation results."""

from datetime import datetime, timezone
from pathlib import Path

from jinja2 import Environment, FileSystemLoader, select_autoescape

from kubeinventory.models import AggregationResult


_TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"


def _get_env() -> Environment:
    return Environment(
        loader=FileSystemLoader(str(_TEMPLATES_DIR)),
        autoescape=select_autoescape(["html", "xml"]),
    )


def render_resources_html(result: AggregationResult) -> str:
    """Render one pass as a self-contained HTML table."""
    summaries = sorted(result.summaries, key=lambda s: (s.group, s.resource_name, s.version))
    generated_at = (result.finished_at or datetime.now(timezone.utc)).isoformat(timespec="seconds")

    template = _get_env().get_template("resources.html")
    return template.render(
        summaries=summaries,
        failures=sorted(result.failures, key=lambda f: (f.group, f.resource)),
        generated_at=generated_at,
        duration_seconds=result.duration_seconds,
        total_objects=result.total_objects(),
        timed_out=result.timed_out,
    )
