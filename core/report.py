"""HTML, JSON and text rendering of a migration report."""

import json
import logging
from dataclasses import asdict
from enum import Enum
from pathlib import Path

from jinja2 import Environment, select_autoescape

from .models import MigrationReport

logger = logging.getLogger(__name__)

HTML_FILENAME = "migration-report.html"
JSON_FILENAME = "migration-report.json"
PRIVATE_PACKAGES_FILENAME = "private-packages.txt"

REPORT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Migration report - {{ report.repository or "local" }}</title>
    <style>
        body { font-family: -apple-system, "Segoe UI", sans-serif; margin: 2rem; color: #1f2933; }
        table { border-collapse: collapse; margin-bottom: 1.5rem; width: 100%; }
        th, td { border: 1px solid #d2d6dc; padding: 0.35rem 0.6rem; text-align: left; }
        th { background: #f4f5f7; }
        .compatible { color: #1b7f3b; }
        .incompatible { color: #b42318; }
        .unknown { color: #b54708; }
        .summary td:first-child { font-weight: 600; }
        pre { background: #f4f5f7; padding: 0.75rem; overflow-x: auto; max-height: 20rem; }
    </style>
</head>
<body>
    <h1>.NET migration report</h1>
    <p>
        Repository: <code>{{ report.repository or "local" }}</code>
        {% if report.branch %}(branch <code>{{ report.branch }}</code>){% endif %}<br>
        Target framework: <code>{{ report.target_framework }}</code><br>
        Generated: {{ report.generated_at }}
    </p>

    <h2>Summary</h2>
    <table class="summary">
        {% for key, value in summary.items() %}
        <tr><td>{{ key | replace("_", " ") | capitalize }}</td><td>{{ value }}</td></tr>
        {% endfor %}
    </table>

    {% if report.framework_changes %}
    <h2>Framework changes</h2>
    <table>
        <tr><th>Project</th><th>From</th><th>To</th><th>Applied</th></tr>
        {% for change in report.framework_changes %}
        <tr>
            <td>{{ change.project }}</td><td>{{ change.old_framework }}</td>
            <td>{{ change.new_framework }}</td><td>{{ "yes" if change.applied else "planned" }}</td>
        </tr>
        {% endfor %}
    </table>
    {% endif %}

    <h2>Projects</h2>
    {% for project in report.projects %}
    <h3>{{ project.name }}</h3>
    <p>
        <code>{{ project.path }}</code><br>
        Framework: {{ project.target_frameworks | join(", ") or "not declared" }}
        {% if project.needs_migration %}<strong>(needs migration)</strong>{% endif %}
    </p>
    {% if project.records %}
    <table>
        <tr><th>Package</th><th>Current</th><th>Latest</th><th>Compatibility</th><th>Private</th><th>Notes</th></tr>
        {% for record in project.records %}
        <tr>
            <td>{{ record.name }}</td>
            <td>{{ record.current_version or "-" }}</td>
            <td>{{ record.latest_version or "-" }}</td>
            <td class="{{ record.compatibility.value }}">{{ record.compatibility.value }}</td>
            <td>{{ "yes" if record.is_private else "no" }}</td>
            <td>{{ record.notes }}</td>
        </tr>
        {% endfor %}
    </table>
    {% else %}
    <p>No package references to resolve.</p>
    {% endif %}
    {% endfor %}

    {% if report.successful_updates %}
    <h2>Successful updates</h2>
    <table>
        <tr><th>Package</th><th>From</th><th>To</th><th>Change</th><th>Project</th><th>Applied</th></tr>
        {% for update in report.successful_updates %}
        <tr>
            <td>{{ update.package }}</td><td>{{ update.old_version }}</td><td>{{ update.new_version }}</td>
            <td>{{ update.semver_delta }}</td><td>{{ update.project }}</td>
            <td>{{ "yes" if update.applied else "planned" }}</td>
        </tr>
        {% endfor %}
    </table>
    {% endif %}

    {% if report.failed_updates %}
    <h2>Failed updates</h2>
    <table>
        <tr><th>Package</th><th>Version</th><th>Project</th><th>Reason</th></tr>
        {% for failure in report.failed_updates %}
        <tr>
            <td>{{ failure.package }}</td><td>{{ failure.version }}</td>
            <td>{{ failure.project }}</td><td>{{ failure.reason }}</td>
        </tr>
        {% endfor %}
    </table>
    {% endif %}

    {% if report.private_packages %}
    <h2>Private packages</h2>
    <table>
        <tr><th>Package</th><th>Version</th><th>Source</th><th>Latest</th><th>Manual verification</th></tr>
        {% for package in report.private_packages %}
        <tr>
            <td>{{ package.package }}</td><td>{{ package.version }}</td>
            <td>{{ package.source_url or "-" }}</td><td>{{ package.latest_version or "-" }}</td>
            <td>{{ "required" if package.requires_manual_verification else "no" }}</td>
        </tr>
        {% endfor %}
    </table>
    {% endif %}

    {% if report.build_results %}
    <h2>Build verification</h2>
    {% for build in report.build_results %}
    <h3>{{ build.project }}: {{ "succeeded" if build.succeeded else "failed (exit code %d)" % build.exit_code }}</h3>
    {% if build.output %}<pre>{{ build.output }}</pre>{% endif %}
    {% endfor %}
    {% endif %}

    {% if report.analysis_results %}
    <h2>Migration analysis</h2>
    {% for analysis in report.analysis_results %}
    <h3>{{ analysis.project }}: {{ "completed" if analysis.succeeded else "failed (exit code %d)" % analysis.exit_code }}</h3>
    {% if analysis.output %}<pre>{{ analysis.output }}</pre>{% endif %}
    {% endfor %}
    {% endif %}
</body>
</html>
"""

_environment = Environment(autoescape=select_autoescape(default_for_string=True))


def _serialize(pairs: list[tuple[str, object]]) -> dict:
    return {key: value.value if isinstance(value, Enum) else value for key, value in pairs}


def report_to_dict(report: MigrationReport) -> dict:
    data = asdict(report, dict_factory=_serialize)
    for project, project_data in zip(report.projects, data["projects"]):
        for record, record_data in zip(project.records, project_data["records"]):
            record_data["is_private"] = record.is_private
    data["summary"] = report.summary()
    return data


def render_html(report: MigrationReport) -> str:
    template = _environment.from_string(REPORT_TEMPLATE)
    return template.render(report=report, summary=report.summary())


def render_json(report: MigrationReport) -> str:
    return json.dumps(report_to_dict(report), indent=2)


def render_private_packages(report: MigrationReport) -> str:
    """One line per private package: name, version and where it was found."""
    lines = []
    for package in report.private_packages:
        where = package.source_url or "not found - verify manually"
        lines.append(f"{package.package} {package.version} ({where})")
    return "\n".join(lines) + "\n" if lines else ""


def write_reports(report: MigrationReport, output_folder: str | Path) -> list[Path]:
    """Write the HTML, JSON and private package files.

    Args:
        report: Aggregate to render
        output_folder: Folder to write into, created if missing

    Returns:
        Paths of the files written
    """
    folder = Path(output_folder)
    folder.mkdir(parents=True, exist_ok=True)

    written = []
    html_path = folder / HTML_FILENAME
    html_path.write_text(render_html(report), encoding="utf-8")
    written.append(html_path)

    json_path = folder / JSON_FILENAME
    json_path.write_text(render_json(report), encoding="utf-8")
    written.append(json_path)

    if report.private_packages:
        private_path = folder / PRIVATE_PACKAGES_FILENAME
        private_path.write_text(render_private_packages(report), encoding="utf-8")
        written.append(private_path)

    for path in written:
        logger.info("Wrote %s", path)
    return written
