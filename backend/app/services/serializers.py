"""
Text renderings of an ExportData record: JSON (canonical), CSV and a prose
report. JSON and CSV are byte-for-byte deterministic; the report ends with a
single "Generated on" line, which is the only varying content.
"""
import csv
import io
import json
import math
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError

from backend.app.core.errors import SerializationError
from backend.app.models.export import ExportData
from backend.app.services.exporter import components_with_responses, to_iso

CSV_HEADERS = [
    "User ID",
    "Session ID",
    "Week",
    "Component",
    "Question",
    "Response",
    "Feedback",
    "Timestamp",
]

REPORT_TITLE = "SRL Learning Assistant - Session Report"


def _require_export(data) -> ExportData:
    """
    Accepts an ExportData (or its JSON-shaped dict). Missing required fields
    are an error; no defaults are filled in.
    """
    if isinstance(data, ExportData):
        missing = [name for name in ExportData.model_fields if name not in data.__dict__]
        if missing:
            raise SerializationError(f"Export record is missing required fields: {', '.join(missing)}")
        return data
    if isinstance(data, dict):
        try:
            return ExportData.model_validate(data)
        except ValidationError as e:
            raise SerializationError(f"Invalid export record: {e}") from e
    raise SerializationError(f"Expected an export record, got {type(data).__name__}")


def export_to_json(data) -> str:
    data = _require_export(data)
    return json.dumps(data.model_dump(mode="json", by_alias=True), indent=2, ensure_ascii=False)


def export_from_json(text: str) -> ExportData:
    try:
        return ExportData.model_validate_json(text)
    except ValidationError as e:
        raise SerializationError(f"Invalid export JSON: {e}") from e


def export_to_csv(data) -> str:
    data = _require_export(data)

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(CSV_HEADERS)
    for row in data.responses:
        writer.writerow([
            data.user_id,
            data.session_id,
            row.week,
            row.component.value,
            row.question,
            row.response,
            row.feedback,
            row.timestamp,
        ])
    return buffer.getvalue().rstrip("\n")


def duration_minutes(data: ExportData) -> int:
    """Session length rounded to the nearest whole minute (halves round up)."""
    seconds = (data.ended - data.started).total_seconds()
    return int(math.floor(seconds / 60 + 0.5))


def recommendations(data: ExportData) -> List[str]:
    tips = []

    counts = [count for _, count in data.srl_component_stats.items()]
    if max(counts) - min(counts) > 2:
        tips.append("Consider focusing more on components with fewer responses")

    if len(data.weekly_progress) < 4:
        tips.append("Try to engage with prompts more consistently across weeks")

    if data.responses:
        average = sum(len(r.response) for r in data.responses) / len(data.responses)
        if average < 50:
            tips.append("Consider providing more detailed responses for better learning reflection")

    if not tips:
        tips.append("Excellent engagement! Continue with current learning practices")
    return tips


def generate_report(data, generated_at: Optional[datetime] = None) -> str:
    data = _require_export(data)
    generated_at = generated_at or datetime.now(timezone.utc)

    covered = components_with_responses(data)

    lines = [
        REPORT_TITLE,
        "=" * len(REPORT_TITLE),
        "",
        f"Student ID: {data.user_id}",
        f"Session ID: {data.session_id}",
        f"Date: {data.started.date().isoformat()}",
        f"Duration: {duration_minutes(data)} minutes",
        "",
        "Activity Summary:",
        f"- Total Messages: {data.total_messages}",
        f"- Prompts Completed: {len(data.responses)}",
        f"- SRL Components Covered: {', '.join(c.value for c in covered) if covered else 'none'}",
        "",
        "SRL Component Engagement:",
    ]
    lines += [f"- {component.value}: {count} responses" for component, count in data.srl_component_stats.items()]

    lines += ["", "Weekly Progress:"]
    if data.weekly_progress:
        lines += [f"- Week {wp.week}: {wp.prompts_completed} prompts" for wp in data.weekly_progress]
    else:
        lines.append("- No prompts completed")

    lines += ["", "Responses:"]
    if data.responses:
        lines += [f'{i}. {r.question} — "{r.response}"' for i, r in enumerate(data.responses, start=1)]
    else:
        lines.append("- No responses recorded")

    lines += ["", "Recommendations:"]
    lines += [f"- {tip}" for tip in recommendations(data)]

    lines += ["", f"Generated on: {to_iso(generated_at)}"]
    return "\n".join(lines) + "\n"
