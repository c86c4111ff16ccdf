"""
Session export: turns a finished session transcript into an ExportData record.

The transform is a pure function of (session, catalog). It does not persist,
log or mutate its input, so exporting an unchanged session twice yields equal
records.
"""
from collections import Counter
from datetime import datetime
from typing import Dict, List, Optional

from backend.app.core.errors import PromptNotFoundError
from backend.app.models.export import ComponentStats, ExportData, ResponseData, WeeklyProgress
from backend.app.models.srl import ChatMessage, SRLComponent, SRLPrompt, UserSession, ensure_utc


def to_iso(value: datetime) -> str:
    """UTC timestamp with millisecond precision and a Z suffix."""
    value = ensure_utc(value)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _lookup(catalog, prompt_id: str) -> Optional[SRLPrompt]:
    if catalog is None:
        raise PromptNotFoundError("Prompt catalog unavailable")
    try:
        return catalog.get(prompt_id)
    except PromptNotFoundError:
        raise
    except Exception as e:
        raise PromptNotFoundError(f"Prompt catalog unavailable: {e}") from e


def _feedback_index(history: List[ChatMessage]) -> Dict[str, str]:
    # First bot turn with feedback wins for each prompt id.
    index: Dict[str, str] = {}
    for message in history:
        if message.sender == "bot" and message.prompt_id and message.feedback:
            index.setdefault(message.prompt_id, message.feedback)
    return index


def _is_answer(message: ChatMessage) -> bool:
    return message.sender == "user" and bool(message.prompt_id) and bool(message.response)


def export_session_data(session: UserSession, catalog) -> ExportData:
    """
    Builds the derived export record for a session.

    User turns whose prompt id is not in the catalog are dropped. Feedback is
    paired by prompt id, not by position, and defaults to an empty string.
    Raises PromptNotFoundError only when the catalog itself cannot be used.
    """
    feedback_by_prompt = _feedback_index(session.chat_history)

    responses: List[ResponseData] = []
    counts: Counter = Counter()
    weekly: Dict[int, Dict] = {}

    for message in session.chat_history:
        if not _is_answer(message):
            continue

        prompt = _lookup(catalog, message.prompt_id)
        if prompt is None:
            continue

        responses.append(ResponseData(
            promptId=prompt.id,
            week=prompt.week,
            component=prompt.component,
            question=prompt.question,
            response=message.response,
            feedback=feedback_by_prompt.get(prompt.id, ""),
            timestamp=to_iso(message.timestamp),
        ))
        counts[prompt.component] += 1

        week = weekly.setdefault(prompt.week, {"lengths": [], "components": []})
        week["lengths"].append(len(message.response))
        if prompt.component not in week["components"]:
            week["components"].append(prompt.component)

    weekly_progress = [
        WeeklyProgress(
            week=week,
            promptsCompleted=len(data["lengths"]),
            averageResponseLength=sum(data["lengths"]) / len(data["lengths"]),
            componentsCovered=list(data["components"]),
        )
        for week, data in sorted(weekly.items())
    ]

    return ExportData(
        userId=session.user_id,
        sessionId=session.id,
        startDate=to_iso(session.created_at),
        endDate=to_iso(session.last_active),
        totalMessages=len(session.chat_history),
        responses=responses,
        srlComponentStats=ComponentStats.from_counts(counts),
        weeklyProgress=weekly_progress,
    )


def components_with_responses(data: ExportData) -> List[SRLComponent]:
    return [component for component, count in data.srl_component_stats.items() if count > 0]
