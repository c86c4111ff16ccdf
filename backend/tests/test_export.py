import pytest
from datetime import datetime, timedelta, timezone

from pydantic import ValidationError

from backend.app.core.errors import PromptNotFoundError
from backend.app.models.srl import ChatMessage, SRLComponent
from backend.app.services.exporter import export_session_data, to_iso
from backend.app.services.serializers import export_to_csv, export_to_json, generate_report


def test_end_to_end_single_response(catalog, make_session, user_turn, bot_turn):
    session = make_session([
        user_turn("w1-meta-1", "I want to improve", minute=1),
        bot_turn("w1-meta-1", "Great reflection", minute=2),
    ])

    data = export_session_data(session, catalog)

    assert data.user_id == "student-42"
    assert data.session_id == "session-1"
    assert data.total_messages == 2
    assert len(data.responses) == 1

    row = data.responses[0]
    assert row.prompt_id == "w1-meta-1"
    assert row.component == SRLComponent.METACOGNITION
    assert row.week == 1
    assert row.question == "What are your main learning goals for this course?"
    assert row.response == "I want to improve"
    assert row.feedback == "Great reflection"
    assert row.timestamp == "2025-01-06T10:01:00.000Z"

    report = generate_report(data)
    assert "metacognition: 1 responses" in report


def test_empty_transcript(catalog, make_session):
    data = export_session_data(make_session([]), catalog)

    assert data.total_messages == 0
    assert data.responses == ()
    assert data.weekly_progress == ()
    assert data.srl_component_stats.model_dump() == {
        "metacognition": 0,
        "strategy": 0,
        "motivation": 0,
        "content": 0,
        "management": 0,
    }
    assert export_to_csv(data) == "User ID,Session ID,Week,Component,Question,Response,Feedback,Timestamp"


def test_unknown_prompt_is_dropped_silently(catalog, make_session, user_turn, bot_turn):
    session = make_session([
        user_turn("nonexistent", "This goes nowhere", minute=0),
        bot_turn("nonexistent", "Orphan feedback", minute=1),
        user_turn("w1-strategy-1", "Practice problems", minute=2),
        bot_turn("w1-strategy-1", "Practice is powerful", minute=3),
    ])

    data = export_session_data(session, catalog)

    assert [r.prompt_id for r in data.responses] == ["w1-strategy-1"]
    assert data.responses[0].feedback == "Practice is powerful"
    assert data.srl_component_stats.strategy == 1
    assert data.srl_component_stats.metacognition == 0
    # Dropped rows still count as transcript turns
    assert data.total_messages == 4


def test_feedback_pairing_picks_first_bot_turn(catalog, make_session, user_turn, bot_turn):
    session = make_session([
        user_turn("w1-meta-1", "Learn more", minute=0),
        bot_turn("w1-meta-1", "First feedback", minute=1),
        bot_turn("w1-meta-1", "Second feedback", minute=2),
    ])

    for _ in range(3):
        data = export_session_data(session, catalog)
        assert data.responses[0].feedback == "First feedback"


def test_feedback_pairing_is_by_prompt_id_not_position(catalog, make_session, user_turn, bot_turn):
    chatter = ChatMessage(
        id="aside",
        timestamp=datetime(2025, 1, 6, 10, 1, tzinfo=timezone.utc),
        sender="user",
        content="Sorry, one sec",
    )
    session = make_session([
        user_turn("w1-meta-1", "Goal one", minute=0),
        user_turn("w1-strategy-1", "Creating flashcards", minute=1),
        chatter,
        bot_turn("w1-strategy-1", "Flashcards feedback", minute=2),
        bot_turn(None, "Unrelated bot chatter", minute=3),
        bot_turn("w1-meta-1", "Goals feedback", minute=4),
    ])

    data = export_session_data(session, catalog)

    feedback = {r.prompt_id: r.feedback for r in data.responses}
    assert feedback == {"w1-meta-1": "Goals feedback", "w1-strategy-1": "Flashcards feedback"}


def test_bot_turn_with_empty_feedback_is_skipped(catalog, make_session, user_turn, bot_turn):
    session = make_session([
        user_turn("w1-meta-1", "Goal", minute=0),
        bot_turn("w1-meta-1", "", minute=1),
        bot_turn("w1-meta-1", "Real feedback", minute=2),
    ])

    data = export_session_data(session, catalog)

    assert data.responses[0].feedback == "Real feedback"


def test_missing_feedback_defaults_to_empty_string(catalog, make_session, user_turn):
    data = export_session_data(make_session([user_turn("w2-meta-1", "7")]), catalog)

    assert data.responses[0].feedback == ""


def test_turns_without_response_are_not_rows(catalog, make_session, user_turn):
    no_response = ChatMessage(
        id="typing",
        timestamp=datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc),
        sender="user",
        content="hello?",
        promptId="w1-meta-1",
    )
    bot_with_response = ChatMessage(
        id="echo",
        timestamp=datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc),
        sender="bot",
        content="echo",
        promptId="w1-meta-1",
        response="not a learner answer",
    )

    data = export_session_data(make_session([no_response, bot_with_response]), catalog)

    assert data.responses == ()
    assert data.total_messages == 2


def test_weekly_aggregation(catalog, make_session, user_turn):
    session = make_session([
        user_turn("w3-strategy-1", "x" * 10, minute=0),
        user_turn("w3-management-1", "y" * 20, minute=1),
    ])

    data = export_session_data(session, catalog)

    assert len(data.weekly_progress) == 1
    week = data.weekly_progress[0]
    assert week.week == 3
    assert week.prompts_completed == 2
    assert week.average_response_length == 15
    assert week.components_covered == (SRLComponent.STRATEGY, SRLComponent.MANAGEMENT)


def test_weekly_average_uses_raw_length(catalog, make_session, user_turn):
    session = make_session([
        user_turn("w4-content-1", "  ab  "),
        user_turn("w4-content-1", "abc", minute=1),
    ])

    data = export_session_data(session, catalog)

    week = data.weekly_progress[0]
    assert week.average_response_length == pytest.approx(4.5)
    assert week.components_covered == (SRLComponent.CONTENT,)
    assert data.srl_component_stats.content == 2


def test_weeks_sorted_and_rows_keep_transcript_order(catalog, make_session, user_turn):
    session = make_session([
        user_turn("w5-meta-1", "Recursion", minute=0),
        user_turn("w1-meta-1", "Get an A", minute=1),
        user_turn("w3-strategy-1", "yes", minute=2),
    ])

    data = export_session_data(session, catalog)

    assert [r.prompt_id for r in data.responses] == ["w5-meta-1", "w1-meta-1", "w3-strategy-1"]
    assert [w.week for w in data.weekly_progress] == [1, 3, 5]


def test_component_stats_keep_enumeration_order(catalog, make_session, user_turn):
    session = make_session([
        user_turn("w11-management-1", "Start early"),
        user_turn("w2-motivation-1", "8", minute=1),
    ])

    data = export_session_data(session, catalog)

    assert [c.value for c, _ in data.srl_component_stats.items()] == [
        "metacognition", "strategy", "motivation", "content", "management",
    ]
    assert dict((c.value, n) for c, n in data.srl_component_stats.items()) == {
        "metacognition": 0, "strategy": 0, "motivation": 1, "content": 0, "management": 1,
    }


def test_export_is_idempotent(catalog, make_session, user_turn, bot_turn):
    session = make_session([
        user_turn("w1-meta-1", 'He said, "ok"', minute=0),
        bot_turn("w1-meta-1", "Line one\nline two", minute=1),
        user_turn("w6-management-1", "Practice tests", minute=2),
    ])

    first = export_session_data(session, catalog)
    second = export_session_data(session, catalog)

    assert first == second
    assert export_to_json(first) == export_to_json(second)
    assert export_to_csv(first) == export_to_csv(second)


def test_export_record_is_immutable(catalog, make_session, user_turn):
    data = export_session_data(make_session([user_turn("w1-meta-1", "Goal")]), catalog)

    with pytest.raises(AttributeError):
        data.responses.append(data.responses[0])
    with pytest.raises(AttributeError):
        data.weekly_progress[0].components_covered.append(SRLComponent.CONTENT)
    with pytest.raises(ValidationError):
        data.user_id = "someone-else"


def test_export_does_not_mutate_session(catalog, make_session, user_turn, bot_turn):
    session = make_session([user_turn("w1-meta-1", "Goal"), bot_turn("w1-meta-1", "Nice", minute=1)])
    before = session.model_dump()

    export_session_data(session, catalog)

    assert session.model_dump() == before


def test_session_dates_are_utc_iso(catalog, make_session):
    session = make_session([], minutes=90)
    data = export_session_data(session, catalog)

    assert data.start_date == "2025-01-06T10:00:00.000Z"
    assert data.end_date == "2025-01-06T11:30:00.000Z"


def test_to_iso_normalizes_offsets():
    naive = datetime(2025, 3, 1, 8, 30, 15, 123456)
    offset = datetime(2025, 3, 1, 9, 30, 15, 123456, tzinfo=timezone(timedelta(hours=1)))

    assert to_iso(naive) == "2025-03-01T08:30:15.123Z"
    assert to_iso(offset) == "2025-03-01T08:30:15.123Z"


class BrokenCatalog:
    def get(self, prompt_id):
        raise RuntimeError("catalog backend is down")


def test_unavailable_catalog_fails_the_export(make_session, user_turn):
    session = make_session([user_turn("w1-meta-1", "Goal")])

    with pytest.raises(PromptNotFoundError):
        export_session_data(session, BrokenCatalog())

    with pytest.raises(PromptNotFoundError):
        export_session_data(session, None)
