import os
import tempfile

# Tests run against the file-backed stores and never reach a real model.
os.environ["STORAGE_BACKEND"] = "file"
os.environ["DATA_DIR"] = tempfile.mkdtemp(prefix="srl-reflect-")
os.environ.pop("OPEN_ROUTER_API_KEY", None)

from datetime import datetime, timedelta, timezone

import pytest
from langchain_core.messages import AIMessage

from backend.app.core.config import settings
from backend.app.models.srl import ChatMessage, UserSession
from backend.app.services.catalog import PromptCatalog

START = datetime(2025, 1, 6, 10, 0, tzinfo=timezone.utc)


class FakeLLM:
    """Stands in for ChatOpenAI: records calls, returns a canned reply or raises."""

    def __init__(self, reply="Nice thinking! What made you choose that?", error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def ainvoke(self, messages):
        self.calls.append(messages)
        if self.error:
            raise self.error
        return AIMessage(content=self.reply)


@pytest.fixture
def catalog():
    return PromptCatalog.from_yaml(settings.PROMPT_CATALOG_PATH)


@pytest.fixture
def user_turn():
    def make(prompt_id, response, minute=0, content=None):
        return ChatMessage(
            id=f"u-{prompt_id}-{minute}",
            timestamp=START + timedelta(minutes=minute),
            sender="user",
            content=response if content is None else content,
            promptId=prompt_id,
            response=response,
        )
    return make


@pytest.fixture
def bot_turn():
    def make(prompt_id, feedback, minute=0):
        return ChatMessage(
            id=f"b-{prompt_id}-{minute}",
            timestamp=START + timedelta(minutes=minute),
            sender="bot",
            content=feedback or "",
            promptId=prompt_id,
            feedback=feedback,
        )
    return make


@pytest.fixture
def make_session():
    def make(turns, minutes=15, user_id="student-42", session_id="session-1"):
        return UserSession(
            id=session_id,
            userId=user_id,
            currentWeek=1,
            chatHistory=list(turns),
            createdAt=START,
            lastActive=START + timedelta(minutes=minutes),
        )
    return make


@pytest.fixture
def fake_llm():
    return FakeLLM
