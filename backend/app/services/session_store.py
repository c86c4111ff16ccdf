"""
Learner sessions: created when a learner starts, turns appended as the
conversation goes, frozen once archived.
"""
import json
import logging
import uuid
from abc import ABC, abstractmethod
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Optional

from arango.exceptions import ArangoError
from pydantic import ValidationError

from backend.app.core.config import settings
from backend.app.core.errors import SessionArchivedError, SessionNotFoundError, SessionStoreError
from backend.app.models.srl import ChatMessage, UserSession

logger = logging.getLogger(__name__)


def new_message(sender: str, content: str, prompt_id: Optional[str] = None,
                response: Optional[str] = None, feedback: Optional[str] = None) -> ChatMessage:
    return ChatMessage(
        id=uuid.uuid4().hex,
        timestamp=datetime.now(timezone.utc),
        sender=sender,
        content=content,
        promptId=prompt_id,
        response=response,
        feedback=feedback,
    )


class SessionStore(ABC):
    """
    Backends only load and save whole session documents; the lifecycle rules
    live here.
    """

    @abstractmethod
    def _load(self, session_id: str) -> Optional[Dict]:
        ...

    @abstractmethod
    def _save(self, doc: Dict, new: bool = False) -> None:
        ...

    async def create(self, user_id: str, current_week: int = 1) -> UserSession:
        now = datetime.now(timezone.utc)
        session = UserSession(
            id=uuid.uuid4().hex,
            userId=user_id,
            currentWeek=current_week,
            chatHistory=[],
            createdAt=now,
            lastActive=now,
        )
        self._save(session.model_dump(mode="json", by_alias=True), new=True)
        logger.info("Created session %s for %s (week %d)", session.id, user_id, current_week)
        return session

    async def get(self, session_id: str) -> UserSession:
        doc = self._load(session_id)
        if doc is None:
            raise SessionNotFoundError(session_id)
        try:
            return UserSession.model_validate({k: v for k, v in doc.items() if not k.startswith("_")})
        except ValidationError as e:
            raise SessionStoreError(f"Stored session {session_id} is invalid: {e}") from e

    async def append(self, session_id: str, *messages: ChatMessage) -> UserSession:
        session = await self.get(session_id)
        if session.is_archived:
            raise SessionArchivedError(session_id)

        history = session.chat_history + list(messages)
        last_active = max([session.last_active] + [m.timestamp for m in messages])
        updated = session.model_copy(update={"chat_history": history, "last_active": last_active})
        self._save(updated.model_dump(mode="json", by_alias=True))
        return updated

    async def mark_archived(self, session_id: str) -> UserSession:
        session = await self.get(session_id)
        updated = session.model_copy(update={"is_archived": True})
        self._save(updated.model_dump(mode="json", by_alias=True))
        return updated


class ArangoSessionStore(SessionStore):
    COLLECTION = "Sessions"

    def __init__(self, database=None):
        self._database = database

    @property
    def db(self):
        if self._database is None:
            from backend.app.db.arango import db
            self._database = db.get_db()
        return self._database

    def _load(self, session_id: str) -> Optional[Dict]:
        try:
            return self.db.collection(self.COLLECTION).get(session_id)
        except ArangoError as e:
            raise SessionStoreError(f"Failed to read session {session_id}: {e}") from e

    def _save(self, doc: Dict, new: bool = False) -> None:
        doc = dict(doc, _key=doc["id"])
        try:
            if new:
                self.db.collection(self.COLLECTION).insert(doc)
            else:
                self.db.collection(self.COLLECTION).replace(doc)
        except ArangoError as e:
            raise SessionStoreError(f"Failed to save session {doc['id']}: {e}") from e


class FileSessionStore(SessionStore):
    def __init__(self, root: str):
        self.path = Path(root) / "sessions"

    def _file(self, session_id: str) -> Path:
        return self.path / f"{session_id}.json"

    def _load(self, session_id: str) -> Optional[Dict]:
        if not session_id.isalnum():
            return None
        file = self._file(session_id)
        if not file.exists():
            return None
        try:
            return json.loads(file.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            raise SessionStoreError(f"Failed to read session {session_id}: {e}") from e

    def _save(self, doc: Dict, new: bool = False) -> None:
        try:
            self.path.mkdir(parents=True, exist_ok=True)
            with open(self._file(doc["id"]), "x" if new else "w", encoding="utf-8") as f:
                json.dump(doc, f, indent=2, ensure_ascii=False)
        except OSError as e:
            raise SessionStoreError(f"Failed to save session {doc['id']}: {e}") from e


def get_session_store() -> SessionStore:
    if settings.STORAGE_BACKEND == "file":
        return FileSessionStore(settings.DATA_DIR)
    return ArangoSessionStore()
