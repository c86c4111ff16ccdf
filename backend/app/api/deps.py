from functools import lru_cache

from backend.app.services.archive_store import ArchiveStore, get_archive_store
from backend.app.services.catalog import PromptCatalog, get_catalog
from backend.app.services.feedback import FeedbackService
from backend.app.services.session_store import SessionStore, get_session_store


def catalog_dep() -> PromptCatalog:
    return get_catalog()


@lru_cache(maxsize=1)
def session_store_dep() -> SessionStore:
    return get_session_store()


@lru_cache(maxsize=1)
def archive_store_dep() -> ArchiveStore:
    return get_archive_store()


@lru_cache(maxsize=1)
def feedback_service_dep() -> FeedbackService:
    return FeedbackService()
