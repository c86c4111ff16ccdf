"""
Error taxonomy.

Export failures (data could not be computed) and store failures (data was
computed but not saved) are separate branches so callers can tell them apart.
"""


class SRLReflectError(Exception):
    """Base class for every error raised by the application."""


# --- Export pipeline ---

class ExportError(SRLReflectError):
    pass


class PromptNotFoundError(ExportError):
    """The prompt catalog could not be consulted at all."""


class CatalogUnavailableError(PromptNotFoundError):
    """The catalog file is missing, unreadable or invalid."""


class SerializationError(SRLReflectError):
    """A serializer received a structurally invalid export record."""


# --- Persistence ---

class ArchiveStoreError(SRLReflectError):
    pass


class SessionStoreError(SRLReflectError):
    pass


class SessionNotFoundError(SessionStoreError):
    def __init__(self, session_id: str):
        super().__init__(f"Session '{session_id}' not found")
        self.session_id = session_id


class SessionArchivedError(SessionStoreError):
    def __init__(self, session_id: str):
        super().__init__(f"Session '{session_id}' is archived and cannot be modified")
        self.session_id = session_id


# --- Feedback ---

class FeedbackGenerationError(SRLReflectError):
    pass
