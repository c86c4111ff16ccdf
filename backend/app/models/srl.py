"""
SRL domain models: prompts, transcript turns and learner sessions.

Field aliases keep the camelCase wire format of the survey front-end
(`userId`, `chatHistory`, `promptId`...); both forms are accepted on input.
"""
from datetime import datetime, timezone
from enum import Enum
from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


class SRLComponent(str, Enum):
    METACOGNITION = "metacognition"
    STRATEGY = "strategy"
    MOTIVATION = "motivation"
    CONTENT = "content"
    MANAGEMENT = "management"


class ResponseType(str, Enum):
    MULTIPLE_CHOICE = "multiple-choice"
    OPEN_ENDED = "open-ended"
    SLIDER = "slider"
    YES_NO = "yes-no"
    ACKNOWLEDGEMENT = "acknowledgement"


def ensure_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class SRLPrompt(BaseModel):
    id: str
    week: int = Field(gt=0)
    component: SRLComponent
    title: str
    question: str
    type: ResponseType
    options: Optional[List[str]] = None
    min_value: Optional[float] = Field(default=None, alias="minValue")
    max_value: Optional[float] = Field(default=None, alias="maxValue")
    description: Optional[str] = None

    class Config:
        populate_by_name = True
        frozen = True

    @model_validator(mode="after")
    def check_constraints(self):
        if self.type == ResponseType.MULTIPLE_CHOICE and not self.options:
            raise ValueError(f"Prompt '{self.id}': multiple-choice prompts need options")
        if self.type == ResponseType.SLIDER:
            if self.min_value is None or self.max_value is None:
                raise ValueError(f"Prompt '{self.id}': slider prompts need minValue and maxValue")
            if self.min_value > self.max_value:
                raise ValueError(f"Prompt '{self.id}': minValue is greater than maxValue")
        return self

    def accepts(self, response: str) -> bool:
        """
        Checks a raw learner answer against the prompt's type constraints.
        """
        if self.type == ResponseType.MULTIPLE_CHOICE:
            return response in (self.options or [])
        if self.type == ResponseType.SLIDER:
            try:
                value = float(response)
            except (TypeError, ValueError):
                return False
            return self.min_value <= value <= self.max_value
        if self.type == ResponseType.YES_NO:
            return response.strip().lower() in ("yes", "no")
        if self.type == ResponseType.OPEN_ENDED:
            return bool(response.strip())
        return True


class ChatMessage(BaseModel):
    """A single transcript turn."""
    id: str
    timestamp: datetime
    sender: Literal["user", "bot"]
    content: str = ""
    prompt_id: Optional[str] = Field(default=None, alias="promptId")
    response: Optional[str] = None
    feedback: Optional[str] = None

    class Config:
        populate_by_name = True

    @field_validator("timestamp")
    @classmethod
    def normalize_timestamp(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class UserSession(BaseModel):
    id: str
    user_id: str = Field(alias="userId", min_length=1)
    current_week: int = Field(default=1, alias="currentWeek", gt=0)
    chat_history: List[ChatMessage] = Field(default_factory=list, alias="chatHistory")
    created_at: datetime = Field(alias="createdAt")
    last_active: datetime = Field(alias="lastActive")
    is_archived: bool = Field(default=False, alias="isArchived")

    class Config:
        populate_by_name = True

    @field_validator("created_at", "last_active")
    @classmethod
    def normalize_dates(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class SRLFeedback(BaseModel):
    prompt_id: str = Field(alias="promptId")
    response: str
    feedback: str
    suggestions: List[str] = []
    next_steps: List[str] = Field(default_factory=list, alias="nextSteps")

    class Config:
        populate_by_name = True
