"""
Derived export record produced from a finished session.

Every model here is frozen: an export record is built once and never mutated.
"""
from datetime import datetime
from typing import Dict, Tuple

from pydantic import BaseModel, Field, field_validator

from backend.app.models.srl import SRLComponent


def parse_iso(value: str) -> datetime:
    """Parses an export timestamp; a trailing Z means UTC."""
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


class ResponseData(BaseModel):
    prompt_id: str = Field(alias="promptId")
    week: int
    component: SRLComponent
    question: str
    response: str
    feedback: str
    timestamp: str

    class Config:
        populate_by_name = True
        frozen = True


class ComponentStats(BaseModel):
    """One counter per SRL component, in enumeration order."""
    metacognition: int = 0
    strategy: int = 0
    motivation: int = 0
    content: int = 0
    management: int = 0

    class Config:
        frozen = True

    @classmethod
    def from_counts(cls, counts: Dict[SRLComponent, int]) -> "ComponentStats":
        return cls(**{component.value: counts.get(component, 0) for component in SRLComponent})

    def items(self):
        return [(component, getattr(self, component.value)) for component in SRLComponent]


class WeeklyProgress(BaseModel):
    week: int
    prompts_completed: int = Field(alias="promptsCompleted")
    average_response_length: float = Field(alias="averageResponseLength")
    components_covered: Tuple[SRLComponent, ...] = Field(alias="componentsCovered")

    class Config:
        populate_by_name = True
        frozen = True


class ExportData(BaseModel):
    user_id: str = Field(alias="userId")
    session_id: str = Field(alias="sessionId")
    start_date: str = Field(alias="startDate")
    end_date: str = Field(alias="endDate")
    total_messages: int = Field(alias="totalMessages")
    responses: Tuple[ResponseData, ...]
    srl_component_stats: ComponentStats = Field(alias="srlComponentStats")
    weekly_progress: Tuple[WeeklyProgress, ...] = Field(alias="weeklyProgress")

    class Config:
        populate_by_name = True
        frozen = True

    @field_validator("start_date", "end_date")
    @classmethod
    def check_iso_timestamp(cls, v: str) -> str:
        parse_iso(v)
        return v

    @property
    def started(self) -> datetime:
        return parse_iso(self.start_date)

    @property
    def ended(self) -> datetime:
        return parse_iso(self.end_date)
