from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from backend.app.api.deps import catalog_dep, feedback_service_dep
from backend.app.models.srl import SRLComponent
from backend.app.services.catalog import PromptCatalog
from backend.app.services.feedback import FeedbackService

router = APIRouter()

VALID_COMPONENTS = ", ".join(c.value for c in SRLComponent)

class FeedbackRequest(BaseModel):
    prompt_id: Optional[str] = Field(default=None, alias="promptId")
    response: Optional[str] = None
    component: Optional[str] = None
    week: Optional[int] = None

    class Config:
        populate_by_name = True

class FollowUpRequest(BaseModel):
    component: str
    week: int = 1
    previous_response: Optional[str] = Field(default=None, alias="previousResponse")

    class Config:
        populate_by_name = True

def parse_component(value: str) -> SRLComponent:
    try:
        return SRLComponent(value)
    except ValueError:
        raise HTTPException(status_code=400, detail=f"Invalid component. Must be one of: {VALID_COMPONENTS}")

@router.post("")
async def generate_feedback(
    request: FeedbackRequest,
    catalog: PromptCatalog = Depends(catalog_dep),
    feedback_service: FeedbackService = Depends(feedback_service_dep),
):
    """
    Coaching feedback for a single prompt response, without touching a session.
    """
    if not request.prompt_id or not request.response or not request.component or not request.week:
        raise HTTPException(status_code=400, detail="Missing required fields: promptId, response, component, week")

    component = parse_component(request.component)
    prompt = catalog.get(request.prompt_id)
    if prompt is None:
        raise HTTPException(status_code=404, detail=f"Prompt '{request.prompt_id}' not found")
    if prompt.component != component or prompt.week != request.week:
        raise HTTPException(status_code=400, detail=f"Component and week do not match prompt '{prompt.id}'")

    feedback = await feedback_service.generate(prompt, request.response)
    return {"success": True, "feedback": feedback.model_dump(by_alias=True)}

@router.post("/follow-up")
async def generate_follow_up(request: FollowUpRequest, feedback_service: FeedbackService = Depends(feedback_service_dep)):
    component = parse_component(request.component)
    question = await feedback_service.follow_up(component, request.week, request.previous_response)
    return {"success": True, "question": question}
