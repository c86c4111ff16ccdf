from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from backend.app.api.deps import catalog_dep, feedback_service_dep, session_store_dep
from backend.app.core.errors import SessionArchivedError, SessionNotFoundError, SessionStoreError
from backend.app.services.catalog import PromptCatalog
from backend.app.services.feedback import FeedbackService
from backend.app.services.session_store import SessionStore, new_message

router = APIRouter()

class CreateSessionRequest(BaseModel):
    user_id: str = Field(alias="userId", min_length=1)
    current_week: int = Field(default=1, alias="currentWeek", gt=0)

    class Config:
        populate_by_name = True

class RespondRequest(BaseModel):
    prompt_id: str = Field(alias="promptId")
    response: str

    class Config:
        populate_by_name = True

def store_error(e: SessionStoreError) -> HTTPException:
    if isinstance(e, SessionNotFoundError):
        return HTTPException(status_code=404, detail=str(e))
    if isinstance(e, SessionArchivedError):
        return HTTPException(status_code=409, detail=str(e))
    return HTTPException(status_code=503, detail=str(e))

@router.post("/create")
async def create_new_session(request: CreateSessionRequest, store: SessionStore = Depends(session_store_dep)):
    """
    Starts a new reflection session for a learner.
    """
    try:
        session = await store.create(request.user_id, request.current_week)
    except SessionStoreError as e:
        raise store_error(e)
    return session.model_dump(mode="json", by_alias=True)

@router.get("/{session_id}")
async def get_session_endpoint(session_id: str, store: SessionStore = Depends(session_store_dep)):
    try:
        session = await store.get(session_id)
    except SessionStoreError as e:
        raise store_error(e)
    return session.model_dump(mode="json", by_alias=True)

@router.post("/{session_id}/respond")
async def respond(
    session_id: str,
    request: RespondRequest,
    store: SessionStore = Depends(session_store_dep),
    catalog: PromptCatalog = Depends(catalog_dep),
    feedback_service: FeedbackService = Depends(feedback_service_dep),
):
    """
    Records a learner answer, generates coaching feedback and records it.
    """
    try:
        session = await store.get(session_id)
        if session.is_archived:
            raise SessionArchivedError(session_id)
    except SessionStoreError as e:
        raise store_error(e)

    prompt = catalog.get(request.prompt_id)
    if prompt is None:
        raise HTTPException(status_code=404, detail=f"Prompt '{request.prompt_id}' not found")
    if not prompt.accepts(request.response):
        raise HTTPException(status_code=422, detail=f"Response is not valid for a {prompt.type.value} prompt")

    answer = new_message("user", request.response, prompt_id=prompt.id, response=request.response)
    feedback = await feedback_service.generate(prompt, request.response, history=session.chat_history)
    reply = new_message("bot", feedback.feedback, prompt_id=prompt.id, feedback=feedback.feedback)

    try:
        session = await store.append(session_id, answer, reply)
    except SessionStoreError as e:
        raise store_error(e)

    return {
        "session": session.model_dump(mode="json", by_alias=True),
        "feedback": feedback.model_dump(by_alias=True),
    }

@router.post("/{session_id}/complete")
async def complete(
    session_id: str,
    store: SessionStore = Depends(session_store_dep),
    feedback_service: FeedbackService = Depends(feedback_service_dep),
):
    """
    Closes the conversation with a short set of personalised tips.
    """
    try:
        session = await store.get(session_id)
        message = await feedback_service.completion_message(session.chat_history)
        session = await store.append(session_id, new_message("bot", message))
    except SessionStoreError as e:
        raise store_error(e)
    return {"message": message, "session": session.model_dump(mode="json", by_alias=True)}
