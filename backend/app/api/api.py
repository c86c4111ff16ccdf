from fastapi import APIRouter
from backend.app.api.endpoints import archive, feedback, prompts, session

api_router = APIRouter()
api_router.include_router(prompts.router, prefix="/prompts", tags=["prompts"])
api_router.include_router(session.router, prefix="/session", tags=["session"])
api_router.include_router(feedback.router, prefix="/feedback", tags=["feedback"])
api_router.include_router(archive.router, prefix="/archive", tags=["archive"])
