import logging

from fastapi import FastAPI
from backend.app.core.config import settings
from backend.app.db.arango import db
from backend.app.api.api import api_router
from backend.app.services.catalog import get_catalog

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title=settings.PROJECT_NAME)

@app.on_event("startup")
async def startup_event():
    # Fail fast on a broken catalog instead of on the first export
    get_catalog()
    if settings.STORAGE_BACKEND == "arango":
        db.initialize()

app.include_router(api_router, prefix=settings.API_V1_STR)

@app.get("/")
async def root():
    return {"message": f"{settings.PROJECT_NAME} API is running"}

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
