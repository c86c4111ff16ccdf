import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Response
from pydantic import BaseModel, Field

from backend.app.api.deps import archive_store_dep, catalog_dep, session_store_dep
from backend.app.api.endpoints.session import store_error
from backend.app.core.errors import ArchiveStoreError, ExportError, SessionStoreError
from backend.app.models.srl import UserSession
from backend.app.services.archive_store import ArchiveStore
from backend.app.services.catalog import PromptCatalog
from backend.app.services.exporter import export_session_data
from backend.app.services.serializers import export_to_csv, export_to_json, generate_report
from backend.app.services.session_store import SessionStore

logger = logging.getLogger(__name__)

router = APIRouter()

DOWNLOADS = {
    "json": (export_to_json, "application/json", "json_file"),
    "csv": (export_to_csv, "text/csv", "csv"),
    "report": (generate_report, "text/plain", "report"),
}

class ArchiveRequest(BaseModel):
    session: Optional[UserSession] = None
    session_id: Optional[str] = Field(default=None, alias="sessionId")

    class Config:
        populate_by_name = True

@router.post("")
async def archive_session(
    request: ArchiveRequest,
    catalog: PromptCatalog = Depends(catalog_dep),
    archives: ArchiveStore = Depends(archive_store_dep),
    sessions: SessionStore = Depends(session_store_dep),
):
    """
    Exports a finished session and stores the result.
    Accepts either a full session document or the id of a stored session.
    """
    session = request.session
    if session is None:
        if not request.session_id:
            raise HTTPException(status_code=400, detail="Session data is required")
        try:
            session = await sessions.get(request.session_id)
        except SessionStoreError as e:
            raise store_error(e)

    try:
        export_data = export_session_data(session, catalog)
    except ExportError as e:
        logger.error("Export of session %s failed: %s", session.id, e)
        raise HTTPException(status_code=500, detail=f"Session data could not be computed: {e}")

    try:
        archive_id = await archives.put(export_data)
    except ArchiveStoreError as e:
        logger.error("Archiving session %s failed: %s", session.id, e)
        raise HTTPException(status_code=503, detail=f"Session data was computed but not saved: {e}")

    if request.session is None:
        try:
            await sessions.mark_archived(session.id)
        except SessionStoreError as e:
            logger.warning("Archived %s but could not flag session %s: %s", archive_id, session.id, e)

    return {
        "success": True,
        "message": "Session archived successfully",
        "archiveId": archive_id,
        "exportData": {
            "userId": export_data.user_id,
            "sessionId": export_data.session_id,
            "totalMessages": export_data.total_messages,
            "responses": len(export_data.responses),
            "srlComponentStats": export_data.srl_component_stats.model_dump(),
        },
    }

@router.get("")
async def list_archives(archives: ArchiveStore = Depends(archive_store_dep)):
    try:
        records = await archives.list()
    except ArchiveStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    return {
        "success": True,
        "sessions": [r.summary().model_dump(mode="json", by_alias=True) for r in records],
    }

@router.get("/download")
async def download_archive(
    id: Optional[str] = None,
    type: Optional[str] = None,
    archives: ArchiveStore = Depends(archive_store_dep),
):
    """
    Returns an archived export as a file: json, csv or a plain-text report.
    """
    if not id or not type:
        raise HTTPException(status_code=400, detail="Archive ID and type parameters are required")
    if type not in DOWNLOADS:
        raise HTTPException(status_code=400, detail="Invalid file type")

    try:
        record = await archives.get(id)
    except ArchiveStoreError as e:
        raise HTTPException(status_code=503, detail=str(e))
    if record is None:
        raise HTTPException(status_code=404, detail="Archive not found")

    serializer, media_type, file_field = DOWNLOADS[type]
    filename = getattr(record.files, file_field)
    return Response(
        content=serializer(record.export_data),
        media_type=media_type,
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
