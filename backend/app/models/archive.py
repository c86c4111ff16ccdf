from datetime import datetime
from typing import Dict

from pydantic import BaseModel, Field

from backend.app.models.export import ComponentStats, ExportData


class ArchiveFiles(BaseModel):
    json_file: str = Field(alias="json")
    csv: str
    report: str

    class Config:
        populate_by_name = True

    @classmethod
    def for_user(cls, user_id: str, archived_at: datetime) -> "ArchiveFiles":
        stem = f"{user_id}_{archived_at.date().isoformat()}"
        return cls(json=f"{stem}.json", csv=f"{stem}.csv", report=f"{stem}_report.txt")


class ArchiveRecord(BaseModel):
    id: str
    session_id: str = Field(alias="sessionId")
    user_id: str = Field(alias="userId")
    archived_at: datetime = Field(alias="archivedAt")
    export_data: ExportData = Field(alias="exportData")
    files: ArchiveFiles

    class Config:
        populate_by_name = True

    def summary(self) -> "ArchiveSummary":
        return ArchiveSummary(
            id=self.id,
            userId=self.user_id,
            sessionId=self.session_id,
            archivedAt=self.archived_at,
            filename=self.files.json_file,
            totalMessages=self.export_data.total_messages,
            responses=len(self.export_data.responses),
            srlComponentStats=self.export_data.srl_component_stats,
        )


class ArchiveSummary(BaseModel):
    """Row in the admin archive listing."""
    id: str
    user_id: str = Field(alias="userId")
    session_id: str = Field(alias="sessionId")
    archived_at: datetime = Field(alias="archivedAt")
    filename: str
    total_messages: int = Field(alias="totalMessages")
    responses: int
    srl_component_stats: ComponentStats = Field(alias="srlComponentStats")

    class Config:
        populate_by_name = True


def archive_document(record: ArchiveRecord) -> Dict:
    """JSON-safe dict for storage backends."""
    return record.model_dump(mode="json", by_alias=True)
