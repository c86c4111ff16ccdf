from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from backend.app.api.deps import catalog_dep
from backend.app.services.catalog import PromptCatalog

router = APIRouter()

@router.get("")
async def list_prompts(week: Optional[int] = None, catalog: PromptCatalog = Depends(catalog_dep)):
    """
    Returns the reflection prompts, optionally only those for one week.
    """
    selected = catalog.by_week(week) if week is not None else catalog.all()
    return [p.model_dump(mode="json", by_alias=True, exclude_none=True) for p in selected]

@router.get("/weeks")
async def list_weeks(catalog: PromptCatalog = Depends(catalog_dep)):
    return {"weeks": catalog.weeks()}

@router.get("/{prompt_id}")
async def get_prompt(prompt_id: str, catalog: PromptCatalog = Depends(catalog_dep)):
    prompt = catalog.get(prompt_id)
    if prompt is None:
        raise HTTPException(status_code=404, detail=f"Prompt '{prompt_id}' not found")
    return prompt.model_dump(mode="json", by_alias=True, exclude_none=True)
