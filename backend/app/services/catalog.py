import logging
from functools import lru_cache
from typing import Dict, Iterable, List, Optional

import yaml
from pydantic import ValidationError

from backend.app.core.config import settings
from backend.app.core.errors import CatalogUnavailableError
from backend.app.models.srl import SRLPrompt

logger = logging.getLogger(__name__)


class PromptCatalog:
    """
    Read-only set of SRL reflection prompts, keyed by prompt id.
    Presentation order is the order of the source file.
    """

    def __init__(self, prompts: Iterable[SRLPrompt]):
        self._prompts: Dict[str, SRLPrompt] = {}
        for prompt in prompts:
            if prompt.id in self._prompts:
                raise CatalogUnavailableError(f"Duplicate prompt id '{prompt.id}' in catalog")
            self._prompts[prompt.id] = prompt

    @classmethod
    def from_yaml(cls, path: str) -> "PromptCatalog":
        try:
            with open(path, "r", encoding="utf-8") as f:
                raw = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise CatalogUnavailableError(f"Failed to load prompt catalog from {path}: {e}") from e

        if not isinstance(raw, list):
            raise CatalogUnavailableError(f"Prompt catalog {path} must be a list of prompts")

        try:
            prompts = [SRLPrompt.model_validate(entry) for entry in raw]
        except ValidationError as e:
            raise CatalogUnavailableError(f"Invalid prompt in {path}: {e}") from e

        catalog = cls(prompts)
        logger.info("Loaded %d SRL prompts from %s", len(catalog), path)
        return catalog

    def get(self, prompt_id: str) -> Optional[SRLPrompt]:
        return self._prompts.get(prompt_id)

    def by_week(self, week: int) -> List[SRLPrompt]:
        return [p for p in self._prompts.values() if p.week == week]

    def weeks(self) -> List[int]:
        return sorted({p.week for p in self._prompts.values()})

    def all(self) -> List[SRLPrompt]:
        return list(self._prompts.values())

    def __contains__(self, prompt_id: str) -> bool:
        return prompt_id in self._prompts

    def __len__(self) -> int:
        return len(self._prompts)


@lru_cache(maxsize=1)
def get_catalog() -> PromptCatalog:
    return PromptCatalog.from_yaml(settings.PROMPT_CATALOG_PATH)
