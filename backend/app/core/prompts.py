import logging
from typing import Dict

import yaml

from backend.app.core.config import settings

logger = logging.getLogger(__name__)

class PromptLoader:
    """
    LLM prompt templates, keyed by name, with str.format placeholders.
    """
    def __init__(self, prompts_path: str = settings.PROMPT_TEMPLATES_PATH):
        self.prompts_path = prompts_path
        self._prompts: Dict[str, str] = {}
        self._load_prompts()

    def _load_prompts(self):
        try:
            with open(self.prompts_path, "r", encoding="utf-8") as f:
                self._prompts = yaml.safe_load(f) or {}
            logger.info("Loaded %d prompt templates from %s", len(self._prompts), self.prompts_path)
        except (OSError, yaml.YAMLError):
            logger.exception("Failed to load prompt templates from %s", self.prompts_path)
            self._prompts = {}

    def reload(self):
        """Hot-reload prompts from disk."""
        self._load_prompts()

    def raw(self, key: str):
        value = self._prompts.get(key)
        if value is None:
            raise KeyError(f"Prompt key '{key}' not found in {self.prompts_path}")
        return value

    def get(self, key: str, **kwargs) -> str:
        """
        Retrieves a prompt by key and formats it with kwargs.
        """
        template = self.raw(key)
        try:
            return template.format(**kwargs)
        except KeyError as e:
            raise KeyError(f"Missing argument for prompt '{key}': {e}")

prompts = PromptLoader()
