from pathlib import Path
from typing import Literal, Optional

from pydantic_settings import BaseSettings

APP_DIR = Path(__file__).resolve().parents[1]

class Settings(BaseSettings):
    PROJECT_NAME: str = "SRL Reflect"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Storage
    STORAGE_BACKEND: Literal["arango", "file"] = "arango"
    DATA_DIR: str = "data"

    # ArangoDB
    ARANGO_HOST: str = "http://localhost:8529"
    ARANGO_USERNAME: str = "root"
    ARANGO_PASSWORD: str = "test"
    ARANGO_DB_NAME: str = "srl_reflect"

    # Prompt content
    PROMPT_CATALOG_PATH: str = str(APP_DIR / "data" / "srl_prompts.yaml")
    PROMPT_TEMPLATES_PATH: str = str(APP_DIR / "prompts" / "prompts.yaml")

    # LLM (OpenAI-compatible endpoint, OpenRouter by default)
    OPEN_ROUTER_API_KEY: Optional[str] = None
    LLM_BASE_URL: str = "https://openrouter.ai/api/v1"
    LLM_MODEL: str = "openai/gpt-4o-mini"
    LLM_TEMPERATURE: float = 0.7
    LLM_MAX_RETRIES: int = 3

    # Token bucket in front of the LLM
    LLM_RATE_CAPACITY: int = 5
    LLM_RATE_REFILL: float = 0.5

    class Config:
        env_file = ".env"

settings = Settings()
