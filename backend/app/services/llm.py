from typing import Optional

from langchain_openai import ChatOpenAI

from backend.app.core.config import settings
from backend.app.core.errors import FeedbackGenerationError

def get_llm(model: Optional[str] = None, temperature: Optional[float] = None, max_tokens: int = 200):
    """
    Returns a configured LangChain ChatModel for the OpenAI-compatible endpoint.
    Without an API key there is no model and feedback falls back to fixed text.
    """
    if not settings.OPEN_ROUTER_API_KEY:
        raise FeedbackGenerationError("OPEN_ROUTER_API_KEY is not configured")

    return ChatOpenAI(
        base_url=settings.LLM_BASE_URL,
        api_key=settings.OPEN_ROUTER_API_KEY,
        model=model or settings.LLM_MODEL,
        temperature=settings.LLM_TEMPERATURE if temperature is None else temperature,
        max_tokens=max_tokens,
        max_retries=settings.LLM_MAX_RETRIES,
    )
