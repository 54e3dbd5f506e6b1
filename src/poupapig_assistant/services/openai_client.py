import logging

from openai import AsyncOpenAI

from poupapig_assistant.config import Settings
from poupapig_assistant.services.secret_manager import get_secret

logger = logging.getLogger(__name__)

_cached_api_key: str | None = None


def get_openai_api_key(settings: Settings) -> str | None:
    global _cached_api_key
    if _cached_api_key:
        return _cached_api_key
    if settings.openai_api_key:
        _cached_api_key = settings.openai_api_key
        return _cached_api_key

    if settings.openai_api_key_secret_name and settings.gcp_project_id:
        secret = get_secret(settings, settings.openai_api_key_secret_name)
        if secret:
            _cached_api_key = secret
            return _cached_api_key

    logger.warning("OpenAI API key not configured.")
    return None


def get_openai_client(settings: Settings) -> AsyncOpenAI | None:
    api_key = get_openai_api_key(settings)
    if not api_key:
        return None
    return AsyncOpenAI(api_key=api_key, timeout=settings.http_timeout_seconds)
