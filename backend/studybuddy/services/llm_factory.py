"""
StudyBuddy Backend — LLM Provider Selection
=============================================

What:  Builds the configured LLMService.
When:  Once, in the FastAPI lifespan. The instance is then injected into
       AssistantService; nothing below the HTTP layer looks it up globally.
"""

import logging

from studybuddy.config import Settings
from studybuddy.services.llm_base import LLMService

logger = logging.getLogger(__name__)


def build_llm_service(settings: Settings) -> LLMService:
    logger.info("Selecting LLM provider: %s", settings.llm_provider)

    # SDK imports stay local so only the selected provider's SDK is loaded
    if settings.llm_provider == "gemini":
        from studybuddy.services.gemini_service import GeminiService

        return GeminiService(settings)

    from studybuddy.services.openai_service import OpenAIService

    return OpenAIService(settings)
