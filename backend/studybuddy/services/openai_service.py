"""
StudyBuddy Backend — OpenAI Service Implementation
====================================================

What:  Concrete LLM service using OpenAI chat completions.
How:   Translates a ModelInvocation into a chat.completions request:
       the system prompt becomes the leading `system` message, composite
       user turns become `text` / `image_url` content parts.
Who:   Built once in the FastAPI lifespan; shared by all requests.

Connection pooling:
    AsyncOpenAI keeps one httpx connection pool for the process lifetime.
    Requests only issue calls on it; nothing is configured per request.
"""

import logging
from typing import Any, Dict, List, Optional

import openai
from openai import AsyncOpenAI

from studybuddy.config import Settings
from studybuddy.schemas.invocation import ChatMessage, ImagePart, ModelInvocation
from studybuddy.services.llm_base import LLMService

logger = logging.getLogger(__name__)


def _content_to_openai(message: ChatMessage) -> Any:
    if isinstance(message.content, str):
        return message.content
    parts: List[Dict[str, Any]] = []
    for part in message.content:
        if isinstance(part, ImagePart):
            parts.append(
                {
                    "type": "image_url",
                    "image_url": {"url": part.url, "detail": part.detail},
                }
            )
        else:
            parts.append({"type": "text", "text": part.text})
    return parts


def to_openai_messages(invocation: ModelInvocation) -> List[Dict[str, Any]]:
    """System prompt first, then the invocation's turns in order."""
    messages: List[Dict[str, Any]] = [
        {"role": "system", "content": invocation.system_prompt}
    ]
    for message in invocation.messages:
        messages.append({"role": message.role, "content": _content_to_openai(message)})
    return messages


class OpenAIService(LLMService):
    name = "openai"

    transient_errors = (
        openai.APIConnectionError,
        openai.APITimeoutError,
        openai.RateLimitError,
        openai.InternalServerError,
    )

    def __init__(self, settings: Settings, client: Optional[AsyncOpenAI] = None):
        super().__init__(
            settings,
            vision_model=settings.vision_model,
            text_model=settings.text_model,
        )
        if client is None:
            # max_retries=0: the attempt budget is owned by retry_max_attempts.
            # A missing key is reported at startup; calls then fail upstream with 401.
            kwargs: Dict[str, Any] = {
                "max_retries": 0,
                "api_key": settings.openai_api_key or "not-configured",
            }
            if settings.openai_base_url:
                kwargs["base_url"] = settings.openai_base_url
            client = AsyncOpenAI(**kwargs)
        self.client = client

        logger.info(
            "OpenAIService initialized with vision_model=%s, text_model=%s",
            self.vision_model,
            self.text_model,
        )

    async def _generate(self, invocation: ModelInvocation) -> Optional[str]:
        completion = await self.client.chat.completions.create(
            model=invocation.model,
            messages=to_openai_messages(invocation),
            max_tokens=invocation.max_tokens,
            temperature=invocation.temperature,
        )
        if not completion.choices:
            return None
        return completion.choices[0].message.content

    async def health_check(self) -> bool:
        try:
            await self.client.models.list()
            return True
        except Exception as e:
            logger.warning("OpenAI health check failed: %s", str(e))
            return False
