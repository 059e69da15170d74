"""
StudyBuddy Backend — Google Gemini Service Implementation
==========================================================

What:  Concrete LLM service using the Google Gemini API.
Why:   Alternate provider (LLM_PROVIDER=gemini) with free-tier access and
       native multimodal models.
How:   Translates a ModelInvocation into a `generate_content_async` call:
       the system prompt becomes the model's `system_instruction`, user turns
       become `contents`, and image parts are resolved to inline bytes.
Who:   Built once in the FastAPI lifespan when the provider is gemini.

Image references:
    Gemini needs image data, not a URL. The frontend sends either a data: URL
    (uploaded slide) or an http(s) URL (hosted slide):
    - data:<mime>;base64,<payload>  → strictly base64-decoded locally
    - http(s)://...                 → streamed with httpx

    Both paths enforce:
    - content type image/*
    - size <= settings.image_max_bytes
    http(s) additionally requires every address the host resolves to be
    public (no loopback, link-local, private ranges), re-checked on each
    redirect hop, unless settings.image_fetch_allow_private is set.

    Violations raise InvalidImageReferenceError (HTTP 400) before any model
    call is made.
"""

import asyncio
import base64
import binascii
import ipaddress
import logging
import socket
from contextlib import nullcontext
from typing import Any, Dict, List, Optional

import google.generativeai as genai
import httpx
from google.api_core import exceptions as google_exceptions

from studybuddy.config import Settings
from studybuddy.exceptions import InvalidImageReferenceError
from studybuddy.schemas.invocation import ChatMessage, ImagePart, ModelInvocation
from studybuddy.services.llm_base import LLMService

logger = logging.getLogger(__name__)

MAX_REDIRECTS = 3


def _image_mime(raw: Optional[str]) -> str:
    return (raw or "").split(";", 1)[0].strip().lower()


def decode_data_url(url: str, max_bytes: Optional[int] = None) -> Dict[str, Any]:
    """
    Split a base64 data: URL into Gemini's inline blob dict.

    Raises:
        InvalidImageReferenceError: not a base64 data URL, invalid base64,
            non-image mime type, or larger than max_bytes
    """
    header, _, payload = url.partition(",")
    if not header.startswith("data:") or ";base64" not in header or not payload:
        raise InvalidImageReferenceError(
            "Unsupported data URL: expected data:<mime>;base64,<payload>"
        )

    mime_type = _image_mime(header[len("data:"):]) or "image/png"
    if not mime_type.startswith("image/"):
        raise InvalidImageReferenceError(
            f"Data URL is not an image: {mime_type}", context={"mime_type": mime_type}
        )
    if max_bytes is not None and len(payload) * 3 // 4 > max_bytes:
        raise InvalidImageReferenceError(
            f"Slide image exceeds {max_bytes} bytes", context={"max_bytes": max_bytes}
        )

    try:
        data = base64.b64decode(payload, validate=True)
    except binascii.Error as e:
        raise InvalidImageReferenceError(f"Data URL payload is not valid base64: {e}") from None
    if not data:
        raise InvalidImageReferenceError("Data URL payload is empty")

    return {"mime_type": mime_type, "data": data}


class GeminiService(LLMService):
    name = "gemini"

    transient_errors = (
        google_exceptions.ServiceUnavailable,
        google_exceptions.DeadlineExceeded,
        google_exceptions.ResourceExhausted,
        google_exceptions.InternalServerError,
        httpx.TransportError,
    )

    def __init__(self, settings: Settings, http_client: Optional[httpx.AsyncClient] = None):
        """
        Args:
            settings: Application settings
            http_client: Client for fetching http(s) slide images. Must not
                follow redirects itself. When None, one is opened per fetch.
        """
        super().__init__(
            settings,
            vision_model=settings.gemini_vision_model,
            text_model=settings.gemini_text_model,
        )
        self.http_client = http_client
        # The SDK keeps auth in module-level state
        if settings.gemini_api_key and settings.gemini_api_key != "your_gemini_api_key_here":
            genai.configure(api_key=settings.gemini_api_key)

        logger.info(
            "GeminiService initialized with vision_model=%s, text_model=%s",
            self.vision_model,
            self.text_model,
        )

    # ── Image loading ─────────────────────────────────────────────────────

    async def _ensure_public_host(self, url: httpx.URL) -> None:
        if self.settings.image_fetch_allow_private:
            return
        host = url.host
        if not host:
            raise InvalidImageReferenceError("Slide image URL has no host")

        try:
            addresses = [ipaddress.ip_address(host)]
        except ValueError:
            try:
                infos = await asyncio.get_running_loop().getaddrinfo(
                    host, url.port or 443, type=socket.SOCK_STREAM
                )
            except OSError:
                raise InvalidImageReferenceError(
                    f"Cannot resolve slide image host: {host}"
                ) from None
            addresses = [ipaddress.ip_address(info[4][0].split("%", 1)[0]) for info in infos]

        for address in addresses:
            if not address.is_global:
                logger.warning("Refusing slide image fetch from %s (%s)", host, address)
                raise InvalidImageReferenceError(
                    "Slide image host resolves to a non-public address",
                    context={"host": host},
                )

    async def _read_image(self, response: httpx.Response) -> Dict[str, Any]:
        limit = self.settings.image_max_bytes

        if not response.is_success:
            raise InvalidImageReferenceError(
                f"Slide image fetch returned HTTP {response.status_code}",
                context={"status": response.status_code},
            )

        mime_type = _image_mime(response.headers.get("content-type"))
        if not mime_type.startswith("image/"):
            raise InvalidImageReferenceError(
                f"Slide image URL did not return an image: {mime_type or 'no content type'}",
                context={"mime_type": mime_type},
            )

        declared = response.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > limit:
            raise InvalidImageReferenceError(
                f"Slide image exceeds {limit} bytes", context={"max_bytes": limit}
            )

        data = bytearray()
        async for chunk in response.aiter_bytes():
            data.extend(chunk)
            if len(data) > limit:
                raise InvalidImageReferenceError(
                    f"Slide image exceeds {limit} bytes", context={"max_bytes": limit}
                )
        return {"mime_type": mime_type, "data": bytes(data)}

    async def _fetch_image(self, url: str) -> Dict[str, Any]:
        target = httpx.URL(url)
        client_cm = (
            nullcontext(self.http_client)
            if self.http_client is not None
            else httpx.AsyncClient(timeout=self.settings.image_fetch_timeout)
        )
        async with client_cm as client:
            for _ in range(MAX_REDIRECTS + 1):
                await self._ensure_public_host(target)
                async with client.stream("GET", target) as response:
                    if response.is_redirect:
                        target = target.join(response.headers["location"])
                        continue
                    return await self._read_image(response)

        raise InvalidImageReferenceError(
            f"Slide image URL redirected more than {MAX_REDIRECTS} times"
        )

    async def _load_image(self, part: ImagePart) -> Dict[str, Any]:
        if part.url.startswith("data:"):
            return decode_data_url(part.url, max_bytes=self.settings.image_max_bytes)
        if part.url.startswith(("http://", "https://")):
            return await self._fetch_image(part.url)
        raise InvalidImageReferenceError(
            f"Unsupported image reference scheme: {part.url[:16]!r}"
        )

    # ── Generation ────────────────────────────────────────────────────────

    async def _to_gemini_content(self, message: ChatMessage) -> Dict[str, Any]:
        parts: List[Any] = []
        if isinstance(message.content, str):
            parts.append(message.content)
        else:
            for part in message.content:
                if isinstance(part, ImagePart):
                    parts.append(await self._load_image(part))
                else:
                    parts.append(part.text)
        return {"role": message.role, "parts": parts}

    async def _generate(self, invocation: ModelInvocation) -> Optional[str]:
        # Resolve images first so a bad reference fails before the model is touched
        contents = [await self._to_gemini_content(m) for m in invocation.messages]
        model = genai.GenerativeModel(
            invocation.model,
            system_instruction=invocation.system_prompt,
        )
        response = await model.generate_content_async(
            contents,
            generation_config={
                "max_output_tokens": invocation.max_tokens,
                "temperature": invocation.temperature,
            },
        )
        # .text raises ValueError when the candidate was blocked or empty
        return response.text

    async def health_check(self) -> bool:
        """
        How:  Lists models (no token cost) and checks the configured one exists.
        """
        try:
            model_names = [m.name for m in genai.list_models()]
            target = f"models/{self.vision_model}"
            if target not in model_names:
                logger.warning("Configured model %s not found in available models", target)
            return True
        except Exception as e:
            logger.warning("Gemini health check failed: %s", str(e))
            return False
