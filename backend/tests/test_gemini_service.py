"""
StudyBuddy Backend — Gemini Service Unit Tests (Mocked)
=========================================================

What:  Tests for GeminiService with the SDK patched out and slide image
       hosts served by httpx.MockTransport.
Why:   Tests should not make real API calls (costs money, requires network).

What we test:
    ✅ ModelInvocation → Gemini contents / system_instruction / generation_config
    ✅ data: URL images strictly decoded to inline blobs
    ✅ http(s) images: content type, size ceiling, non-public hosts, redirects
    ✅ Bad image references are caller errors, never sent to the model
    ✅ SDK failures surface as UpstreamInvocationError
    ❌ Real API calls (use integration tests for that)
"""

import base64
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from studybuddy.exceptions import (
    CircuitBreakerOpenError,
    InvalidImageReferenceError,
    UpstreamInvocationError,
)
from studybuddy.schemas.invocation import ChatMessage, ImagePart, ModelInvocation, TextPart
from studybuddy.services.gemini_service import GeminiService, decode_data_url

PUBLIC_IMAGE_URL = "http://93.184.216.34/slides/3.png"


def _invocation(content) -> ModelInvocation:
    return ModelInvocation(
        system_prompt="SYSTEM",
        messages=(ChatMessage(role="user", content=content),),
        model="gemini-1.5-pro",
        max_tokens=1500,
        temperature=0.7,
    )


def _image_invocation(url: str) -> ModelInvocation:
    return _invocation((TextPart(text="Explain"), ImagePart(url=url)))


def _mock_host(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def mock_genai():
    with patch("studybuddy.services.gemini_service.genai") as genai:
        model = MagicMock()
        model.generate_content_async = AsyncMock(return_value=MagicMock(text="ok"))
        genai.GenerativeModel.return_value = model
        yield genai


def _sent_contents(mock_genai):
    model = mock_genai.GenerativeModel.return_value
    return model.generate_content_async.await_args.args[0]


class TestDecodeDataUrl:
    def test_png_data_url(self):
        payload = base64.b64encode(b"\x89PNG fake").decode()
        blob = decode_data_url(f"data:image/png;base64,{payload}")
        assert blob == {"mime_type": "image/png", "data": b"\x89PNG fake"}

    def test_rejects_non_base64_header(self):
        with pytest.raises(InvalidImageReferenceError):
            decode_data_url("data:image/png,rawbytes")

    @pytest.mark.parametrize("payload", ["@@@", "abc", "aGVsbG8=!!"])
    def test_rejects_garbage_payload(self, payload):
        with pytest.raises(InvalidImageReferenceError, match="base64"):
            decode_data_url(f"data:image/png;base64,{payload}")

    def test_rejects_non_image_mime(self):
        payload = base64.b64encode(b"<html></html>").decode()
        with pytest.raises(InvalidImageReferenceError, match="not an image"):
            decode_data_url(f"data:text/html;base64,{payload}")

    def test_rejects_oversized_payload(self):
        payload = base64.b64encode(b"x" * 4096).decode()
        with pytest.raises(InvalidImageReferenceError, match="exceeds"):
            decode_data_url(f"data:image/png;base64,{payload}", max_bytes=1024)

    def test_error_points_at_image_field(self):
        with pytest.raises(InvalidImageReferenceError) as exc_info:
            decode_data_url("data:image/png;base64,@@@")
        assert exc_info.value.field == "imageUrl"
        assert exc_info.value.context["field"] == "imageUrl"


class TestGeminiGeneration:
    @pytest.mark.asyncio
    async def test_text_invocation(self, test_settings, mock_genai):
        mock_genai.GenerativeModel.return_value.generate_content_async.return_value = (
            MagicMock(text="Gemini answer")
        )
        service = GeminiService(test_settings)

        result = await service.complete(_invocation("What is a heap?"))

        assert result == "Gemini answer"
        mock_genai.GenerativeModel.assert_called_once_with(
            "gemini-1.5-pro", system_instruction="SYSTEM"
        )
        assert _sent_contents(mock_genai) == [{"role": "user", "parts": ["What is a heap?"]}]
        config = mock_genai.GenerativeModel.return_value.generate_content_async.await_args.kwargs[
            "generation_config"
        ]
        assert config == {"max_output_tokens": 1500, "temperature": 0.7}

    @pytest.mark.asyncio
    async def test_data_url_image_sent_inline(self, test_settings, mock_genai):
        payload = base64.b64encode(b"slide-bytes").decode()
        service = GeminiService(test_settings)

        await service.complete(_image_invocation(f"data:image/jpeg;base64,{payload}"))

        assert _sent_contents(mock_genai)[0]["parts"] == [
            "Explain",
            {"mime_type": "image/jpeg", "data": b"slide-bytes"},
        ]

    @pytest.mark.asyncio
    async def test_garbage_data_url_never_reaches_model(self, test_settings, mock_genai):
        service = GeminiService(test_settings)

        with pytest.raises(InvalidImageReferenceError):
            await service.complete(_image_invocation("data:image/png;base64,@@@"))

        mock_genai.GenerativeModel.return_value.generate_content_async.assert_not_awaited()
        assert service.circuit_breaker.failure_count == 0

    @pytest.mark.asyncio
    async def test_unsupported_scheme_is_caller_error(self, test_settings, mock_genai):
        service = GeminiService(test_settings)
        with pytest.raises(InvalidImageReferenceError, match="scheme"):
            await service.complete(_image_invocation("ftp://host/slide.png"))

    @pytest.mark.asyncio
    async def test_sdk_error_becomes_upstream_error(self, test_settings, mock_genai):
        mock_genai.GenerativeModel.return_value.generate_content_async.side_effect = (
            RuntimeError("API key not valid")
        )
        service = GeminiService(test_settings)

        with pytest.raises(UpstreamInvocationError) as exc_info:
            await service.complete(_invocation("q"))

        assert exc_info.value.upstream_message == "API key not valid"
        assert service.circuit_breaker.failure_count == 1

    @pytest.mark.asyncio
    async def test_circuit_breaker_open(self, test_settings, mock_genai):
        settings = test_settings.model_copy(update={"cb_enabled": True})
        service = GeminiService(settings)
        for _ in range(service.circuit_breaker.failure_threshold):
            service.circuit_breaker.record_failure()

        with pytest.raises(CircuitBreakerOpenError):
            await service.complete(_invocation("q"))

    @pytest.mark.asyncio
    async def test_health_check_returns_bool(self, test_settings, mock_genai):
        mock_genai.list_models.return_value = [MagicMock()]
        service = GeminiService(test_settings)
        assert await service.health_check() is True

        mock_genai.list_models.side_effect = RuntimeError("offline")
        assert await service.health_check() is False


class TestHttpImageFetch:
    @pytest.mark.asyncio
    async def test_image_fetched_and_sent_inline(self, test_settings, mock_genai):
        fetched = []

        def handler(request):
            fetched.append(str(request.url))
            return httpx.Response(
                200, headers={"content-type": "image/png"}, content=b"png-bytes"
            )

        service = GeminiService(test_settings, http_client=_mock_host(handler))
        await service.complete(_image_invocation(PUBLIC_IMAGE_URL))

        assert fetched == [PUBLIC_IMAGE_URL]
        assert _sent_contents(mock_genai)[0]["parts"][1] == {
            "mime_type": "image/png",
            "data": b"png-bytes",
        }

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "url",
        [
            "http://169.254.169.254/latest/meta-data",
            "http://127.0.0.1:8080/slide.png",
            "http://10.0.0.5/slide.png",
            "http://[::1]/slide.png",
        ],
    )
    async def test_non_public_hosts_refused(self, test_settings, mock_genai, url):
        fetched = []

        def handler(request):
            fetched.append(str(request.url))
            return httpx.Response(200, headers={"content-type": "image/png"}, content=b"x")

        service = GeminiService(test_settings, http_client=_mock_host(handler))
        with pytest.raises(InvalidImageReferenceError, match="non-public"):
            await service.complete(_image_invocation(url))

        assert fetched == []
        mock_genai.GenerativeModel.return_value.generate_content_async.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_private_hosts_allowed_when_configured(self, test_settings, mock_genai):
        settings = test_settings.model_copy(update={"image_fetch_allow_private": True})

        def handler(request):
            return httpx.Response(200, headers={"content-type": "image/jpeg"}, content=b"jpg")

        service = GeminiService(settings, http_client=_mock_host(handler))
        await service.complete(_image_invocation("http://127.0.0.1:8080/slide.jpg"))

        assert _sent_contents(mock_genai)[0]["parts"][1]["mime_type"] == "image/jpeg"

    @pytest.mark.asyncio
    async def test_non_image_content_type_rejected(self, test_settings, mock_genai):
        def handler(request):
            return httpx.Response(
                200, headers={"content-type": "text/html; charset=utf-8"}, content=b"<html>"
            )

        service = GeminiService(test_settings, http_client=_mock_host(handler))
        with pytest.raises(InvalidImageReferenceError, match="did not return an image"):
            await service.complete(_image_invocation(PUBLIC_IMAGE_URL))
        mock_genai.GenerativeModel.return_value.generate_content_async.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_streamed_body_over_ceiling_rejected(self, test_settings, mock_genai):
        settings = test_settings.model_copy(update={"image_max_bytes": 1024})

        async def body():
            for _ in range(64):
                yield b"x" * 512

        def handler(request):
            # no content-length: the ceiling must be enforced while streaming
            return httpx.Response(200, headers={"content-type": "image/png"}, content=body())

        service = GeminiService(settings, http_client=_mock_host(handler))
        with pytest.raises(InvalidImageReferenceError, match="exceeds 1024 bytes"):
            await service.complete(_image_invocation(PUBLIC_IMAGE_URL))

    @pytest.mark.asyncio
    async def test_declared_length_over_ceiling_rejected(self, test_settings, mock_genai):
        settings = test_settings.model_copy(update={"image_max_bytes": 1024})

        def handler(request):
            return httpx.Response(
                200, headers={"content-type": "image/png"}, content=b"x" * 4096
            )

        service = GeminiService(settings, http_client=_mock_host(handler))
        with pytest.raises(InvalidImageReferenceError, match="exceeds"):
            await service.complete(_image_invocation(PUBLIC_IMAGE_URL))

    @pytest.mark.asyncio
    async def test_error_status_rejected(self, test_settings, mock_genai):
        service = GeminiService(
            test_settings, http_client=_mock_host(lambda request: httpx.Response(404))
        )
        with pytest.raises(InvalidImageReferenceError, match="HTTP 404"):
            await service.complete(_image_invocation(PUBLIC_IMAGE_URL))

    @pytest.mark.asyncio
    async def test_redirect_to_private_host_refused(self, test_settings, mock_genai):
        fetched = []

        def handler(request):
            fetched.append(str(request.url))
            return httpx.Response(
                302, headers={"location": "http://169.254.169.254/latest/meta-data"}
            )

        service = GeminiService(test_settings, http_client=_mock_host(handler))
        with pytest.raises(InvalidImageReferenceError, match="non-public"):
            await service.complete(_image_invocation(PUBLIC_IMAGE_URL))
        assert fetched == [PUBLIC_IMAGE_URL]

    @pytest.mark.asyncio
    async def test_redirect_between_public_hosts_followed(self, test_settings, mock_genai):
        def handler(request):
            if request.url.path == "/slides/3.png":
                return httpx.Response(302, headers={"location": "/cdn/3.png"})
            return httpx.Response(200, headers={"content-type": "image/png"}, content=b"cdn")

        service = GeminiService(test_settings, http_client=_mock_host(handler))
        await service.complete(_image_invocation(PUBLIC_IMAGE_URL))

        assert _sent_contents(mock_genai)[0]["parts"][1]["data"] == b"cdn"

    @pytest.mark.asyncio
    async def test_redirect_loop_stops(self, test_settings, mock_genai):
        def handler(request):
            return httpx.Response(302, headers={"location": PUBLIC_IMAGE_URL})

        service = GeminiService(test_settings, http_client=_mock_host(handler))
        with pytest.raises(InvalidImageReferenceError, match="redirected"):
            await service.complete(_image_invocation(PUBLIC_IMAGE_URL))
