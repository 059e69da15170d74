"""
StudyBuddy Backend — Abstract LLM Service Interface
=====================================================

What:  Abstract base class for the model providers (OpenAI, Gemini).
Why:   Mode handlers build a provider-neutral ModelInvocation; the provider
       only translates it to its SDK and back. Swapping providers is a
       configuration change, and tests substitute a fake.
How:   Concrete providers implement `_generate()` (one raw SDK call) and
       `health_check()`. `complete()` wraps `_generate()` with the circuit
       breaker, the tenacity attempt loop and error translation.

Error contract:
    Whatever goes wrong inside `_generate()` reaches the caller as
    UpstreamInvocationError (or CircuitBreakerOpenError), with the provider's
    own message kept in `upstream_message`. Nothing is swallowed and no
    fallback text is ever returned.
"""

import logging
import time
import uuid
from abc import ABC, abstractmethod
from typing import Optional, Tuple, Type

from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
    wait_random,
)

from studybuddy.config import Settings
from studybuddy.exceptions import CircuitBreakerOpenError, RequestError, UpstreamInvocationError
from studybuddy.schemas.invocation import ModelInvocation
from studybuddy.services.circuit_breaker import CircuitBreaker

logger = logging.getLogger(__name__)


class LLMService(ABC):
    """
    Contract:
        - complete() accepts a ModelInvocation and returns the model's text verbatim
        - vision_model / text_model name the two variants the handlers choose from
        - All provider-specific errors surface as UpstreamInvocationError

    Implementations:
        - OpenAIService: OpenAI chat completions (default)
        - GeminiService: Google Gemini
    """

    # Provider name reported by /health and in logs
    name: str = "llm"

    # Exception types worth another attempt when retry_max_attempts > 1
    transient_errors: Tuple[Type[BaseException], ...] = (ConnectionError, TimeoutError)

    def __init__(self, settings: Settings, vision_model: str, text_model: str):
        self.settings = settings
        self.vision_model = vision_model
        self.text_model = text_model
        self.circuit_breaker = CircuitBreaker(
            failure_threshold=settings.cb_failure_threshold,
            recovery_timeout=settings.cb_recovery_timeout,
            enabled=settings.cb_enabled,
        )

    async def complete(self, invocation: ModelInvocation) -> str:
        """
        Run one model call and return its text.

        Flow:
            1. Check circuit breaker → may raise CircuitBreakerOpenError
            2. Call `_generate()` inside the tenacity attempt loop
            3. Record success/failure in circuit breaker
            4. Return the text untouched

        Raises:
            CircuitBreakerOpenError: Circuit is open
            UpstreamInvocationError: The provider call failed or returned no text
        """
        call_id = str(uuid.uuid4())[:8]
        self.circuit_breaker.can_execute()

        logger.info(
            "[%s] %s call: model=%s image=%s max_tokens=%d temperature=%.2f",
            call_id,
            self.name,
            invocation.model,
            invocation.has_image,
            invocation.max_tokens,
            invocation.temperature,
        )

        start_time = time.time()
        try:
            text = await self._generate_with_retry(invocation)
        except (CircuitBreakerOpenError, RequestError):
            # caller errors leave the breaker untouched
            raise
        except UpstreamInvocationError as e:
            self.circuit_breaker.record_failure()
            logger.error("[%s] %s call failed: %s", call_id, self.name, e.message)
            raise
        except Exception as e:
            self.circuit_breaker.record_failure()
            logger.error(
                "[%s] %s call failed after %.0fms: %s",
                call_id,
                self.name,
                (time.time() - start_time) * 1000,
                str(e),
            )
            raise UpstreamInvocationError(
                message=f"{self.name} request failed",
                upstream_message=str(e) or type(e).__name__,
                context={"call_id": call_id, "error_type": type(e).__name__},
            ) from e

        if not text:
            self.circuit_breaker.record_failure()
            raise UpstreamInvocationError(
                message=f"{self.name} returned an empty response",
                upstream_message="Malformed response: no text content",
                context={"call_id": call_id, "model": invocation.model},
            )

        self.circuit_breaker.record_success()
        logger.info(
            "[%s] %s call completed in %.0fms, %d chars",
            call_id,
            self.name,
            (time.time() - start_time) * 1000,
            len(text),
        )
        return text

    async def _generate_with_retry(self, invocation: ModelInvocation) -> Optional[str]:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(self.transient_errors),
            stop=stop_after_attempt(self.settings.retry_max_attempts),
            # exponential backoff from retry_min_wait, capped, plus up to 1s jitter
            wait=wait_exponential(
                multiplier=self.settings.retry_min_wait,
                max=self.settings.retry_max_wait,
            )
            + wait_random(0, 1),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await self._generate(invocation)
        return None

    @abstractmethod
    async def _generate(self, invocation: ModelInvocation) -> Optional[str]:
        """
        Make the raw SDK call.

        Returns the text content of the first candidate, or None/"" when the
        provider returned nothing usable. Raises whatever the SDK raises.
        """
        ...

    @abstractmethod
    async def health_check(self) -> bool:
        """
        Check if the provider is reachable and the key is accepted.

        Lightweight (model listing); never consumes generation quota.
        """
        ...
