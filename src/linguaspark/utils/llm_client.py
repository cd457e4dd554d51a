"""LLM client with Instructor integration for structured and plain-text responses.

This module wraps the OpenAI SDK (any OpenAI-compatible endpoint via
``base_url``). It provides Instructor-validated structured output for the
context analysis and raw text completions, which report ``finish_reason`` so
truncated output can be detected, for the section generators. Every call
carries a per-call timeout and is retried at most once.
"""

import hashlib
import logging
import os
import threading
import time
from typing import Callable, Optional, Type, TypeVar

import instructor
from langfuse import observe
from openai import (
    APIConnectionError,
    APITimeoutError,
    InternalServerError,
    OpenAI,
    RateLimitError,
)
from pydantic import BaseModel, Field

from linguaspark.config import GeneratorConfig, ModelEndpoint
from linguaspark.models.lesson import ErrorKind
from linguaspark.resilience.classifier import TRUNCATION_FINISH_REASONS
from linguaspark.resilience.errors import LLMCallError, UpstreamTimeout

T = TypeVar("T", bound=BaseModel)

logger = logging.getLogger(__name__)

# Failures worth one more attempt; anything else (bad request, auth) is final
RETRYABLE_ERRORS = (APIConnectionError, RateLimitError, InternalServerError)

# USD per 1M tokens: (input, cached input, output)
MODEL_PRICES = {
    "gpt-4o-mini": (0.15, 0.075, 0.6),
    "gpt-4.1-nano": (0.1, 0.025, 0.4),
    "gpt-4.1-mini": (0.4, 0.1, 1.6),
    "gpt-4.1": (2.0, 0.5, 8.0),
    "gpt-5-mini": (0.25, 0.025, 2.0),
}


class TokenUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0
    cached_tokens: int = 0  # subset of prompt_tokens

    @classmethod
    def from_completion(cls, completion) -> "TokenUsage":
        """Read usage off a chat completion; missing fields count as zero."""
        raw = getattr(completion, "usage", None)
        if raw is None:
            return cls()
        details = getattr(raw, "prompt_tokens_details", None)
        return cls(
            prompt_tokens=getattr(raw, "prompt_tokens", 0) or 0,
            completion_tokens=getattr(raw, "completion_tokens", 0) or 0,
            total_tokens=getattr(raw, "total_tokens", 0) or 0,
            cached_tokens=(getattr(details, "cached_tokens", 0) or 0) if details is not None else 0,
        )

    def add(self, other: "TokenUsage") -> None:
        for name in type(self).model_fields:
            setattr(self, name, getattr(self, name) + getattr(other, name))

    def estimated_cost(self, model: str) -> float:
        """USD estimate; unknown models are priced as gpt-4o-mini."""
        input_price, cached_price, output_price = MODEL_PRICES.get(model, MODEL_PRICES["gpt-4o-mini"])
        uncached = max(self.prompt_tokens - self.cached_tokens, 0)
        return (
            uncached * input_price + self.cached_tokens * cached_price + self.completion_tokens * output_price
        ) / 1_000_000


class LLMTextResponse(BaseModel):
    """Plain-text completion with the metadata needed to classify it."""

    text: str = ""
    finish_reason: Optional[str] = None
    usage: TokenUsage = Field(default_factory=TokenUsage)

    @property
    def truncated(self) -> bool:
        """True when the model stopped at its token ceiling, under any provider's finish reason."""
        return self.finish_reason in TRUNCATION_FINISH_REASONS


class LLMClient:
    """LLM client with Instructor-wrapped OpenAI for structured and text responses.

    Features:
    - Structured response generation with Pydantic model validation
    - Plain-text completions reporting finish reason (truncation detection)
    - Per-call timeout and at most one bounded retry
    - Token usage tracking and cost estimation
    - Request/response logging (prompt hash, tokens, latency)
    - Optional Langfuse tracing
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: float = 60.0,
        max_retries: int = 1,
        retry_delay: float = 1.0,
        enable_langfuse: bool = False,
    ):
        """Initialize LLM client with Instructor.

        Args:
            api_key: API key (if None, the SDK reads OPENAI_API_KEY)
            model: Model to use (if None, uses LLM_MODEL env var or defaults to gpt-4o-mini)
            base_url: Optional OpenAI-compatible endpoint
            timeout: Per-call timeout in seconds (default: 60)
            max_retries: Retries after the first attempt, 0 or 1 (default: 1)
            retry_delay: Delay before the retry in seconds (default: 1.0)
            enable_langfuse: Use the Langfuse-wrapped OpenAI client (default: False)
        """
        if max_retries not in (0, 1):
            raise ValueError(f"max_retries must be 0 or 1, got {max_retries}")

        self.model = model or os.getenv("LLM_MODEL", "gpt-4o-mini")
        self.base_url = base_url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.enable_langfuse = enable_langfuse

        # Shared by parallel section workers
        self.total_usage = TokenUsage()
        self.call_count = 0
        self.failed_calls = 0
        self._usage_lock = threading.Lock()

        # SDK-level retries are disabled; this client owns the retry budget
        client_kwargs = {"api_key": api_key, "base_url": base_url, "timeout": timeout, "max_retries": 0}
        if enable_langfuse:
            from langfuse.openai import OpenAI as TracedOpenAI

            self.raw_client = TracedOpenAI(**client_kwargs)
            logger.info("Langfuse tracing enabled for OpenAI")
        else:
            self.raw_client = OpenAI(**client_kwargs)

        # Wrap with Instructor for structured outputs
        self.client = instructor.from_openai(self.raw_client)

        logger.info(f"LLMClient initialized with model={self.model}, max_retries={max_retries}")

    @classmethod
    def from_config(cls, config: GeneratorConfig, endpoint: Optional[ModelEndpoint] = None) -> "LLMClient":
        """Build a client from a GeneratorConfig, applying an optional endpoint override."""
        endpoint = endpoint or ModelEndpoint()
        return cls(
            api_key=endpoint.api_key or config.api_key,
            model=endpoint.model or config.model,
            base_url=endpoint.base_url or config.base_url,
            timeout=config.request_timeout_seconds,
            max_retries=config.max_retries,
            retry_delay=config.retry_delay_seconds,
            enable_langfuse=config.enable_tracing,
        )

    def _build_messages(self, prompt: str, system_prompt: Optional[str]) -> list:
        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": prompt})
        return messages

    def _token_params(self, max_tokens: int, temperature: float) -> dict:
        # GPT-5 and o* models use max_completion_tokens and only the default temperature
        if self.model.startswith(("gpt-5", "o1", "o3", "o4")):
            return {"max_completion_tokens": max_tokens, "temperature": 1.0}
        return {"max_tokens": max_tokens, "temperature": temperature}

    @observe(as_type="generation")
    def generate(
        self,
        prompt: str,
        response_model: Type[T],
        temperature: float = 0.3,
        max_tokens: int = 1024,
        system_prompt: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> T:
        """Generate structured response using Pydantic model validation.

        Args:
            prompt: User prompt/instruction
            response_model: Pydantic model class for structured output
            temperature: Sampling temperature (default: 0.3)
            max_tokens: Maximum tokens to generate (default: 1024)
            system_prompt: Optional system prompt
            timeout: Per-call timeout override in seconds

        Returns:
            Validated Pydantic model instance

        Raises:
            UpstreamTimeout: If the final attempt timed out
            LLMCallError: If the final attempt failed for any other reason
        """
        prompt_hash = self._hash_prompt(prompt)
        logger.info(
            f"Generating structured response: model={self.model}, "
            f"response_model={response_model.__name__}, prompt_hash={prompt_hash}"
        )
        api_params = {
            "model": self.model,
            "messages": self._build_messages(prompt, system_prompt),
            "response_model": response_model,
            "timeout": timeout or self.timeout,
            **self._token_params(max_tokens, temperature),
        }

        def call():
            response = self.client.chat.completions.create(**api_params)
            return response, TokenUsage.from_completion(getattr(response, "_raw_response", None)), None

        return self._call_with_retry(call, prompt_hash, response_model.__name__)

    @observe(as_type="generation")
    def generate_text(
        self,
        prompt: str,
        max_tokens: int = 1024,
        temperature: float = 0.7,
        system_prompt: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> LLMTextResponse:
        """Generate a plain-text completion.

        Args:
            prompt: User prompt/instruction
            max_tokens: Output token ceiling for this call
            temperature: Sampling temperature (default: 0.7)
            system_prompt: Optional system prompt
            timeout: Per-call timeout override in seconds

        Returns:
            LLMTextResponse with text and finish reason. Empty or truncated
            text is returned as-is for the caller to classify.

        Raises:
            UpstreamTimeout: If the final attempt timed out
            LLMCallError: If the final attempt failed for any other reason
        """
        prompt_hash = self._hash_prompt(prompt)
        logger.info(f"Generating text: model={self.model}, prompt_hash={prompt_hash}, max_tokens={max_tokens}")
        api_params = {
            "model": self.model,
            "messages": self._build_messages(prompt, system_prompt),
            "timeout": timeout or self.timeout,
            **self._token_params(max_tokens, temperature),
        }

        def call():
            completion = self.raw_client.chat.completions.create(**api_params)
            usage = TokenUsage.from_completion(completion)
            choice = completion.choices[0] if completion.choices else None
            text = (choice.message.content or "") if choice is not None else ""
            finish_reason = choice.finish_reason if choice is not None else None
            return LLMTextResponse(text=text, finish_reason=finish_reason, usage=usage), usage, finish_reason

        return self._call_with_retry(call, prompt_hash, "text")

    def _call_with_retry(self, call: Callable[[], tuple], prompt_hash: str, label: str):
        attempts = self.max_retries + 1
        for attempt in range(1, attempts + 1):
            started = time.time()
            try:
                result, usage, finish_reason = call()
            except Exception as e:
                self._record_call(None, success=False)
                self._log_call(prompt_hash, label, started, attempt, error=str(e)[:200])
                if isinstance(e, RETRYABLE_ERRORS) and attempt < attempts:
                    logger.info(f"Retrying in {self.retry_delay:.2f} seconds...")
                    time.sleep(self.retry_delay)
                    continue
                logger.error(f"LLM call failed after {attempt} attempt(s) for prompt_hash={prompt_hash}")
                if isinstance(e, APITimeoutError):
                    raise UpstreamTimeout(f"LLM call timed out after {attempt} attempt(s)") from e
                raise LLMCallError(
                    f"LLM call failed after {attempt} attempt(s). Last error: {e}",
                    kind=ErrorKind.UPSTREAM_FAILURE,
                ) from e

            self._record_call(usage, success=True)
            self._log_call(prompt_hash, label, started, attempt, usage=usage, finish_reason=finish_reason)
            return result

        raise LLMCallError(f"LLM call produced no result for prompt_hash={prompt_hash}")

    def _record_call(self, usage: Optional[TokenUsage], success: bool) -> None:
        with self._usage_lock:
            if success:
                self.call_count += 1
                self.total_usage.add(usage or TokenUsage())
            else:
                self.failed_calls += 1

    def get_usage_summary(self) -> dict:
        """Totals for this client since construction or the last ``reset_usage``."""
        with self._usage_lock:
            usage = self.total_usage.model_copy()
            calls, failed = self.call_count, self.failed_calls
        return {
            "model": self.model,
            "calls": calls,
            "failed_calls": failed,
            **usage.model_dump(),
            "estimated_cost_usd": round(usage.estimated_cost(self.model), 4),
        }

    def reset_usage(self) -> None:
        with self._usage_lock:
            self.total_usage = TokenUsage()
            self.call_count = 0
            self.failed_calls = 0

    def _hash_prompt(self, prompt: str) -> str:
        """Short prompt fingerprint so log lines can be correlated without the prompt text."""
        return hashlib.sha256(prompt.encode()).hexdigest()[:16]

    def _log_call(
        self,
        prompt_hash: str,
        label: str,
        started: float,
        attempt: int,
        usage: Optional[TokenUsage] = None,
        finish_reason: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        fields = {
            "prompt_hash": prompt_hash,
            "call": label,
            "model": self.model,
            "latency_ms": round((time.time() - started) * 1000, 2),
            "attempt": attempt,
        }
        if error is not None:
            logger.warning(f"LLM {label} call failed on attempt {attempt}: {error}", extra=fields)
            return
        if usage is not None:
            fields["tokens"] = usage.model_dump()
        if finish_reason:
            fields["finish_reason"] = finish_reason
        logger.info(f"LLM {label} call completed", extra=fields)
