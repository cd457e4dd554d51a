"""Generator configuration.

All remote-model settings travel in an explicit GeneratorConfig passed to the
generator at construction. ``GeneratorConfig.from_env()`` builds one from
environment variables (populated from ``.env`` by the CLI via python-dotenv).
"""

import os
from typing import Dict, Literal, Optional

from pydantic import BaseModel, Field, field_validator

from linguaspark.models.lesson import SectionName

DEFAULT_MODEL = "gpt-4o-mini"


class ModelEndpoint(BaseModel):
    """Per-section override of the remote model endpoint."""

    model: Optional[str] = None
    base_url: Optional[str] = None
    api_key: Optional[str] = None


class GeneratorConfig(BaseModel):
    """Configuration for one LessonGenerator instance."""

    api_key: Optional[str] = Field(None, description="API key (falls back to OPENAI_API_KEY in the SDK)")
    base_url: Optional[str] = Field(None, description="OpenAI-compatible endpoint, e.g. OpenRouter")
    model: str = DEFAULT_MODEL
    temperature: float = Field(0.7, ge=0.0, le=2.0)
    request_timeout_seconds: float = Field(60.0, gt=0)
    max_retries: int = Field(1, ge=0, le=1, description="At most one bounded retry per remote call")
    retry_delay_seconds: float = Field(1.0, ge=0)

    scheduling: Literal["sequential", "parallel"] = "sequential"
    max_workers: int = Field(4, ge=1, le=16)
    section_timeout_seconds: float = Field(90.0, gt=0)
    section_timeouts: Dict[SectionName, float] = Field(default_factory=dict)
    section_endpoints: Dict[SectionName, ModelEndpoint] = Field(default_factory=dict)
    section_max_tokens: Dict[SectionName, int] = Field(default_factory=dict)

    degradation_policy: Literal["operators_only", "notify_user"] = "operators_only"
    enable_tracing: bool = False
    callback_flush_timeout_seconds: float = Field(5.0, ge=0)

    @field_validator("section_timeouts", "section_endpoints", "section_max_tokens", mode="before")
    @classmethod
    def normalize_section_keys(cls, v):
        if isinstance(v, dict):
            return {SectionName.normalize(k): val for k, val in v.items()}
        return v

    def timeout_for(self, section: SectionName) -> float:
        return self.section_timeouts.get(section, self.section_timeout_seconds)

    def endpoint_for(self, section: SectionName) -> Optional[ModelEndpoint]:
        return self.section_endpoints.get(section)

    @classmethod
    def from_env(cls, **overrides) -> "GeneratorConfig":
        """Build a config from environment variables.

        Recognised variables: LLM_API_KEY (or OPENAI_API_KEY), LLM_BASE_URL,
        LLM_MODEL, LLM_TIMEOUT_SECONDS, LESSON_SCHEDULING,
        LESSON_DEGRADATION_POLICY, LANGFUSE_ENABLED.
        """
        values = {
            "api_key": os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY"),
            "base_url": os.getenv("LLM_BASE_URL") or None,
            "model": os.getenv("LLM_MODEL", DEFAULT_MODEL),
            "request_timeout_seconds": float(os.getenv("LLM_TIMEOUT_SECONDS", "60")),
            "scheduling": os.getenv("LESSON_SCHEDULING", "sequential"),
            "degradation_policy": os.getenv("LESSON_DEGRADATION_POLICY", "operators_only"),
            "enable_tracing": os.getenv("LANGFUSE_ENABLED", "false").lower() in ("1", "true", "yes"),
        }
        values.update(overrides)
        return cls(**values)
