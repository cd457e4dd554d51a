"""Base section generator and the per-section state machine.

Every section runs the same cascade::

    Attempt -> Parse (strict, then repair) -> Extract (patterns)
            -> Validate -> Accept | Accept-degraded | TemplateFallback

Subclasses supply the prompt, the mapping from parsed JSON to the section
payload, an optional pattern extractor and optional post-processing.
``generate`` never raises for a model failure: the worst case is the
section's deterministic template, recorded as degraded.
"""

import logging
import re
import time
from abc import ABC, abstractmethod
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Tuple

from pydantic import BaseModel, ValidationError

from linguaspark.config import GeneratorConfig
from linguaspark.models.lesson import (
    ContentOrigin,
    ErrorKind,
    SectionDegraded,
    SectionName,
    SectionResult,
    SharedContext,
)
from linguaspark.prompts.section_prompts import MAX_OUTPUT_TOKENS, SYSTEM_PROMPT
from linguaspark.resilience.classifier import classify_exception, classify_response
from linguaspark.resilience.json_repair import STRUCTURAL_REPAIRS, parse_json_lenient
from linguaspark.resilience.templates import build_template
from linguaspark.utils.llm_client import LLMClient, LLMTextResponse
from linguaspark.utils.logging_config import generation_stage_logger
from linguaspark.validators.section_validators import ValidationResult, validate_section

logger = logging.getLogger(__name__)

PriorSections = Mapping[SectionName, Any]

_NUMBERING_RE = re.compile(r"^\s*(?:[-*•]+|\(?\d+[.):])\s*")


class SectionOutcome(BaseModel):
    """Result of running one section through the state machine."""

    name: SectionName
    payload: SectionResult
    origin: ContentOrigin
    attempts: int = 0
    generation_time_ms: float = 0.0
    validation: ValidationResult
    degraded: Optional[SectionDegraded] = None


# ============================================================================
# Tolerant accessors for model JSON
# ============================================================================


def as_list(data: Any, *keys: str) -> List[Any]:
    """Return ``data`` if it is a list, else the first list found under ``keys``."""
    if isinstance(data, list):
        return data
    if isinstance(data, dict):
        for key in keys:
            value = data.get(key)
            if isinstance(value, list):
                return value
    return []


def as_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, (list, tuple)):
        return " ".join(as_text(v) for v in value)
    return str(value).strip()


def first_text(data: Mapping[str, Any], *keys: str) -> str:
    for key in keys:
        if key in data and as_text(data[key]):
            return as_text(data[key])
    return ""


def clean_line(value: Any) -> str:
    return _NUMBERING_RE.sub("", as_text(value)).strip().strip('"').strip()


def prior_vocabulary(context: SharedContext, prior: PriorSections, limit: int = 5) -> List[str]:
    """Words from an earlier vocabulary section, else the context's key vocabulary."""
    section = prior.get(SectionName.VOCABULARY)
    words = [item.word for item in getattr(section, "items", [])] if section is not None else []
    return (words or list(context.key_vocabulary))[:limit]


# ============================================================================
# Base generator
# ============================================================================


class BaseSectionGenerator(ABC):
    """Abstract base class for section generators.

    Subclasses must implement:
    - build_prompt(): scoped prompt for this section
    - from_data(): parsed JSON -> section payload

    Subclasses may override:
    - extract(): pattern extraction from non-JSON text
    - post_process(): section-specific cleanup (also applied to templates)
    - parse_response(): for sections whose output is plain text
    """

    name: ClassVar[SectionName]
    temperature: ClassVar[Optional[float]] = None

    def __init__(self, llm_client: Optional[LLMClient], config: Optional[GeneratorConfig] = None):
        self.llm_client = llm_client
        self.config = config or GeneratorConfig()
        self.max_tokens = self.config.section_max_tokens.get(self.name, MAX_OUTPUT_TOKENS[self.name])

    @abstractmethod
    def build_prompt(self, context: SharedContext, prior: PriorSections) -> str:
        """Build the prompt from the relevant slice of the shared context."""

    @abstractmethod
    def from_data(self, data: Any, context: SharedContext):
        """Map parsed JSON onto this section's payload model."""

    def extract(self, text: str, context: SharedContext):
        """Recover a payload from non-JSON text. None when nothing matches."""
        return None

    def post_process(self, payload, context: SharedContext, prior: PriorSections):
        return payload

    def template(self, context: SharedContext):
        return build_template(self.name, context)

    def parse_response(
        self, response: LLMTextResponse, context: SharedContext
    ) -> Tuple[Optional[Any], ContentOrigin, Optional[ErrorKind]]:
        """Parse a response expected to hold JSON.

        Returns:
            Tuple of (payload or None, content origin, failure kind or None)
        """
        text = response.text
        truncated = response.truncated
        try:
            data, applied = parse_json_lenient(text)
            payload = self.from_data(data, context)
            repaired = truncated or bool(STRUCTURAL_REPAIRS.intersection(applied))
            if applied:
                logger.info(f"{self.name.value}: JSON repaired ({', '.join(applied)})")
            kind = ErrorKind.TRUNCATED_OUTPUT if truncated else None
            return payload, ContentOrigin.REPAIRED if repaired else ContentOrigin.AI, kind
        except (ValueError, ValidationError, TypeError, AttributeError) as e:
            logger.info(f"{self.name.value}: JSON parse failed ({str(e)[:120]}), trying pattern extraction")

        payload = self.extract(text, context)
        if payload is None:
            return None, ContentOrigin.TEMPLATE, ErrorKind.MALFORMED_OUTPUT
        return payload, ContentOrigin.EXTRACTED, ErrorKind.MALFORMED_OUTPUT

    def generate(self, context: SharedContext, prior_sections: Optional[PriorSections] = None) -> SectionOutcome:
        """Run the section state machine. Never raises for model failures."""
        prior = prior_sections or {}
        start_time = time.time()
        attempts = 0

        with generation_stage_logger(f"section.{self.name.value}", level=context.difficulty_level.value):
            try:
                prompt = self.build_prompt(context, prior)
                attempts = 1
                response = self.llm_client.generate_text(
                    prompt,
                    max_tokens=self.max_tokens,
                    temperature=self.temperature if self.temperature is not None else self.config.temperature,
                    system_prompt=SYSTEM_PROMPT,
                )
            except Exception as e:
                kind = classify_exception(e)
                logger.warning(
                    f"{self.name.value}: remote call failed ({kind.value}): {str(e)[:200]}",
                    extra={"section": self.name.value, "error_kind": kind.value},
                )
                return self._fallback(context, prior, kind, str(e)[:200], attempts, start_time)

            response_kind = classify_response(response.text, response.finish_reason)
            if response_kind == ErrorKind.EMPTY_OUTPUT:
                return self._fallback(context, prior, response_kind, "Empty response", attempts, start_time)

            payload, origin, kind = self.parse_response(response, context)
            if payload is None:
                return self._fallback(
                    context, prior, kind or ErrorKind.MALFORMED_OUTPUT, "No usable content", attempts, start_time
                )

            payload = self.post_process(payload, context, prior)
            validation = validate_section(payload, context)

            if validation.is_empty:
                return self._fallback(
                    context, prior, kind or ErrorKind.EMPTY_OUTPUT, "Parsed content was empty", attempts, start_time
                )

            degraded = None
            if not validation.is_valid:
                degraded = SectionDegraded(
                    section=self.name,
                    error_kind=ErrorKind.BELOW_MINIMUM,
                    origin=origin,
                    detail="; ".join(validation.issues)[:300],
                )
                logger.warning(
                    f"{self.name.value}: accepted below target ({validation.count}/{validation.minimum})",
                    extra={"section": self.name.value, "error_kind": ErrorKind.BELOW_MINIMUM.value},
                )

            return SectionOutcome(
                name=self.name,
                payload=payload,
                origin=origin,
                attempts=attempts,
                generation_time_ms=(time.time() - start_time) * 1000,
                validation=validation,
                degraded=degraded,
            )

    def fallback_outcome(
        self,
        context: SharedContext,
        prior: Optional[PriorSections],
        kind: ErrorKind,
        detail: str,
        attempts: int = 0,
    ) -> SectionOutcome:
        """Template outcome for failures decided outside ``generate`` (e.g. a section timeout)."""
        return self._fallback(context, prior or {}, kind, detail, attempts, time.time())

    def _fallback(
        self,
        context: SharedContext,
        prior: PriorSections,
        kind: ErrorKind,
        detail: str,
        attempts: int,
        start_time: float,
    ) -> SectionOutcome:
        logger.warning(
            f"{self.name.value}: using template fallback ({kind.value})",
            extra={"section": self.name.value, "error_kind": kind.value},
        )
        payload = self.post_process(self.template(context), context, prior)
        return SectionOutcome(
            name=self.name,
            payload=payload,
            origin=ContentOrigin.TEMPLATE,
            attempts=attempts,
            generation_time_ms=(time.time() - start_time) * 1000,
            validation=validate_section(payload, context),
            degraded=SectionDegraded(
                section=self.name,
                error_kind=kind,
                origin=ContentOrigin.TEMPLATE,
                detail=detail,
            ),
        )
