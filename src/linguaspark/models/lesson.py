"""Pydantic models for lesson generation.

This module defines the data models shared by every stage of the lesson
pipeline: the request, the read-only shared context, the per-section payloads
(a discriminated union keyed by ``kind``), the aggregate lesson and the
progress updates emitted while it is being built.
"""

import logging
from datetime import UTC, datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

logger = logging.getLogger(__name__)


# ============================================================================
# Enums
# ============================================================================


class LessonType(str, Enum):
    """Lesson type chosen by the tutor."""

    DISCUSSION = "discussion"
    GRAMMAR = "grammar"
    TRAVEL = "travel"
    BUSINESS = "business"
    PRONUNCIATION = "pronunciation"
    GENERAL = "general"  # any other type requested; base sections only


class CEFRLevel(str, Enum):
    """CEFR proficiency level of the student."""

    A1 = "A1"
    A2 = "A2"
    B1 = "B1"
    B2 = "B2"
    C1 = "C1"


class SectionName(str, Enum):
    """Lesson section identifiers."""

    WARMUP = "warmup"
    VOCABULARY = "vocabulary"
    READING = "reading"
    COMPREHENSION = "comprehension"
    DISCUSSION = "discussion"
    DIALOGUE = "dialogue"
    GRAMMAR = "grammar"
    PRONUNCIATION = "pronunciation"
    WRAPUP = "wrapup"

    @classmethod
    def normalize(cls, value: Union[str, "SectionName"]) -> "SectionName":
        """Resolve aliases such as ``wrap-up`` and ``wrap_up`` to a SectionName."""
        if isinstance(value, SectionName):
            return value
        key = str(value).strip().lower().replace("-", "").replace("_", "")
        return cls(key)


class ErrorKind(str, Enum):
    """Failure taxonomy for a single section attempt."""

    TRUNCATED_OUTPUT = "truncated_output"
    MALFORMED_OUTPUT = "malformed_output"
    EMPTY_OUTPUT = "empty_output"
    UPSTREAM_FAILURE = "upstream_failure"
    BELOW_MINIMUM = "below_minimum"


class ContentOrigin(str, Enum):
    """Where a section's accepted content came from."""

    AI = "ai"
    REPAIRED = "repaired"
    EXTRACTED = "extracted"
    TEMPLATE = "template"


class GenerationState(str, Enum):
    """Orchestrator lifecycle states."""

    IDLE = "idle"
    BUILDING_CONTEXT = "building_context"
    GENERATING_SECTION = "generating_section"
    ASSEMBLING = "assembling"
    DONE = "done"
    FAILED = "failed"


# ============================================================================
# Request and shared context
# ============================================================================


class LessonRequest(BaseModel):
    """Parameters for one lesson generation run."""

    source_text: str = Field(..., description="Raw source material extracted from a web page")
    lesson_type: LessonType
    student_level: CEFRLevel
    target_language: str = Field("english", min_length=2, max_length=40)
    source_url: Optional[str] = None
    title: Optional[str] = Field(None, description="Optional title override")

    @field_validator("lesson_type", mode="before")
    @classmethod
    def normalize_lesson_type(cls, v):
        """Unrecognised lesson types become ``general`` rather than failing the request."""
        if isinstance(v, LessonType) or not isinstance(v, str):
            return v
        value = v.strip().lower()
        if value in {t.value for t in LessonType}:
            return value
        logger.info(f"Unknown lesson type {v!r}, generating the base sections")
        return LessonType.GENERAL

    @field_validator("target_language")
    @classmethod
    def normalize_language(cls, v: str) -> str:
        return v.strip().lower()


class SharedContext(BaseModel):
    """Read-only analysis of the source material, built once per run.

    Sequences are stored as tuples and the model is frozen, so section
    generators can share one instance without copying.
    """

    model_config = ConfigDict(frozen=True)

    lesson_title: str
    key_vocabulary: Tuple[str, ...]
    main_themes: Tuple[str, ...]
    difficulty_level: CEFRLevel
    source_summary: str
    source_text: str
    lesson_type: LessonType
    target_language: str = "english"
    used_heuristics: bool = Field(
        False, description="True when any part of the context came from the heuristic extractor"
    )

    @property
    def main_theme(self) -> str:
        return self.main_themes[0] if self.main_themes else "this topic"


# ============================================================================
# Section payloads
# ============================================================================


class WarmupSection(BaseModel):
    kind: Literal["warmup"] = "warmup"
    instruction: str = "Have the following conversations or discussions with your tutor before reading the text:"
    questions: List[str] = Field(default_factory=list)


class VocabularyItem(BaseModel):
    word: str = Field(..., min_length=1)
    meaning: str = ""
    examples: List[str] = Field(default_factory=list)


class VocabularySection(BaseModel):
    kind: Literal["vocabulary"] = "vocabulary"
    instruction: str = "Study the following words with your tutor before reading the text:"
    items: List[VocabularyItem] = Field(default_factory=list)


class ReadingSection(BaseModel):
    kind: Literal["reading"] = "reading"
    instruction: str = "Read the following text carefully. Your tutor will help you with any difficult words or concepts:"
    passage: str = ""

    @property
    def word_count(self) -> int:
        return len(self.passage.split())


class ComprehensionSection(BaseModel):
    kind: Literal["comprehension"] = "comprehension"
    instruction: str = "After reading the text, answer these comprehension questions:"
    questions: List[str] = Field(default_factory=list)


class DiscussionSection(BaseModel):
    kind: Literal["discussion"] = "discussion"
    instruction: str = "Discuss these questions with your tutor to explore the topic in depth:"
    questions: List[str] = Field(default_factory=list)


class DialogueLine(BaseModel):
    character: str
    line: str


class DialogueSection(BaseModel):
    """Practice dialogue plus a derived fill-in-the-gap exercise.

    ``gapped_lines`` holds the dialogue with vocabulary blanked as ``_____``;
    ``answers`` is the answer bank for those blanks, shuffled so its order
    does not reveal which blank each answer belongs to.
    """

    kind: Literal["dialogue"] = "dialogue"
    instruction: str = "Practice this conversation with your tutor:"
    lines: List[DialogueLine] = Field(default_factory=list)
    gap_instruction: str = "Fill in the gaps in this conversation:"
    gapped_lines: List[DialogueLine] = Field(default_factory=list)
    answers: List[str] = Field(default_factory=list)
    follow_up_questions: List[str] = Field(default_factory=list)


class GrammarExplanation(BaseModel):
    form: str = ""
    usage: str = ""
    level_notes: str = ""


class GrammarExercise(BaseModel):
    prompt: str
    answer: str
    explanation: str = ""


class GrammarSection(BaseModel):
    kind: Literal["grammar"] = "grammar"
    instruction: str = "Study this grammar point with your tutor and complete the exercises:"
    focus: str = ""
    explanation: GrammarExplanation = Field(default_factory=GrammarExplanation)
    examples: List[str] = Field(default_factory=list)
    exercises: List[GrammarExercise] = Field(default_factory=list)


class PronunciationWord(BaseModel):
    word: str
    ipa: str = ""
    difficult_sounds: List[str] = Field(default_factory=list)
    tips: List[str] = Field(default_factory=list)
    practice_sentence: str = ""


class TongueTwister(BaseModel):
    text: str
    target_sounds: List[str] = Field(default_factory=list)
    difficulty: str = "moderate"


class MultiWordPronunciation(BaseModel):
    """Current payload shape: several target words plus optional tongue twisters."""

    format: Literal["multi_word"] = "multi_word"
    words: List[PronunciationWord] = Field(default_factory=list)
    tongue_twisters: List[TongueTwister] = Field(default_factory=list)


class SingleWordPronunciation(BaseModel):
    """Legacy payload shape: one word with its IPA and tips."""

    format: Literal["single_word"] = "single_word"
    word: str
    ipa: str = ""
    tips: List[str] = Field(default_factory=list)
    practice_sentence: str = ""


PronunciationPayload = Annotated[
    Union[MultiWordPronunciation, SingleWordPronunciation],
    Field(discriminator="format"),
]


class PronunciationSection(BaseModel):
    kind: Literal["pronunciation"] = "pronunciation"
    instruction: str = (
        "Practice pronunciation with your tutor. Focus on the difficult sounds and try the tongue twisters:"
    )
    payload: PronunciationPayload = Field(default_factory=MultiWordPronunciation)

    @model_validator(mode="before")
    @classmethod
    def tag_legacy_payload(cls, data):
        # Stored lessons predating the discriminator carry a bare payload dict
        if isinstance(data, dict):
            payload = data.get("payload")
            if isinstance(payload, dict) and "format" not in payload:
                fmt = "single_word" if "word" in payload and "words" not in payload else "multi_word"
                data = {**data, "payload": {**payload, "format": fmt}}
        return data

    def target_words(self) -> List[PronunciationWord]:
        """Return the practice words regardless of payload shape."""
        payload = self.payload
        if isinstance(payload, MultiWordPronunciation):
            return list(payload.words)
        if isinstance(payload, SingleWordPronunciation):
            return [
                PronunciationWord(
                    word=payload.word,
                    ipa=payload.ipa,
                    tips=payload.tips,
                    practice_sentence=payload.practice_sentence,
                )
            ]
        raise TypeError(f"Unhandled pronunciation payload: {type(payload).__name__}")

    def tongue_twisters(self) -> List[TongueTwister]:
        payload = self.payload
        if isinstance(payload, MultiWordPronunciation):
            return list(payload.tongue_twisters)
        if isinstance(payload, SingleWordPronunciation):
            return []
        raise TypeError(f"Unhandled pronunciation payload: {type(payload).__name__}")


class WrapupSection(BaseModel):
    kind: Literal["wrapup"] = "wrapup"
    instruction: str = "Reflect on your learning by discussing these wrap-up questions:"
    questions: List[str] = Field(default_factory=list)


SectionResult = Annotated[
    Union[
        WarmupSection,
        VocabularySection,
        ReadingSection,
        ComprehensionSection,
        DiscussionSection,
        DialogueSection,
        GrammarSection,
        PronunciationSection,
        WrapupSection,
    ],
    Field(discriminator="kind"),
]


# ============================================================================
# Run metadata and aggregate lesson
# ============================================================================


class SectionDegraded(BaseModel):
    """Record of a section that was accepted below target or replaced by its template."""

    section: SectionName
    error_kind: ErrorKind
    origin: ContentOrigin
    detail: str = ""


class SectionQuality(BaseModel):
    section: SectionName
    score: int = Field(..., ge=0, le=100)
    attempts: int = Field(1, ge=0)
    generation_time_ms: float = 0.0
    issue_count: int = 0
    warning_count: int = 0
    origin: ContentOrigin = ContentOrigin.AI
    degraded: bool = False


class QualityReport(BaseModel):
    sections: List[SectionQuality] = Field(default_factory=list)
    overall_score: int = Field(0, ge=0, le=100)
    degraded_count: int = 0
    total_generation_time_ms: float = 0.0


class GeneratedLesson(BaseModel):
    """Final lesson: every active section in order plus run metadata."""

    lesson_title: str
    lesson_type: LessonType
    student_level: CEFRLevel
    target_language: str
    sections: List[SectionResult] = Field(default_factory=list)
    degraded_sections: List[SectionDegraded] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    quality: Optional[QualityReport] = None
    notice: Optional[str] = Field(
        None, description="User-facing note, set only when the degradation policy exposes it"
    )
    source_url: Optional[str] = None
    generated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def section_names(self) -> List[SectionName]:
        return [SectionName(section.kind) for section in self.sections]

    def get_section(self, name: Union[str, SectionName]):
        key = SectionName.normalize(name).value
        for section in self.sections:
            if section.kind == key:
                return section
        return None

    def is_degraded(self, name: Union[str, SectionName]) -> bool:
        key = SectionName.normalize(name)
        return any(d.section == key for d in self.degraded_sections)


class ProgressUpdate(BaseModel):
    """Progress notification emitted at section start and completion boundaries."""

    step: str
    phase: str
    section: Optional[SectionName] = None
    progress: int = Field(..., ge=0, le=100)
