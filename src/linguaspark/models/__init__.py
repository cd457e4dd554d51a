"""Data models for lesson generation."""

from linguaspark.models.events import (
    CompleteEvent,
    ErrorEvent,
    LessonEvent,
    ProgressEvent,
    format_sse,
)
from linguaspark.models.lesson import (
    CEFRLevel,
    ComprehensionSection,
    ContentOrigin,
    DialogueLine,
    DialogueSection,
    DiscussionSection,
    ErrorKind,
    GeneratedLesson,
    GenerationState,
    GrammarExercise,
    GrammarExplanation,
    GrammarSection,
    LessonRequest,
    LessonType,
    MultiWordPronunciation,
    ProgressUpdate,
    PronunciationSection,
    PronunciationWord,
    QualityReport,
    ReadingSection,
    SectionDegraded,
    SectionName,
    SectionQuality,
    SectionResult,
    SharedContext,
    SingleWordPronunciation,
    TongueTwister,
    VocabularyItem,
    VocabularySection,
    WarmupSection,
    WrapupSection,
)

__all__ = [
    "CEFRLevel",
    "CompleteEvent",
    "ComprehensionSection",
    "ContentOrigin",
    "DialogueLine",
    "DialogueSection",
    "DiscussionSection",
    "ErrorEvent",
    "ErrorKind",
    "GeneratedLesson",
    "GenerationState",
    "GrammarExercise",
    "GrammarExplanation",
    "GrammarSection",
    "LessonEvent",
    "LessonRequest",
    "LessonType",
    "MultiWordPronunciation",
    "ProgressEvent",
    "ProgressUpdate",
    "PronunciationSection",
    "PronunciationWord",
    "QualityReport",
    "ReadingSection",
    "SectionDegraded",
    "SectionName",
    "SectionQuality",
    "SectionResult",
    "SharedContext",
    "SingleWordPronunciation",
    "TongueTwister",
    "VocabularyItem",
    "VocabularySection",
    "WarmupSection",
    "WrapupSection",
    "format_sse",
]
