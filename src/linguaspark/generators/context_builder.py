"""Shared context builder.

Analyses the source text once per run: lesson title, key vocabulary, main
themes and a short summary. Each remote call has a heuristic fallback, so a
run only stops here when the source has too little usable text, or when the
analysis failed and the heuristic cannot find enough keywords either.
"""

import logging
import re
from collections import Counter
from typing import List, Optional, Tuple

from pydantic import BaseModel, Field

from linguaspark.models.lesson import CEFRLevel, LessonRequest, LessonType, SharedContext
from linguaspark.prompts.section_prompts import (
    ANALYSIS_MAX_TOKENS,
    SUMMARY_MAX_TOKENS,
    TITLE_MAX_TOKENS,
    build_analysis_prompt,
    build_summary_prompt,
    build_title_prompt,
)
from linguaspark.resilience.errors import ContextBuildFailure
from linguaspark.utils.llm_client import LLMClient
from linguaspark.utils.logging_config import generation_stage_logger

logger = logging.getLogger(__name__)

MIN_USABLE_WORDS = 10
SOURCE_TEXT_LIMIT = 2000
SUMMARY_LIMIT = 300
FALLBACK_SUMMARY_CHARS = 200

MIN_AI_VOCABULARY = 6
MAX_VOCABULARY = 12
MIN_HEURISTIC_VOCABULARY = 4
HEURISTIC_VOCABULARY = 8
MIN_AI_THEMES = 2
MAX_THEMES = 5

TITLE_MIN_LENGTH = 5
TITLE_MAX_LENGTH = 80
MAX_PROPER_NOUN_TOPIC = 20

_WORD_RE = re.compile(r"[^\W\d_]{2,}")
_KEYWORD_RE = re.compile(r"\b[a-z]{4,12}\b")
_PROPER_NOUN_RE = re.compile(r"\b[A-Z][a-z]+(?:\s+[A-Z][a-z]+)*\b")
_TITLE_PREFIX_RE = re.compile(r"^title:?\s*", re.IGNORECASE)

STOPWORDS = frozenset(
    """
    about above after again against also although among another because been before being below between
    both could does doing down during each either even every from further have having here hers herself
    himself however into itself just like many more most much must myself only other others ought ours
    ourselves over same should since some such than that their theirs them themselves then there these
    they this those through under until upon very were what when where which while whom whose will with
    within without would your yours yourself yourselves said says still well really make made back
    """.split()
)

# Substring -> title topic, checked in order
TITLE_TOPICS = (
    ("ryder cup", "Ryder Cup Golf"),
    ("golf", "Golf Competition"),
    ("competition", "Sports Competition"),
    ("travel", "Travel & Tourism"),
    ("business", "Business Communication"),
    ("technology", "Technology Today"),
    ("environment", "Environmental Issues"),
    ("health", "Health & Wellness"),
    ("education", "Education System"),
    ("culture", "Cultural Exchange"),
    ("food", "Food & Cuisine"),
    ("sports", "Sports & Recreation"),
    ("music", "Music & Arts"),
    ("history", "Historical Events"),
    ("science", "Science & Discovery"),
)

LESSON_TYPE_TITLES = {
    LessonType.DISCUSSION: "Discussion",
    LessonType.GRAMMAR: "Grammar Focus",
    LessonType.TRAVEL: "Travel & Tourism",
    LessonType.BUSINESS: "Business English",
    LessonType.PRONUNCIATION: "Pronunciation Practice",
    LessonType.GENERAL: "General English",
}

THEME_KEYWORDS = (
    ("sports", ("sport", "game", "team")),
    ("business", ("business", "company", "work")),
    ("travel", ("travel", "country", "culture")),
    ("technology", ("technology", "computer", "internet")),
    ("health", ("health", "medical", "doctor")),
)
DEFAULT_THEMES = ("general topic", "communication", "daily life")


class ContextAnalysis(BaseModel):
    """Structured analysis returned by the model."""

    key_vocabulary: List[str] = Field(default_factory=list, description="8-12 useful words from the text")
    main_themes: List[str] = Field(default_factory=list, description="3-5 short theme phrases")


# ============================================================================
# Heuristics
# ============================================================================


def usable_word_count(text: str) -> int:
    return len(_WORD_RE.findall(text or ""))


def heuristic_vocabulary(source_text: str, limit: int = HEURISTIC_VOCABULARY) -> List[str]:
    """Most frequent non-stopword keywords, ties broken by first appearance.

    May return fewer than ``limit`` words, or none for a source made of
    stopwords; the caller decides whether that is enough.
    """
    words = [w for w in _KEYWORD_RE.findall(source_text.lower()) if w not in STOPWORDS]
    counts = Counter(words)
    first_seen = {}
    for index, word in enumerate(words):
        first_seen.setdefault(word, index)
    return sorted(counts, key=lambda w: (-counts[w], first_seen[w]))[:limit]


def heuristic_themes(source_text: str) -> List[str]:
    text = source_text.lower()
    themes = [theme for theme, keywords in THEME_KEYWORDS if any(k in text for k in keywords)]
    if themes:
        return themes
    keywords = heuristic_vocabulary(source_text, limit=3)
    if keywords:
        return keywords
    return list(DEFAULT_THEMES)


def heuristic_summary(source_text: str) -> str:
    text = " ".join(source_text.split())
    if len(text) <= FALLBACK_SUMMARY_CHARS:
        return text
    return text[:FALLBACK_SUMMARY_CHARS] + "..."


def generic_title(lesson_type: LessonType, level: CEFRLevel) -> str:
    return f"{LESSON_TYPE_TITLES.get(lesson_type, 'English')} - {level.value} Level"


def contextual_title(source_text: str, lesson_type: LessonType, level: CEFRLevel) -> str:
    """Title from topic keywords or a leading proper noun, else the generic title."""
    text = source_text.lower()
    for keyword, topic in TITLE_TOPICS:
        if keyword in text:
            return f"{topic} Discussion"
    proper_nouns = _PROPER_NOUN_RE.findall(source_text)
    if proper_nouns and len(proper_nouns[0]) < MAX_PROPER_NOUN_TOPIC:
        return f"{proper_nouns[0]} Discussion"
    return generic_title(lesson_type, level)


def clean_title(raw: str) -> str:
    title = raw.strip().splitlines()[0] if raw.strip() else ""
    title = title.replace('"', "").replace("'", "").replace("*", "")
    return _TITLE_PREFIX_RE.sub("", title).strip()[:TITLE_MAX_LENGTH]


def is_valid_title(title: str) -> bool:
    return TITLE_MIN_LENGTH < len(title) < TITLE_MAX_LENGTH and "lesson" not in title.lower()


def _clean_terms(values: List[str], min_length: int, max_length: int, limit: int) -> List[str]:
    terms: List[str] = []
    for value in values:
        term = str(value).strip().strip(".,;:-*").lower()
        if min_length <= len(term) <= max_length and term not in terms:
            terms.append(term)
    return terms[:limit]


# ============================================================================
# Builder
# ============================================================================


class SharedContextBuilder:
    """Builds the read-only SharedContext for one generation run."""

    def __init__(self, llm_client: Optional[LLMClient], temperature: float = 0.3):
        self.llm_client = llm_client
        self.temperature = temperature

    def build(self, request: LessonRequest) -> SharedContext:
        """Analyse ``request.source_text``.

        Raises:
            ContextBuildFailure: If the source has too little usable text, or
                too few keywords once the model analysis has failed
        """
        source = (request.source_text or "").strip()
        word_count = usable_word_count(source)
        if word_count < MIN_USABLE_WORDS:
            raise ContextBuildFailure(
                f"Source text has {word_count} usable words, need at least {MIN_USABLE_WORDS}",
                word_count=word_count,
            )

        level = request.student_level
        with generation_stage_logger("context", level=level.value, lesson_type=request.lesson_type.value):
            if request.title and request.title.strip():
                title, title_fallback = request.title.strip(), False
            else:
                title, title_fallback = self.generate_title(source, request.lesson_type, level)
            vocabulary, themes, analysis_fallback = self.analyse(source, level)
            summary, summary_fallback = self.summarize(source, level)

        used_heuristics = title_fallback or analysis_fallback or summary_fallback
        if used_heuristics:
            logger.warning(
                "Shared context built with heuristic fallbacks",
                extra={
                    "title_fallback": title_fallback,
                    "analysis_fallback": analysis_fallback,
                    "summary_fallback": summary_fallback,
                },
            )

        return SharedContext(
            lesson_title=title,
            key_vocabulary=tuple(vocabulary),
            main_themes=tuple(themes),
            difficulty_level=level,
            source_summary=summary,
            source_text=source[:SOURCE_TEXT_LIMIT],
            lesson_type=request.lesson_type,
            target_language=request.target_language,
            used_heuristics=used_heuristics,
        )

    def generate_title(self, source: str, lesson_type: LessonType, level: CEFRLevel) -> Tuple[str, bool]:
        """Returns (title, used_fallback)."""
        try:
            response = self.llm_client.generate_text(
                build_title_prompt(source, lesson_type.value, level.value),
                max_tokens=TITLE_MAX_TOKENS,
                temperature=self.temperature,
            )
            title = clean_title(response.text)
            if is_valid_title(title):
                return title, False
            logger.info(f"Model title rejected: {title!r}")
        except Exception as e:
            logger.warning(f"Title generation failed: {str(e)[:200]}")
        return contextual_title(source, lesson_type, level), True

    def analyse(self, source: str, level: CEFRLevel) -> Tuple[List[str], List[str], bool]:
        """Returns (key vocabulary, main themes, used_fallback)."""
        vocabulary: List[str] = []
        themes: List[str] = []
        try:
            analysis = self.llm_client.generate(
                build_analysis_prompt(source, level.value),
                response_model=ContextAnalysis,
                temperature=self.temperature,
                max_tokens=ANALYSIS_MAX_TOKENS,
            )
            vocabulary = _clean_terms(analysis.key_vocabulary, 3, 19, MAX_VOCABULARY)
            themes = _clean_terms(analysis.main_themes, 4, 49, MAX_THEMES)
        except Exception as e:
            logger.warning(f"Context analysis failed: {str(e)[:200]}")

        used_fallback = False
        if len(vocabulary) < MIN_AI_VOCABULARY:
            vocabulary = heuristic_vocabulary(source)
            used_fallback = True
            if len(vocabulary) < MIN_HEURISTIC_VOCABULARY:
                raise ContextBuildFailure(
                    f"Source text yields {len(vocabulary)} keywords, need at least {MIN_HEURISTIC_VOCABULARY}",
                    word_count=usable_word_count(source),
                )
        if len(themes) < MIN_AI_THEMES:
            themes = heuristic_themes(source)
            used_fallback = True
        return vocabulary, themes, used_fallback

    def summarize(self, source: str, level: CEFRLevel) -> Tuple[str, bool]:
        """Returns (summary, used_fallback)."""
        try:
            response = self.llm_client.generate_text(
                build_summary_prompt(source, level.value),
                max_tokens=SUMMARY_MAX_TOKENS,
                temperature=self.temperature,
            )
            summary = " ".join(response.text.split())[:SUMMARY_LIMIT]
            if summary:
                return summary, False
        except Exception as e:
            logger.warning(f"Summary generation failed: {str(e)[:200]}")
        return heuristic_summary(source), True
