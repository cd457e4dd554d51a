"""Section validators.

Each validator checks one section payload against its minimum shape and
returns a ValidationResult. A result can be valid, below minimum but
non-empty (accepted with a warning by the caller), or empty (replaced by the
section template).
"""

import logging
from typing import Callable, Dict, List, Optional

from pydantic import BaseModel, Field

from linguaspark.models.lesson import (
    ComprehensionSection,
    DialogueSection,
    DiscussionSection,
    GrammarSection,
    PronunciationSection,
    ReadingSection,
    SectionName,
    SharedContext,
    VocabularySection,
    WarmupSection,
    WrapupSection,
)

logger = logging.getLogger(__name__)

# Minimum item counts per section
SECTION_MINIMUMS: Dict[SectionName, int] = {
    SectionName.WARMUP: 3,
    SectionName.VOCABULARY: 5,
    SectionName.READING: 50,  # words
    SectionName.COMPREHENSION: 5,
    SectionName.DISCUSSION: 5,
    SectionName.DIALOGUE: 10,  # lines
    SectionName.GRAMMAR: 3,  # examples and exercises, each
    SectionName.PRONUNCIATION: 5,  # target words
    SectionName.WRAPUP: 3,
}

DIALOGUE_TARGET_RANGE = (12, 16)
TONGUE_TWISTER_TARGET = 2
READING_TARGET_RANGE = (200, 400)
MIN_QUESTION_LENGTH = 10


class ValidationResult(BaseModel):
    """Outcome of validating one section."""

    section: SectionName
    count: int = Field(0, description="Number of usable items found")
    minimum: int = 0
    issues: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return self.count == 0

    @property
    def below_minimum(self) -> bool:
        return 0 < self.count < self.minimum

    @property
    def is_valid(self) -> bool:
        return self.count >= self.minimum and not self.issues

    @property
    def score(self) -> int:
        score = 100 - 20 * len(self.issues) - 5 * len(self.warnings)
        return max(0, min(100, score))


def _check_minimum(result: ValidationResult, noun: str) -> ValidationResult:
    if result.below_minimum:
        result.issues.append(
            f"Insufficient {noun}: expected at least {result.minimum}, got {result.count}"
        )
    return result


def _validate_questions(section: SectionName, questions: List[str]) -> ValidationResult:
    usable = [q for q in questions if len(q.strip()) >= MIN_QUESTION_LENGTH]
    result = ValidationResult(section=section, count=len(usable), minimum=SECTION_MINIMUMS[section])
    not_questions = [q for q in usable if not q.rstrip().endswith("?")]
    if not_questions:
        result.warnings.append(f"{len(not_questions)} item(s) do not end with a question mark")
    if len({q.strip().lower() for q in usable}) < len(usable):
        result.warnings.append("Duplicate questions found")
    return _check_minimum(result, "questions")


def validate_warmup(section: WarmupSection, context: Optional[SharedContext] = None) -> ValidationResult:
    return _validate_questions(SectionName.WARMUP, section.questions)


def validate_comprehension(
    section: ComprehensionSection, context: Optional[SharedContext] = None
) -> ValidationResult:
    return _validate_questions(SectionName.COMPREHENSION, section.questions)


def validate_discussion(section: DiscussionSection, context: Optional[SharedContext] = None) -> ValidationResult:
    return _validate_questions(SectionName.DISCUSSION, section.questions)


def validate_wrapup(section: WrapupSection, context: Optional[SharedContext] = None) -> ValidationResult:
    return _validate_questions(SectionName.WRAPUP, section.questions)


def validate_vocabulary(section: VocabularySection, context: Optional[SharedContext] = None) -> ValidationResult:
    items = [item for item in section.items if item.word.strip()]
    result = ValidationResult(
        section=SectionName.VOCABULARY,
        count=len(items),
        minimum=SECTION_MINIMUMS[SectionName.VOCABULARY],
    )
    missing_meaning = [item.word for item in items if not item.meaning.strip()]
    if missing_meaning:
        result.warnings.append(f"Missing meaning for: {', '.join(missing_meaning)}")
    missing_examples = [item.word for item in items if not item.examples]
    if missing_examples:
        result.warnings.append(f"No examples for: {', '.join(missing_examples)}")
    for item in items:
        unused = [ex for ex in item.examples if item.word.lower() not in ex.lower()]
        if unused:
            result.warnings.append(f"{len(unused)} example(s) for '{item.word}' do not use the word")
    return _check_minimum(result, "vocabulary items")


def validate_reading(section: ReadingSection, context: Optional[SharedContext] = None) -> ValidationResult:
    words = section.word_count
    result = ValidationResult(
        section=SectionName.READING,
        count=words,
        minimum=SECTION_MINIMUMS[SectionName.READING],
    )
    low, high = READING_TARGET_RANGE
    if words and not (low <= words <= high):
        result.warnings.append(f"Passage is {words} words (target {low}-{high})")
    return _check_minimum(result, "passage words")


def validate_dialogue(section: DialogueSection, context: Optional[SharedContext] = None) -> ValidationResult:
    lines = [line for line in section.lines if line.line.strip()]
    result = ValidationResult(
        section=SectionName.DIALOGUE,
        count=len(lines),
        minimum=SECTION_MINIMUMS[SectionName.DIALOGUE],
    )
    low, high = DIALOGUE_TARGET_RANGE
    if lines and len(lines) >= result.minimum and not (low <= len(lines) <= high):
        result.warnings.append(f"Dialogue has {len(lines)} lines (target {low}-{high})")
    speakers = {line.character for line in lines}
    if lines and len(speakers) < 2:
        result.issues.append("Dialogue needs at least two speakers")
    if section.gapped_lines and len(section.answers) != sum(
        line.line.count("_____") for line in section.gapped_lines
    ):
        result.issues.append("Answer bank does not match the number of gaps")
    return _check_minimum(result, "dialogue lines")


def validate_grammar(section: GrammarSection, context: Optional[SharedContext] = None) -> ValidationResult:
    examples = [ex for ex in section.examples if ex.strip()]
    exercises = [ex for ex in section.exercises if ex.prompt.strip() and ex.answer.strip()]
    minimum = SECTION_MINIMUMS[SectionName.GRAMMAR]
    # The shorter list decides the count; a lone list is still partial content
    if examples and exercises:
        count = min(len(examples), len(exercises))
    else:
        count = len(examples) + len(exercises)
    result = ValidationResult(section=SectionName.GRAMMAR, count=count, minimum=minimum)
    if not section.focus.strip():
        result.issues.append("Missing grammar focus")
    if len(examples) < minimum:
        result.issues.append(f"Insufficient examples: expected at least {minimum}, got {len(examples)}")
    if len(exercises) < minimum:
        result.issues.append(f"Insufficient exercises: expected at least {minimum}, got {len(exercises)}")
    if not section.explanation.form.strip() or not section.explanation.usage.strip():
        result.warnings.append("Explanation is missing form or usage")
    return result


def validate_pronunciation(
    section: PronunciationSection, context: Optional[SharedContext] = None
) -> ValidationResult:
    words = [w for w in section.target_words() if w.word.strip()]
    result = ValidationResult(
        section=SectionName.PRONUNCIATION,
        count=len(words),
        minimum=SECTION_MINIMUMS[SectionName.PRONUNCIATION],
    )
    missing_ipa = [w.word for w in words if not w.ipa.strip()]
    if missing_ipa:
        result.warnings.append(f"Missing IPA for: {', '.join(missing_ipa)}")
    twisters = section.tongue_twisters()
    if not twisters:
        result.warnings.append("No tongue twisters")
    elif len(twisters) < TONGUE_TWISTER_TARGET:
        result.warnings.append(f"Only {len(twisters)} tongue twister(s) (target {TONGUE_TWISTER_TARGET})")
    return _check_minimum(result, "pronunciation words")


VALIDATORS: Dict[SectionName, Callable[..., ValidationResult]] = {
    SectionName.WARMUP: validate_warmup,
    SectionName.VOCABULARY: validate_vocabulary,
    SectionName.READING: validate_reading,
    SectionName.COMPREHENSION: validate_comprehension,
    SectionName.DISCUSSION: validate_discussion,
    SectionName.DIALOGUE: validate_dialogue,
    SectionName.GRAMMAR: validate_grammar,
    SectionName.PRONUNCIATION: validate_pronunciation,
    SectionName.WRAPUP: validate_wrapup,
}


def validate_section(section, context: Optional[SharedContext] = None) -> ValidationResult:
    """Validate any section payload by dispatching on its ``kind``."""
    name = SectionName(section.kind)
    result = VALIDATORS[name](section, context)
    logger.debug(
        f"Validated {name.value}: count={result.count}/{result.minimum}, "
        f"issues={len(result.issues)}, warnings={len(result.warnings)}"
    )
    return result
