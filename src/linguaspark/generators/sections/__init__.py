"""Section generators, one per lesson section."""

from linguaspark.models.lesson import SectionName

from .base import BaseSectionGenerator, SectionOutcome
from .dialogue import DialogueGenerator
from .grammar import GrammarGenerator
from .pronunciation import PronunciationGenerator
from .questions import ComprehensionGenerator, DiscussionGenerator, WarmupGenerator, WrapupGenerator
from .reading import ReadingGenerator
from .vocabulary import VocabularyGenerator

SECTION_GENERATORS = {
    SectionName.WARMUP: WarmupGenerator,
    SectionName.VOCABULARY: VocabularyGenerator,
    SectionName.READING: ReadingGenerator,
    SectionName.COMPREHENSION: ComprehensionGenerator,
    SectionName.DISCUSSION: DiscussionGenerator,
    SectionName.DIALOGUE: DialogueGenerator,
    SectionName.GRAMMAR: GrammarGenerator,
    SectionName.PRONUNCIATION: PronunciationGenerator,
    SectionName.WRAPUP: WrapupGenerator,
}

__all__ = [
    "BaseSectionGenerator",
    "SectionOutcome",
    "SECTION_GENERATORS",
    "WarmupGenerator",
    "VocabularyGenerator",
    "ReadingGenerator",
    "ComprehensionGenerator",
    "DiscussionGenerator",
    "DialogueGenerator",
    "GrammarGenerator",
    "PronunciationGenerator",
    "WrapupGenerator",
]
