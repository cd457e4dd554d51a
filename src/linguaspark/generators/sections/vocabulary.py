"""Vocabulary section generator."""

from typing import Any, List

from linguaspark.models.lesson import SectionName, SharedContext, VocabularyItem, VocabularySection
from linguaspark.prompts.section_prompts import EXAMPLE_COUNTS, build_vocabulary_prompt
from linguaspark.resilience.extraction import extract_vocabulary_items

from .base import BaseSectionGenerator, PriorSections, as_list, clean_line, first_text

MAX_VOCABULARY_ITEMS = 8
MAX_MEANING_LENGTH = 200


def capitalize_word(word: str) -> str:
    return word[:1].upper() + word[1:].lower()


class VocabularyGenerator(BaseSectionGenerator):
    name = SectionName.VOCABULARY
    temperature = 0.5

    def build_prompt(self, context: SharedContext, prior: PriorSections) -> str:
        return build_vocabulary_prompt(context, list(context.key_vocabulary[:MAX_VOCABULARY_ITEMS]))

    def from_data(self, data: Any, context: SharedContext) -> VocabularySection:
        items: List[VocabularyItem] = []
        for raw in as_list(data, "items", "vocabulary", "words"):
            if isinstance(raw, str):
                if raw.strip():
                    items.append(VocabularyItem(word=raw.strip()))
                continue
            if not isinstance(raw, dict):
                continue
            word = first_text(raw, "word", "term")
            if not word:
                continue
            examples = [clean_line(e) for e in as_list(raw.get("examples")) if clean_line(e)]
            items.append(
                VocabularyItem(
                    word=word,
                    meaning=first_text(raw, "meaning", "definition"),
                    examples=examples,
                )
            )
        return VocabularySection(items=items)

    def extract(self, text: str, context: SharedContext):
        items = extract_vocabulary_items(text)
        return VocabularySection(items=items) if items else None

    def post_process(self, payload: VocabularySection, context: SharedContext, prior: PriorSections):
        example_limit = EXAMPLE_COUNTS[context.difficulty_level]
        seen = set()
        items = []
        for item in payload.items:
            key = item.word.strip().lower()
            if not key or key in seen:
                continue
            seen.add(key)
            items.append(
                item.model_copy(
                    update={
                        "word": capitalize_word(item.word.strip()),
                        "meaning": item.meaning.strip()[:MAX_MEANING_LENGTH],
                        "examples": item.examples[:example_limit],
                    }
                )
            )
        return payload.model_copy(update={"items": items[:MAX_VOCABULARY_ITEMS]})
