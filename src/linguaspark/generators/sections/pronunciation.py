"""Pronunciation section generator.

Target words are chosen locally by a sound-difficulty score before the model
is asked for IPA, tips and practice sentences. Older single-word responses
are still accepted and mapped to the legacy payload shape.
"""

from typing import Any, List

from linguaspark.models.lesson import (
    MultiWordPronunciation,
    PronunciationSection,
    PronunciationWord,
    SectionName,
    SharedContext,
    SingleWordPronunciation,
    TongueTwister,
)
from linguaspark.prompts.section_prompts import build_pronunciation_prompt
from linguaspark.resilience.extraction import extract_pronunciation_words, extract_tongue_twisters
from linguaspark.utils.word_difficulty import select_challenging_words
from linguaspark.validators.section_validators import SECTION_MINIMUMS, TONGUE_TWISTER_TARGET

from .base import BaseSectionGenerator, PriorSections, as_list, clean_line, first_text, prior_vocabulary


def _sounds(value: Any) -> List[str]:
    if isinstance(value, str):
        return [s.strip() for s in value.split(",") if s.strip()]
    return [clean_line(s) for s in as_list(value) if clean_line(s)]


class PronunciationGenerator(BaseSectionGenerator):
    name = SectionName.PRONUNCIATION
    temperature = 0.5

    def target_words(self, context: SharedContext, prior: PriorSections) -> List[str]:
        vocabulary = prior_vocabulary(context, prior, limit=10)
        count = SECTION_MINIMUMS[SectionName.PRONUNCIATION]
        return [d.word for d in select_challenging_words(vocabulary, count)]

    def build_prompt(self, context: SharedContext, prior: PriorSections) -> str:
        return build_pronunciation_prompt(context, self.target_words(context, prior), TONGUE_TWISTER_TARGET)

    def from_data(self, data: Any, context: SharedContext) -> PronunciationSection:
        if not isinstance(data, dict):
            raise TypeError("pronunciation response must be a JSON object")

        if "word" in data and "words" not in data:
            return PronunciationSection(
                payload=SingleWordPronunciation(
                    word=first_text(data, "word"),
                    ipa=first_text(data, "ipa"),
                    tips=[clean_line(t) for t in as_list(data, "tips") if clean_line(t)],
                    practice_sentence=first_text(data, "practice_sentence", "practiceSentence"),
                )
            )

        words = []
        for raw in as_list(data, "words"):
            if not isinstance(raw, dict) or not first_text(raw, "word"):
                continue
            words.append(
                PronunciationWord(
                    word=first_text(raw, "word"),
                    ipa=first_text(raw, "ipa"),
                    difficult_sounds=_sounds(raw.get("difficult_sounds") or raw.get("difficultSounds")),
                    tips=[clean_line(t) for t in as_list(raw, "tips") if clean_line(t)],
                    practice_sentence=first_text(raw, "practice_sentence", "practiceSentence"),
                )
            )

        twisters = []
        for raw in as_list(data, "tongue_twisters", "tongueTwisters"):
            if isinstance(raw, str) and raw.strip():
                twisters.append(TongueTwister(text=raw.strip()))
            elif isinstance(raw, dict) and first_text(raw, "text"):
                twisters.append(
                    TongueTwister(
                        text=first_text(raw, "text"),
                        target_sounds=_sounds(raw.get("target_sounds") or raw.get("targetSounds")),
                        difficulty=first_text(raw, "difficulty") or "moderate",
                    )
                )
        return PronunciationSection(payload=MultiWordPronunciation(words=words, tongue_twisters=twisters))

    def extract(self, text: str, context: SharedContext):
        words = extract_pronunciation_words(text)
        if not words:
            return None
        return PronunciationSection(
            payload=MultiWordPronunciation(words=words, tongue_twisters=extract_tongue_twisters(text))
        )

    def post_process(self, payload: PronunciationSection, context: SharedContext, prior: PriorSections):
        if not isinstance(payload.payload, MultiWordPronunciation):
            return payload
        seen = set()
        words = []
        for word in payload.payload.words:
            key = word.word.strip().lower()
            if key and key not in seen:
                seen.add(key)
                words.append(word)
        return payload.model_copy(
            update={"payload": payload.payload.model_copy(update={"words": words})}
        )
