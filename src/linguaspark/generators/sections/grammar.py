"""Grammar section generator."""

from typing import Any, List

from linguaspark.models.lesson import GrammarExercise, GrammarExplanation, GrammarSection, SectionName, SharedContext
from linguaspark.prompts.section_prompts import build_grammar_prompt

from .base import BaseSectionGenerator, PriorSections, as_list, clean_line, first_text

MAX_GRAMMAR_ITEMS = 5


class GrammarGenerator(BaseSectionGenerator):
    name = SectionName.GRAMMAR
    temperature = 0.5

    def build_prompt(self, context: SharedContext, prior: PriorSections) -> str:
        return build_grammar_prompt(context)

    def from_data(self, data: Any, context: SharedContext) -> GrammarSection:
        if not isinstance(data, dict):
            raise TypeError("grammar response must be a JSON object")

        raw_explanation = data.get("explanation") or {}
        if isinstance(raw_explanation, str):
            explanation = GrammarExplanation(usage=raw_explanation.strip())
        else:
            explanation = GrammarExplanation(
                form=first_text(raw_explanation, "form"),
                usage=first_text(raw_explanation, "usage"),
                level_notes=first_text(raw_explanation, "level_notes", "levelNotes"),
            )

        exercises: List[GrammarExercise] = []
        for raw in as_list(data, "exercises"):
            if not isinstance(raw, dict):
                continue
            prompt = first_text(raw, "prompt", "question")
            answer = first_text(raw, "answer")
            if prompt and answer:
                exercises.append(
                    GrammarExercise(prompt=prompt, answer=answer, explanation=first_text(raw, "explanation"))
                )

        return GrammarSection(
            focus=first_text(data, "focus", "grammarPoint", "grammar_point"),
            explanation=explanation,
            examples=[clean_line(e) for e in as_list(data, "examples") if clean_line(e)],
            exercises=exercises,
        )

    def post_process(self, payload: GrammarSection, context: SharedContext, prior: PriorSections):
        return payload.model_copy(
            update={
                "examples": payload.examples[:MAX_GRAMMAR_ITEMS],
                "exercises": payload.exercises[:MAX_GRAMMAR_ITEMS],
            }
        )
