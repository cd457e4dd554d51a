"""Question-list sections: warm-up, comprehension, discussion and wrap-up."""

from typing import Any, ClassVar, List

from linguaspark.models.lesson import (
    ComprehensionSection,
    DiscussionSection,
    SectionName,
    SharedContext,
    WarmupSection,
    WrapupSection,
)
from linguaspark.prompts.section_prompts import (
    QUESTION_COUNTS,
    build_comprehension_prompt,
    build_discussion_prompt,
    build_warmup_prompt,
    build_wrapup_prompt,
)
from linguaspark.resilience.extraction import extract_questions
from linguaspark.validators.section_validators import MIN_QUESTION_LENGTH

from .base import BaseSectionGenerator, PriorSections, as_list, clean_line, prior_vocabulary


class QuestionSectionGenerator(BaseSectionGenerator):
    """Shared parsing for sections that are a list of questions."""

    section_model: ClassVar[type]

    def _questions(self, raw: List[Any]) -> List[str]:
        questions: List[str] = []
        for item in raw:
            text = clean_line(item.get("question") if isinstance(item, dict) else item)
            if len(text) >= MIN_QUESTION_LENGTH and text not in questions:
                questions.append(text)
        return questions[: QUESTION_COUNTS[self.name]]

    def from_data(self, data: Any, context: SharedContext):
        return self.section_model(questions=self._questions(as_list(data, "questions")))

    def extract(self, text: str, context: SharedContext):
        questions = self._questions(extract_questions(text))
        return self.section_model(questions=questions) if questions else None


class WarmupGenerator(QuestionSectionGenerator):
    name = SectionName.WARMUP
    section_model = WarmupSection

    def build_prompt(self, context: SharedContext, prior: PriorSections) -> str:
        return build_warmup_prompt(context)


class ComprehensionGenerator(QuestionSectionGenerator):
    name = SectionName.COMPREHENSION
    section_model = ComprehensionSection
    temperature = 0.4

    def build_prompt(self, context: SharedContext, prior: PriorSections) -> str:
        reading = prior.get(SectionName.READING)
        return build_comprehension_prompt(context, getattr(reading, "passage", ""))


class DiscussionGenerator(QuestionSectionGenerator):
    name = SectionName.DISCUSSION
    section_model = DiscussionSection

    def build_prompt(self, context: SharedContext, prior: PriorSections) -> str:
        return build_discussion_prompt(context)


class WrapupGenerator(QuestionSectionGenerator):
    name = SectionName.WRAPUP
    section_model = WrapupSection

    def build_prompt(self, context: SharedContext, prior: PriorSections) -> str:
        return build_wrapup_prompt(context, prior_vocabulary(context, prior, limit=6))
