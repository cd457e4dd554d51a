"""Reading passage generator.

The passage is requested as plain text rather than JSON. A passage cut off
at the output ceiling is trimmed back to its last complete sentence.
"""

import re
from typing import Any, Optional, Tuple

from linguaspark.models.lesson import ContentOrigin, ErrorKind, ReadingSection, SectionName, SharedContext
from linguaspark.prompts.section_prompts import build_reading_prompt
from linguaspark.utils.llm_client import LLMTextResponse

from .base import BaseSectionGenerator, PriorSections, prior_vocabulary

_FENCE_RE = re.compile(r"^```[a-zA-Z]*\s*|\s*```$")
_LEADING_LABEL_RE = re.compile(r"^(?:title|rewritten text|passage)\s*:\s*", re.IGNORECASE)
_SENTENCE_END_RE = re.compile(r"[.!?][\"')\]]?(?=\s|$)")


def trim_to_last_sentence(text: str) -> str:
    ends = list(_SENTENCE_END_RE.finditer(text))
    if not ends:
        return text
    return text[: ends[-1].end()].rstrip()


class ReadingGenerator(BaseSectionGenerator):
    name = SectionName.READING

    def build_prompt(self, context: SharedContext, prior: PriorSections) -> str:
        return build_reading_prompt(context, prior_vocabulary(context, prior))

    def from_data(self, data: Any, context: SharedContext) -> ReadingSection:
        if isinstance(data, dict):
            return ReadingSection(passage=str(data.get("passage") or data.get("text") or ""))
        return ReadingSection(passage=str(data or ""))

    def parse_response(
        self, response: LLMTextResponse, context: SharedContext
    ) -> Tuple[Optional[ReadingSection], ContentOrigin, Optional[ErrorKind]]:
        passage = _FENCE_RE.sub("", response.text.strip()).strip()
        if passage.startswith("{"):
            # Some models wrap the passage in JSON despite the prompt
            return super().parse_response(response, context)
        passage = _LEADING_LABEL_RE.sub("", passage)
        if response.truncated:
            passage = trim_to_last_sentence(passage)
            return ReadingSection(passage=passage), ContentOrigin.REPAIRED, ErrorKind.TRUNCATED_OUTPUT
        return ReadingSection(passage=passage), ContentOrigin.AI, None
