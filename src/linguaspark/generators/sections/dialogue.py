"""Dialogue section generator with a derived fill-in-the-gap exercise.

The model writes the practice dialogue. The gap exercise is derived locally:
lesson vocabulary is blanked out of the dialogue lines and the answer bank
is shuffled so its order never matches the order of the blanks.
"""

import random
import re
from typing import Any, List, Optional, Sequence, Tuple

from linguaspark.models.lesson import DialogueLine, DialogueSection, SectionName, SharedContext
from linguaspark.prompts.section_prompts import build_dialogue_prompt
from linguaspark.resilience.extraction import extract_dialogue_lines, extract_questions
from linguaspark.resilience.templates import default_follow_up_questions

from .base import BaseSectionGenerator, PriorSections, as_list, clean_line, first_text, prior_vocabulary

GAP_MARKER = "_____"
MAX_GAPS = 6
MIN_GAPS = 3
MIN_FALLBACK_GAP_WORD_LENGTH = 6
FOLLOW_UP_COUNT = 3

_WORD_RE = re.compile(r"[A-Za-z][A-Za-z'-]+")


def shuffle_answers(answers: Sequence[str], rng: Optional[random.Random] = None) -> List[str]:
    """Return ``answers`` in a uniformly random non-identity order.

    With two or more answers the identity permutation is rejected and
    redrawn, so the bank never lines up with the blanks.
    """
    rng = rng or random.Random()
    n = len(answers)
    if n < 2:
        return list(answers)
    identity = list(range(n))
    order = identity[:]
    while order == identity:
        rng.shuffle(order)
    return [answers[i] for i in order]


def _blank_first(line: str, word: str) -> Tuple[str, Optional[str]]:
    pattern = re.compile(rf"\b{re.escape(word)}\b", re.IGNORECASE)
    match = pattern.search(line)
    if not match:
        return line, None
    return line[: match.start()] + GAP_MARKER + line[match.end():], match.group(0)


def create_fill_gaps(
    lines: Sequence[DialogueLine], vocabulary: Sequence[str]
) -> Tuple[List[DialogueLine], List[str]]:
    """Blank lesson words in ``lines``.

    Returns:
        Tuple of (gapped lines, answers in blank order). Each answer is
        unique and each line holds at most one blank.
    """
    gapped = [line.model_copy() for line in lines]
    answers: List[str] = []
    used = set()
    gapped_rows = set()

    for word in vocabulary:
        if len(answers) >= MAX_GAPS:
            break
        if word.lower() in used:
            continue
        for row, line in enumerate(gapped):
            if row in gapped_rows:
                continue
            new_text, answer = _blank_first(line.line, word)
            if answer:
                gapped[row] = line.model_copy(update={"line": new_text})
                answers.append(answer)
                used.add(word.lower())
                gapped_rows.add(row)
                break

    # Too few lesson words in the dialogue: blank the longest word of untouched lines
    for row, line in enumerate(gapped):
        if len(answers) >= MIN_GAPS:
            break
        if row in gapped_rows:
            continue
        candidates = [
            w for w in _WORD_RE.findall(line.line)
            if len(w) >= MIN_FALLBACK_GAP_WORD_LENGTH and w.lower() not in used
        ]
        if not candidates:
            continue
        word = max(candidates, key=len)
        new_text, answer = _blank_first(line.line, word)
        if answer:
            gapped[row] = line.model_copy(update={"line": new_text})
            answers.append(answer)
            used.add(word.lower())
            gapped_rows.add(row)

    return gapped, answers


class DialogueGenerator(BaseSectionGenerator):
    name = SectionName.DIALOGUE

    def __init__(self, llm_client, config=None, rng: Optional[random.Random] = None):
        super().__init__(llm_client, config)
        self.rng = rng or random.Random()

    def build_prompt(self, context: SharedContext, prior: PriorSections) -> str:
        return build_dialogue_prompt(context, prior_vocabulary(context, prior))

    def from_data(self, data: Any, context: SharedContext) -> DialogueSection:
        lines: List[DialogueLine] = []
        for raw in as_list(data, "lines", "dialogue"):
            if isinstance(raw, str):
                lines.extend(extract_dialogue_lines(raw))
                continue
            if not isinstance(raw, dict):
                continue
            character = first_text(raw, "character", "speaker")
            text = first_text(raw, "line", "text")
            if character and text:
                lines.append(DialogueLine(character=character, line=text))
        follow_ups = []
        if isinstance(data, dict):
            follow_ups = [clean_line(q) for q in as_list(data, "follow_up_questions", "followUpQuestions")]
        return DialogueSection(lines=lines, follow_up_questions=[q for q in follow_ups if q])

    def extract(self, text: str, context: SharedContext):
        lines = extract_dialogue_lines(text)
        if not lines:
            return None
        spoken = {line.line for line in lines}
        follow_ups = [q for q in extract_questions(text) if not any(s in q for s in spoken)]
        return DialogueSection(lines=lines, follow_up_questions=follow_ups)

    def post_process(self, payload: DialogueSection, context: SharedContext, prior: PriorSections):
        lines = [
            line.model_copy(update={"character": line.character.strip().capitalize(), "line": line.line.strip()})
            for line in payload.lines
            if line.line.strip()
        ]
        vocabulary = prior_vocabulary(context, prior, limit=10)
        gapped, answer_key = create_fill_gaps(lines, vocabulary)
        follow_ups = payload.follow_up_questions[:FOLLOW_UP_COUNT]
        if len(follow_ups) < FOLLOW_UP_COUNT:
            follow_ups = default_follow_up_questions()
        return payload.model_copy(
            update={
                "lines": lines,
                "gapped_lines": gapped if answer_key else [],
                "answers": shuffle_answers(answer_key, self.rng),
                "follow_up_questions": follow_ups,
            }
        )
