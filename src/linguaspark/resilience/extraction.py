"""Pattern extraction from non-JSON model output.

Used when a response that should have been JSON is plain text. Each
extractor recognises one common shape (``Name: line`` dialogue, question
lines, numbered lists, ``LABEL: value`` blocks) and returns what it can.
"""

import re
from typing import Dict, List, Optional

from linguaspark.models.lesson import (
    DialogueLine,
    PronunciationWord,
    TongueTwister,
    VocabularyItem,
)

_NUMBERING_RE = re.compile(r"^\s*(?:[-*•]+|\(?\d+[.):]|[a-zA-Z][.)])\s*")
_DIALOGUE_RE = re.compile(r"^\**([A-Z][A-Za-z .'-]{0,30}?)\**\s*:\s*(.+)$")
_VOCAB_RE = re.compile(r"^\**([A-Za-z][A-Za-z '-]{0,40}?)\**\s*(?:[:\-–]|\(\w+\.?\)\s*[:\-–]?)\s+(.+)$")
_LABEL_RE = re.compile(r"^([A-Z][A-Z_]*?)(?:_(\d+))?\s*:\s*(.*)$")

# Labels that look like speakers but are never dialogue
_NON_SPEAKERS = {"note", "answer", "answers", "example", "title", "instruction", "question"}


def strip_numbering(line: str) -> str:
    """Remove list markers like ``1.``, ``2)``, ``-`` and ``*`` from a line."""
    return _NUMBERING_RE.sub("", line.strip()).strip().strip('"').strip()


def extract_list_items(text: str, min_length: int = 1) -> List[str]:
    items = []
    for raw in (text or "").splitlines():
        line = strip_numbering(raw)
        if len(line) >= min_length:
            items.append(line)
    return items


def extract_questions(text: str, min_length: int = 10) -> List[str]:
    """Return every line that reads as a question."""
    questions = []
    for line in extract_list_items(text, min_length=min_length):
        if line.endswith("?") and line not in questions:
            questions.append(line)
    return questions


def extract_dialogue_lines(text: str) -> List[DialogueLine]:
    """Parse ``Name: line`` pairs, one per line."""
    lines = []
    for raw in (text or "").splitlines():
        stripped = strip_numbering(raw) if _NUMBERING_RE.match(raw.strip()) else raw.strip()
        match = _DIALOGUE_RE.match(stripped)
        if not match:
            continue
        speaker = match.group(1).strip()
        if speaker.lower() in _NON_SPEAKERS:
            continue
        content = match.group(2).strip().strip('"').strip()
        if content:
            lines.append(DialogueLine(character=speaker[:1].upper() + speaker[1:], line=content))
    return lines


def extract_vocabulary_items(text: str) -> List[VocabularyItem]:
    """Parse ``word - meaning`` or ``word: meaning`` lines."""
    items = []
    seen = set()
    for line in extract_list_items(text, min_length=3):
        match = _VOCAB_RE.match(line)
        if not match:
            continue
        word = match.group(1).strip()
        if word.lower() in seen:
            continue
        seen.add(word.lower())
        items.append(VocabularyItem(word=word, meaning=match.group(2).strip()))
    return items


def extract_labeled_blocks(text: str) -> List[Dict[str, str]]:
    """Group ``LABEL: value`` lines into blocks.

    A new block starts whenever a label repeats. Numbered labels such as
    ``TWISTER_2`` are folded to their base name with the number starting a
    new block.
    """
    blocks: List[Dict[str, str]] = []
    current: Dict[str, str] = {}
    current_index: Optional[str] = None
    for raw in (text or "").splitlines():
        match = _LABEL_RE.match(raw.strip())
        if not match:
            continue
        label, index, value = match.group(1), match.group(2), match.group(3).strip()
        if label.startswith("TIP"):
            label, index = "TIP", None
            value = current.get("TIP", "") + ("\n" if "TIP" in current else "") + value
        starts_new = (label in current and label != "TIP") or (index is not None and index != current_index)
        if starts_new and current:
            blocks.append(current)
            current = {}
        if index is not None:
            current_index = index
        current[label] = value
    if current:
        blocks.append(current)
    return blocks


def _split_sounds(value: str) -> List[str]:
    return [s.strip() for s in value.split(",") if s.strip()]


def extract_pronunciation_words(text: str) -> List[PronunciationWord]:
    """Parse ``WORD:/IPA:/DIFFICULT_SOUNDS:/TIP_n:/PRACTICE:`` blocks."""
    words = []
    for block in extract_labeled_blocks(text):
        if not block.get("WORD"):
            continue
        words.append(
            PronunciationWord(
                word=block["WORD"],
                ipa=block.get("IPA", ""),
                difficult_sounds=_split_sounds(block.get("DIFFICULT_SOUNDS", "")),
                tips=[t for t in block.get("TIP", "").split("\n") if t.strip()],
                practice_sentence=block.get("PRACTICE", ""),
            )
        )
    return words


def extract_tongue_twisters(text: str) -> List[TongueTwister]:
    """Parse ``TWISTER_n:/SOUNDS_n:/DIFFICULTY_n:`` blocks."""
    twisters = []
    for block in extract_labeled_blocks(text):
        if not block.get("TWISTER"):
            continue
        twisters.append(
            TongueTwister(
                text=block["TWISTER"],
                target_sounds=_split_sounds(block.get("SOUNDS", "")),
                difficulty=block.get("DIFFICULTY", "moderate") or "moderate",
            )
        )
    return twisters
