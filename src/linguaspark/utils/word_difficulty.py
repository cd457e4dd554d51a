"""Pronunciation difficulty scoring for English words.

Scores a word by the sound patterns learners most often struggle with so
the pronunciation section can practise the hardest lesson words first.
"""

import re
from typing import List, NamedTuple, Sequence, Tuple

# (pattern, sound label, weight)
CONSONANT_PATTERNS: Tuple[Tuple[str, str, int], ...] = (
    (r"th", "/θ/ or /ð/", 5),
    (r"ch", "/tʃ/", 4),
    (r"sh", "/ʃ/", 4),
    (r"ph", "/f/", 3),
    (r"gh", "/g/ or /f/", 4),
    (r"ng", "/ŋ/", 3),
    (r"wh", "/w/", 3),
    (r"[^aeiou\s]r", "/r/", 4),
)

VOWEL_PATTERNS: Tuple[Tuple[str, str, int], ...] = (
    (r"ough|augh", "/ɔː/ or /ʌf/", 5),
    (r"eau|ieu", "/oʊ/ or /juː/", 4),
    (r"ou|ow", "/aʊ/", 3),
    (r"ea|ee|ie", "/iː/", 2),
    (r"oo", "/uː/ or /ʊ/", 2),
)

SILENT_PATTERNS: Tuple[Tuple[str, str, int], ...] = (
    (r"^kn|^wr|^gn|mb$|bt", "silent letter", 4),
)

ENDING_PATTERNS: Tuple[Tuple[str, str, int], ...] = (
    (r"tion$|sion$", "/ʃən/", 3),
    (r"ture$", "/tʃər/", 3),
    (r"ed$", "-ed ending", 2),
)

CLUSTER_PATTERN = re.compile(r"[^aeiouy\W\d_]{3,}")

DEFAULT_PRACTICE_WORDS = ("through", "thought", "world", "comfortable", "especially", "vegetable")


class WordDifficulty(NamedTuple):
    word: str
    score: int
    sounds: List[str]


def score_word(word: str) -> WordDifficulty:
    """Score one word; higher means harder to pronounce."""
    lower = word.lower()
    score = min(len(lower), 12)
    sounds: List[str] = []
    for group in (CONSONANT_PATTERNS, VOWEL_PATTERNS, SILENT_PATTERNS, ENDING_PATTERNS):
        for pattern, sound, weight in group:
            hits = len(re.findall(pattern, lower))
            if hits:
                score += weight * hits
                if sound not in sounds:
                    sounds.append(sound)
    clusters = CLUSTER_PATTERN.findall(lower)
    if clusters:
        score += 3 * len(clusters)
        sounds.append("consonant cluster")
    return WordDifficulty(word=word, score=score, sounds=sounds)


def select_challenging_words(vocabulary: Sequence[str], count: int) -> List[WordDifficulty]:
    """Pick the ``count`` hardest words, padding from a default list when short.

    Ties keep vocabulary order.
    """
    seen = set()
    candidates = []
    for word in vocabulary:
        key = word.strip().lower()
        if len(key) > 2 and " " not in key and key not in seen:
            seen.add(key)
            candidates.append(word.strip())
    ranked = sorted((score_word(w) for w in candidates), key=lambda d: -d.score)[:count]
    for word in DEFAULT_PRACTICE_WORDS:
        if len(ranked) >= count:
            break
        if word not in seen:
            seen.add(word)
            ranked.append(score_word(word))
    return ranked
