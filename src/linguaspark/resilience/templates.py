"""Deterministic template fallbacks.

Used when generation for a section produced nothing usable. Every template
is built from the shared context alone, involves no remote call, and meets
its section's minimum shape.
"""

import re
from typing import Callable, Dict, List

from linguaspark.models.lesson import (
    CEFRLevel,
    ComprehensionSection,
    DialogueLine,
    DialogueSection,
    DiscussionSection,
    GrammarExercise,
    GrammarExplanation,
    GrammarSection,
    MultiWordPronunciation,
    PronunciationSection,
    PronunciationWord,
    ReadingSection,
    SectionName,
    SharedContext,
    TongueTwister,
    VocabularyItem,
    VocabularySection,
    WarmupSection,
    WrapupSection,
)
from linguaspark.utils.word_difficulty import select_challenging_words
from linguaspark.validators.section_validators import SECTION_MINIMUMS

FALLBACK_VOCABULARY = ("communication", "important", "different", "example", "information", "situation")
READING_TEMPLATE_WORDS = 300

_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+")


def _vocabulary(context: SharedContext, count: int) -> List[str]:
    words = list(dict.fromkeys(w for w in context.key_vocabulary if w.strip()))
    for word in FALLBACK_VOCABULARY:
        if len(words) >= count:
            break
        if word not in words:
            words.append(word)
    return words


def _sentence_with(word: str, text: str) -> str:
    for sentence in _SENTENCE_SPLIT_RE.split(text):
        if word.lower() in sentence.lower() and 4 <= len(sentence.split()) <= 30:
            return sentence.strip()
    return ""


def warmup_template(context: SharedContext) -> WarmupSection:
    theme = context.main_theme
    return WarmupSection(
        questions=[
            f"What do you already know about {theme}?",
            f"Have you ever talked about {theme} with friends or family?",
            f"Why do you think people are interested in {theme}?",
        ]
    )


def vocabulary_template(context: SharedContext) -> VocabularySection:
    items = []
    for word in _vocabulary(context, SECTION_MINIMUMS[SectionName.VOCABULARY]):
        example = _sentence_with(word, context.source_text) or f"We use the word \"{word}\" when we talk about {context.main_theme}."
        items.append(
            VocabularyItem(
                word=word[:1].upper() + word[1:],
                meaning=f"A key word from the text about {context.main_theme}. Discuss its meaning with your tutor.",
                examples=[example],
            )
        )
    return VocabularySection(items=items)


def reading_template(context: SharedContext) -> ReadingSection:
    words = context.source_text.split()
    passage = " ".join(words[:READING_TEMPLATE_WORDS])
    if len(words) > READING_TEMPLATE_WORDS:
        passage += " ..."
    if len(words) < SECTION_MINIMUMS[SectionName.READING] and context.source_summary:
        passage = f"{context.source_summary}\n\n{passage}"
    return ReadingSection(passage=passage)


def comprehension_template(context: SharedContext) -> ComprehensionSection:
    theme = context.main_theme
    return ComprehensionSection(
        questions=[
            "What is the main idea of the text?",
            f"What does the text say about {theme}?",
            "Which facts or examples does the writer give?",
            "Who or what is most affected by the events in the text?",
            "What happens at the end of the text?",
        ]
    )


def discussion_template(context: SharedContext) -> DiscussionSection:
    theme = context.main_theme
    return DiscussionSection(
        questions=[
            f"How does {theme} affect your daily life?",
            "Do you agree with the main points in the text? Why or why not?",
            f"How is {theme} different in your country?",
            f"What would you change about {theme} if you could?",
            f"How do you think {theme} will change in the next ten years?",
        ]
    )


def dialogue_template(context: SharedContext) -> DialogueSection:
    theme = context.main_theme
    vocab = _vocabulary(context, 4)
    script = [
        ("Student", f"I read an interesting text about {theme} today."),
        ("Tutor", "Really? What was it about?"),
        ("Student", f"It talked about {vocab[0]} and why it matters."),
        ("Tutor", f"That sounds useful. What did you learn about {vocab[0]}?"),
        ("Student", f"I learned that {vocab[1]} is a big part of the story."),
        ("Tutor", f"Can you give me an example of {vocab[1]}?"),
        ("Student", f"Yes, the text gives a good example with {vocab[2]}."),
        ("Tutor", "Did anything in the text surprise you?"),
        ("Student", f"I was surprised by how {vocab[3]} changes things."),
        ("Tutor", f"Do you think {theme} is important for people like us?"),
        ("Student", "Yes, I think so. It affects many people every day."),
        ("Tutor", "Great. Let's use these new words in our next conversation."),
    ]
    return DialogueSection(
        lines=[DialogueLine(character=c, line=l) for c, l in script],
        follow_up_questions=default_follow_up_questions(),
    )


def default_follow_up_questions() -> List[str]:
    return [
        "What did you learn from this conversation?",
        "How would you continue this discussion?",
        "What questions would you ask next?",
    ]


GRAMMAR_TEMPLATES: Dict[CEFRLevel, dict] = {
    CEFRLevel.A1: {
        "focus": "Present simple",
        "form": "Subject + base verb (add -s or -es for he, she and it).",
        "usage": "Use the present simple for habits, routines and facts that are always true.",
        "examples": ["I read the news every morning.", "She works in a big city.", "They play football on Sundays."],
        "exercises": [
            ("He ___ (live) in London.", "lives", "Add -s for he, she and it."),
            ("We ___ (like) this topic.", "like", "No -s with we."),
            ("The shop ___ (open) at nine.", "opens", "A singular subject takes -s."),
        ],
    },
    CEFRLevel.A2: {
        "focus": "Past simple",
        "form": "Subject + past form of the verb (regular verbs add -ed).",
        "usage": "Use the past simple for finished actions at a specific time in the past.",
        "examples": ["I visited my aunt last weekend.", "They watched the match yesterday.", "She went to school by bus."],
        "exercises": [
            ("Yesterday we ___ (walk) to the park.", "walked", "Regular verbs add -ed."),
            ("He ___ (go) home early.", "went", "Go is irregular."),
            ("I ___ (see) the news last night.", "saw", "See is irregular."),
        ],
    },
    CEFRLevel.B1: {
        "focus": "Present perfect",
        "form": "Subject + have/has + past participle.",
        "usage": "Use the present perfect for experiences and past actions that connect to the present.",
        "examples": ["I have read several articles about this.", "She has lived here for five years.", "We have never seen anything like it."],
        "exercises": [
            ("They ___ (finish) the project already.", "have finished", "Have + past participle."),
            ("She ___ (be) to Japan twice.", "has been", "Has with she."),
            ("I ___ never ___ (try) it.", "have, tried", "Never goes between have and the participle."),
        ],
    },
    CEFRLevel.B2: {
        "focus": "Second and third conditionals",
        "form": "If + past simple, would + verb / If + past perfect, would have + past participle.",
        "usage": "Use these conditionals for imaginary present situations and for regrets about the past.",
        "examples": [
            "If I had more time, I would travel more.",
            "If they had planned better, they would have won.",
            "She would call you if she knew your number.",
        ],
        "exercises": [
            ("If I ___ (be) you, I would accept the offer.", "were", "Use were in the second conditional."),
            ("If we had left earlier, we ___ (catch) the train.", "would have caught", "Third conditional result."),
            ("He would help if he ___ (have) time.", "had", "Past simple in the if-clause."),
        ],
    },
    CEFRLevel.C1: {
        "focus": "Inversion after negative adverbials",
        "form": "Negative adverbial + auxiliary + subject + verb.",
        "usage": "Use inversion for emphasis in formal speech and writing.",
        "examples": [
            "Rarely have I seen such a clear explanation.",
            "Not only did they win, but they also broke the record.",
            "Never before had the city faced such a challenge.",
        ],
        "exercises": [
            ("Rewrite: I have rarely heard such nonsense. (Rarely...)", "Rarely have I heard such nonsense.", "Auxiliary before subject."),
            ("Rewrite: She not only sang but also danced. (Not only...)", "Not only did she sing, but she also danced.", "Add did for past simple."),
            ("Rewrite: We had never felt so proud. (Never...)", "Never had we felt so proud.", "Had moves before we."),
        ],
    },
}


def grammar_template(context: SharedContext) -> GrammarSection:
    data = GRAMMAR_TEMPLATES[context.difficulty_level]
    return GrammarSection(
        focus=data["focus"],
        explanation=GrammarExplanation(
            form=data["form"],
            usage=data["usage"],
            level_notes=f"A core structure for {context.difficulty_level.value} learners.",
        ),
        examples=list(data["examples"]),
        exercises=[GrammarExercise(prompt=p, answer=a, explanation=e) for p, a, e in data["exercises"]],
    )


def pronunciation_template(context: SharedContext) -> PronunciationSection:
    picked = select_challenging_words(context.key_vocabulary, SECTION_MINIMUMS[SectionName.PRONUNCIATION])
    words = [
        PronunciationWord(
            word=d.word,
            difficult_sounds=d.sounds,
            tips=[f"Say \"{d.word}\" slowly, then at normal speed. Listen to your tutor's model first."],
            practice_sentence=_sentence_with(d.word, context.source_text)
            or f"Please say the word \"{d.word}\" clearly.",
        )
        for d in picked
    ]
    twisters = [
        TongueTwister(text="Three thin thinkers thought through three thick theories.", target_sounds=["/θ/"]),
        TongueTwister(text="She sells sea shells by the sea shore.", target_sounds=["/s/", "/ʃ/"]),
    ]
    return PronunciationSection(payload=MultiWordPronunciation(words=words, tongue_twisters=twisters))


def wrapup_template(context: SharedContext) -> WrapupSection:
    theme = context.main_theme
    return WrapupSection(
        questions=[
            "Which new words from today will you use this week?",
            f"What was the most interesting thing you learned about {theme}?",
            "What would you like to practise more in the next lesson?",
        ]
    )


TEMPLATES: Dict[SectionName, Callable[[SharedContext], object]] = {
    SectionName.WARMUP: warmup_template,
    SectionName.VOCABULARY: vocabulary_template,
    SectionName.READING: reading_template,
    SectionName.COMPREHENSION: comprehension_template,
    SectionName.DISCUSSION: discussion_template,
    SectionName.DIALOGUE: dialogue_template,
    SectionName.GRAMMAR: grammar_template,
    SectionName.PRONUNCIATION: pronunciation_template,
    SectionName.WRAPUP: wrapup_template,
}


def build_template(section: SectionName, context: SharedContext):
    """Return the deterministic fallback payload for ``section``."""
    return TEMPLATES[section](context)
