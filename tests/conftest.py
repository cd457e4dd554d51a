"""Shared fixtures: a scripted LLM client and a ready-made shared context."""

import json
import threading
from typing import Callable, Dict, Optional, Union

import pytest

from linguaspark.models.lesson import CEFRLevel, LessonRequest, LessonType, SharedContext
from linguaspark.utils.llm_client import LLMTextResponse

SOURCE_SENTENCES = [
    "More people in our city now commute to work by bicycle than ever before.",
    "The council has spent millions on new cycling infrastructure over the last five years.",
    "Protected bike lanes separate riders from cars and make every pedestrian crossing safer.",
    "Traffic congestion in the centre has fallen by almost a fifth since the lanes opened.",
    "Local doctors say that regular cycling improves heart health and reduces stress.",
    "Some shop owners worried that fewer parking spaces would hurt their business.",
    "In fact, many of them now report more customers arriving on foot or by bike.",
    "The city also offers a small subsidy to help families buy electric bicycles.",
    "Critics argue that the money should go to buses, which carry far more passengers.",
    "Supporters reply that cleaner air and lower emissions benefit everyone in the city.",
    "Wearing a helmet is not required by law, but most riders choose to wear one.",
    "Planners hope that a sustainable transport network will attract young families to the area.",
]

# About 560 words
SOURCE_TEXT = " ".join(SOURCE_SENTENCES * 4)

VOCABULARY = ["commute", "infrastructure", "congestion", "emissions", "pedestrian", "sustainable", "subsidy", "helmet"]
THEMES = ["urban cycling", "city transport", "public health"]

READING_PASSAGE = " ".join(
    [
        "Many people in our city now commute by bicycle.",
        "The council built new infrastructure, including protected lanes that keep riders away from cars.",
        "Because of this, congestion in the centre has fallen and the air is cleaner.",
        "Doctors say cycling is good for the heart and helps people feel less stressed.",
        "At first, some shop owners were worried about losing parking spaces.",
        "Now many of them say more customers arrive on foot or by bike.",
        "The city also gives families a subsidy to buy electric bicycles.",
        "Not everyone agrees with the plan.",
        "Some people think the money should go to buses, which carry more passengers.",
        "Others say that lower emissions and safer streets for every pedestrian help the whole city.",
        "A helmet is not required by law, but most riders wear one.",
        "Planners hope that a sustainable transport network will bring young families to the area.",
    ]
    * 2
)

DIALOGUE_LINES = [
    ("Student", "I started to commute by bike last month."),
    ("Tutor", "That's great. How long does the ride take?"),
    ("Student", "About twenty minutes, thanks to the new infrastructure."),
    ("Tutor", "Have you noticed less congestion on the roads?"),
    ("Student", "Yes, the centre is much quieter in the mornings."),
    ("Tutor", "Do you think lower emissions make a real difference?"),
    ("Student", "I think so. The air feels cleaner near the river."),
    ("Tutor", "What about safety? Do you wear a helmet?"),
    ("Student", "Always. My sister got a subsidy for an electric bike too."),
    ("Tutor", "Lucky her. Is it easy to ride as a pedestrian crosses?"),
    ("Student", "The crossings are clear, so it feels safe for everyone."),
    ("Tutor", "It sounds like a sustainable way to travel."),
    ("Student", "It is, and it saves me money every week."),
]

DEFAULT_RESPONSES: Dict[str, str] = {
    "title": "Cycling Changes City Life",
    "summary": "The city has invested in cycling lanes. Congestion has fallen and health has improved, "
    "although some people would prefer more money for buses.",
    "warmup": json.dumps(
        {
            "questions": [
                "How do you usually travel to work or school?",
                "What do you like or dislike about traffic where you live?",
                "Would you enjoy cycling in a big city? Why or why not?",
            ]
        }
    ),
    "vocabulary": json.dumps(
        {
            "items": [
                {
                    "word": word,
                    "meaning": f"a useful word about city transport ({word})",
                    "examples": [
                        f"The article mentions {word} several times.",
                        f"We talked about {word} in class today.",
                        f"Can you use {word} in a sentence?",
                        f"I learned the word {word} this week.",
                        f"My teacher explained {word} with a picture.",
                    ],
                }
                for word in VOCABULARY
            ]
        }
    ),
    "reading": READING_PASSAGE,
    "comprehension": json.dumps(
        {
            "questions": [
                "How do more people in the city travel to work now?",
                "What did the council build with the money?",
                "What has happened to congestion in the centre?",
                "Why were some shop owners worried at first?",
                "What do critics think the money should be spent on?",
            ]
        }
    ),
    "discussion": json.dumps(
        {
            "questions": [
                "Should cities spend more money on cycling or on buses? Why?",
                "How would your daily life change if you cycled to work?",
                "What are the biggest problems with traffic in your town?",
                "Who should pay for new transport infrastructure?",
                "How can cities make streets safer for children?",
            ]
        }
    ),
    "dialogue": json.dumps(
        {
            "lines": [{"character": c, "line": l} for c, l in DIALOGUE_LINES],
            "follow_up_questions": [
                "Why did the student start cycling?",
                "What does the student say about the air?",
                "Would you like to commute like the student?",
            ],
        }
    ),
    "grammar": json.dumps(
        {
            "focus": "Present perfect",
            "explanation": {
                "form": "have/has + past participle",
                "usage": "Changes that connect the past to now",
                "level_notes": "Common at B1",
            },
            "examples": [
                "Congestion has fallen since the lanes opened.",
                "The council has spent millions on cycling.",
                "Many shops have seen more customers.",
            ],
            "exercises": [
                {"prompt": "The city ___ (build) new lanes.", "answer": "has built", "explanation": "has + participle"},
                {"prompt": "We ___ (never / cycle) to work.", "answer": "have never cycled", "explanation": "never"},
                {"prompt": "Emissions ___ (fall).", "answer": "have fallen", "explanation": "irregular participle"},
            ],
        }
    ),
    "pronunciation": json.dumps(
        {
            "words": [
                {
                    "word": word,
                    "ipa": "/test/",
                    "difficult_sounds": ["/ʃ/"],
                    "tips": ["Say it slowly first."],
                    "practice_sentence": f"Please say {word} clearly.",
                }
                for word in ["infrastructure", "congestion", "emissions", "sustainable", "pedestrian"]
            ],
            "tongue_twisters": [
                {"text": "Six slick cyclists sped safely through the city.", "target_sounds": ["/s/"]},
                {"text": "Three thick thorns threatened the thin tyres.", "target_sounds": ["/θ/"]},
            ],
        }
    ),
    "wrapup": json.dumps(
        {
            "questions": [
                "Which new transport words will you use this week?",
                "What surprised you most about the cycling article?",
                "What would you like to practise in the next lesson?",
            ]
        }
    ),
}

DEFAULT_ANALYSIS = {"key_vocabulary": VOCABULARY, "main_themes": THEMES}

# First line of each prompt identifies the call
ROUTES = (
    ("Create a lesson title", "title"),
    ("Summarize this text", "summary"),
    ("Create vocabulary entries", "vocabulary"),
    ("Rewrite this text", "reading"),
    ("Create a natural conversation", "dialogue"),
    ("Identify ONE grammar point", "grammar"),
    ("Create pronunciation practice", "pronunciation"),
    ("warm-up questions", "warmup"),
    ("comprehension questions", "comprehension"),
    ("wrap-up questions", "wrapup"),
    ("discussion questions", "discussion"),
)

Scripted = Union[str, LLMTextResponse, Exception, Callable[[str], LLMTextResponse]]


def route_for(prompt: str) -> str:
    first_line = prompt.strip().splitlines()[0]
    for marker, route in ROUTES:
        if marker in first_line:
            return route
    raise AssertionError(f"Unrouted prompt: {first_line}")


class FakeLLMClient:
    """Stands in for LLMClient; answers each prompt from a script keyed by call type."""

    model = "fake-model"

    def __init__(self, responses: Optional[Dict[str, Scripted]] = None, analysis: Optional[dict] = None):
        self.responses: Dict[str, Scripted] = {**DEFAULT_RESPONSES, **(responses or {})}
        self.analysis = DEFAULT_ANALYSIS if analysis is None else analysis
        self.calls = []
        self._lock = threading.Lock()

    def _record(self, route: str, **kwargs) -> None:
        with self._lock:
            self.calls.append({"route": route, **kwargs})

    def routes_called(self):
        return [call["route"] for call in self.calls]

    def generate_text(self, prompt, max_tokens=1024, temperature=0.7, system_prompt=None, timeout=None):
        route = route_for(prompt)
        self._record(route, max_tokens=max_tokens, temperature=temperature, prompt=prompt)
        scripted = self.responses[route]
        if isinstance(scripted, Exception):
            raise scripted
        if isinstance(scripted, LLMTextResponse):
            return scripted
        if callable(scripted):
            return scripted(prompt)
        return LLMTextResponse(text=scripted, finish_reason="stop")

    def generate(self, prompt, response_model, temperature=0.3, max_tokens=1024, system_prompt=None, timeout=None):
        self._record("analysis", max_tokens=max_tokens, temperature=temperature, prompt=prompt)
        if isinstance(self.analysis, Exception):
            raise self.analysis
        return response_model(**self.analysis)

    def get_usage_summary(self) -> dict:
        return {
            "model": self.model,
            "prompt_tokens": 0,
            "completion_tokens": 0,
            "total_tokens": 0,
            "cached_tokens": 0,
            "estimated_cost_usd": 0.0,
        }


@pytest.fixture
def fake_llm():
    return FakeLLMClient()


@pytest.fixture
def make_llm():
    """Factory for scripted clients: ``make_llm(responses={"grammar": ...}, analysis=...)``."""
    return FakeLLMClient


@pytest.fixture
def lesson_request():
    return LessonRequest(
        source_text=SOURCE_TEXT,
        lesson_type=LessonType.DISCUSSION,
        student_level=CEFRLevel.B1,
        source_url="https://example.com/cycling",
    )


@pytest.fixture
def shared_context():
    return SharedContext(
        lesson_title="Cycling Changes City Life",
        key_vocabulary=tuple(VOCABULARY),
        main_themes=tuple(THEMES),
        difficulty_level=CEFRLevel.B1,
        source_summary=DEFAULT_RESPONSES["summary"],
        source_text=SOURCE_TEXT[:2000],
        lesson_type=LessonType.DISCUSSION,
    )


@pytest.fixture
def article():
    """About 500 words of B1-friendly source text."""
    return " ".join(SOURCE_TEXT.split()[:500])
