"""Prompts for context analysis and section generation.

Each builder takes only the slice of SharedContext its section needs, so
prompts stay short and well under the output ceilings in MAX_OUTPUT_TOKENS.
"""

from typing import Dict, Sequence

from linguaspark.models.lesson import CEFRLevel, SectionName, SharedContext

# Output token ceilings per call
MAX_OUTPUT_TOKENS: Dict[SectionName, int] = {
    SectionName.WARMUP: 300,
    SectionName.VOCABULARY: 1500,
    SectionName.READING: 1200,
    SectionName.COMPREHENSION: 500,
    SectionName.DISCUSSION: 600,
    SectionName.DIALOGUE: 1200,
    SectionName.GRAMMAR: 1500,
    SectionName.PRONUNCIATION: 1500,
    SectionName.WRAPUP: 300,
}

TITLE_MAX_TOKENS = 50
ANALYSIS_MAX_TOKENS = 400
SUMMARY_MAX_TOKENS = 200

QUESTION_COUNTS: Dict[SectionName, int] = {
    SectionName.WARMUP: 3,
    SectionName.COMPREHENSION: 5,
    SectionName.DISCUSSION: 5,
    SectionName.WRAPUP: 3,
}

SYSTEM_PROMPT = (
    "You are an experienced language tutor preparing one-to-one lesson material. "
    "Follow the requested output format exactly and do not add commentary."
)

WARMUP_GUIDANCE: Dict[CEFRLevel, str] = {
    CEFRLevel.A1: "Use very simple present tense questions about personal experiences and familiar situations.",
    CEFRLevel.A2: "Use simple present and past tense questions about everyday situations.",
    CEFRLevel.B1: "Use varied question structures and tenses, including questions about opinions.",
    CEFRLevel.B2: "Use complex question structures, including hypothetical and analytical questions.",
    CEFRLevel.C1: "Use sophisticated, abstract and evaluative questions that encourage critical thinking.",
}

EXAMPLE_COUNTS: Dict[CEFRLevel, int] = {
    CEFRLevel.A1: 5,
    CEFRLevel.A2: 5,
    CEFRLevel.B1: 4,
    CEFRLevel.B2: 3,
    CEFRLevel.C1: 2,
}

EXAMPLE_GUIDELINES: Dict[CEFRLevel, str] = {
    CEFRLevel.A1: "5-8 words, present tense, basic vocabulary",
    CEFRLevel.A2: "8-12 words, simple past/future, common words",
    CEFRLevel.B1: "10-15 words, varied tenses, compound sentences",
    CEFRLevel.B2: "12-18 words, complex structures, relative clauses",
    CEFRLevel.C1: "15-20 words, sophisticated grammar, nuanced expressions",
}

DISCUSSION_GUIDANCE: Dict[CEFRLevel, str] = {
    CEFRLevel.A1: "Simple personal questions (likes, habits, experiences) with short answers possible.",
    CEFRLevel.A2: "Personal and comparative questions about everyday life and past experiences.",
    CEFRLevel.B1: "Opinion and experience questions that invite reasons and examples.",
    CEFRLevel.B2: "Analytical questions weighing advantages, disadvantages and consequences.",
    CEFRLevel.C1: "Evaluative and speculative questions about broader implications and values.",
}

DIALOGUE_COMPLEXITY: Dict[CEFRLevel, str] = {
    CEFRLevel.A1: "Only the most common everyday words. Present and past simple only. Sentences of 5-8 words.",
    CEFRLevel.A2: "Familiar vocabulary, present/past simple, present continuous and future forms. Sentences of 8-12 words.",
    CEFRLevel.B1: "Some phrasal verbs and opinion phrases, present perfect and first conditional. Sentences of 10-15 words.",
    CEFRLevel.B2: "Collocations and idioms, passive voice and second/third conditionals. Sentences of 12-18 words.",
    CEFRLevel.C1: "Academic and idiomatic language, inversion, cleft sentences and hedging. Sentences of 15-20 words.",
}

GRAMMAR_POINTS: Dict[CEFRLevel, str] = {
    CEFRLevel.A1: "present simple, articles, basic prepositions",
    CEFRLevel.A2: "past simple, comparatives, modal verbs",
    CEFRLevel.B1: "present perfect, conditionals, passive voice",
    CEFRLevel.B2: "relative clauses, advanced conditionals, reported speech",
    CEFRLevel.C1: "subjunctive, cleft sentences, inversion",
}


# ============================================================================
# Context analysis
# ============================================================================


def build_title_prompt(source_text: str, lesson_type: str, level: str) -> str:
    return f"""Create a lesson title for a {level} level {lesson_type} lesson about:
{source_text[:150]}

Title (3-8 words):"""


def build_analysis_prompt(source_text: str, level: str) -> str:
    return f"""Analyse this text for a {level} level language lesson.

Return:
- key_vocabulary: 8-12 useful single words or short phrases from the text, lowercase
- main_themes: 3-5 main themes or topics, short noun phrases

TEXT:
{source_text[:1500]}"""


def build_summary_prompt(source_text: str, level: str) -> str:
    return f"""Summarize this text in 2-3 sentences for {level} level students:

{source_text[:1200]}"""


# ============================================================================
# Sections
# ============================================================================


def _themes(context: SharedContext, limit: int = 3) -> str:
    return ", ".join(context.main_themes[:limit]) or context.main_theme


def build_warmup_prompt(context: SharedContext) -> str:
    level = context.difficulty_level
    return f"""Create {QUESTION_COUNTS[SectionName.WARMUP]} warm-up questions for {level.value} level students about the general topic of "{context.main_theme}".

Requirements:
1. Do not reference specific events, people, names, dates or outcomes from any text
2. Focus on the students' personal experiences, opinions and general knowledge
3. Activate prior knowledge about the topic and build interest
4. {WARMUP_GUIDANCE[level]}

Return JSON only:
{{"questions": ["question 1", "question 2", "question 3"]}}"""


def build_vocabulary_prompt(context: SharedContext, words: Sequence[str]) -> str:
    level = context.difficulty_level
    count = EXAMPLE_COUNTS[level]
    return f"""Create vocabulary entries for {level.value} level students.

Words: {", ".join(words)}
Topic: {_themes(context, 2)}
Context: {context.source_summary[:200]}

For each word give a simple definition and {count} example sentences that use the word, relate to the topic and match {level.value} level ({EXAMPLE_GUIDELINES[level]}).

Return JSON only:
{{"items": [{{"word": "word", "meaning": "simple definition", "examples": ["sentence 1", "sentence 2"]}}]}}"""


def build_reading_prompt(context: SharedContext, vocabulary: Sequence[str]) -> str:
    return f"""Rewrite this text for {context.difficulty_level.value} level students.
Use these vocabulary words: {", ".join(vocabulary)}
Keep it 200-400 words. Return only the rewritten text.

{context.source_text[:4000]}"""


def build_comprehension_prompt(context: SharedContext, passage: str) -> str:
    count = QUESTION_COUNTS[SectionName.COMPREHENSION]
    material = passage[:1500] if passage else context.source_summary
    return f"""Create {count} {context.difficulty_level.value} level comprehension questions about this text:

{material}

Questions must be answerable from the text. Return JSON only:
{{"questions": ["question 1", "question 2", "question 3", "question 4", "question 5"]}}"""


def build_discussion_prompt(context: SharedContext) -> str:
    level = context.difficulty_level
    count = QUESTION_COUNTS[SectionName.DISCUSSION]
    return f"""Create {count} discussion questions for {level.value} level students exploring these themes: {_themes(context)}.

Context: {context.source_summary[:300]}

Requirements:
- Open-ended questions that invite extended answers, not yes/no
- {DISCUSSION_GUIDANCE[level]}
- Connect the topic to the student's own life and views

Return JSON only:
{{"questions": ["question 1", "question 2", "question 3", "question 4", "question 5"]}}"""


def build_dialogue_prompt(context: SharedContext, vocabulary: Sequence[str]) -> str:
    level = context.difficulty_level
    vocab_line = (
        f"Naturally use 3-4 of these lesson words: {', '.join(vocabulary[:5])}." if vocabulary else ""
    )
    return f"""Create a natural conversation between a Student and a Tutor about "{context.main_theme}" for {level.value} level students.

Context: {context.source_summary[:300]}

Requirements:
1. 12-16 lines, alternating Student and Tutor, Student speaks first
2. The conversation relates to the themes: {_themes(context)}
3. {vocab_line}
4. Language level: {DIALOGUE_COMPLEXITY[level]}
5. Add 3 follow-up discussion questions about the conversation

Return JSON only:
{{"lines": [{{"character": "Student", "line": "..."}}, {{"character": "Tutor", "line": "..."}}], "follow_up_questions": ["...", "...", "..."]}}"""


def build_grammar_prompt(context: SharedContext) -> str:
    level = context.difficulty_level
    return f"""Identify ONE grammar point from this text for {level.value} level.

Text: {context.source_text[:400]}

Suggested: {GRAMMAR_POINTS[level]}

Return CONCISE JSON only (brief explanations, 3 examples, 3 exercises):
{{
  "focus": "Name",
  "explanation": {{"form": "How to form (1 sentence)", "usage": "When to use (1 sentence)", "level_notes": "Level note (1 sentence)"}},
  "examples": ["example 1", "example 2", "example 3"],
  "exercises": [
    {{"prompt": "Exercise 1", "answer": "Answer 1", "explanation": "Why"}},
    {{"prompt": "Exercise 2", "answer": "Answer 2", "explanation": "Why"}},
    {{"prompt": "Exercise 3", "answer": "Answer 3", "explanation": "Why"}}
  ]
}}"""


def build_pronunciation_prompt(context: SharedContext, words: Sequence[str], twister_count: int = 2) -> str:
    level = context.difficulty_level
    return f"""Create pronunciation practice for {level.value} level students.

Words: {", ".join(words)}
Topic: {context.main_theme}

For each word give an accurate IPA transcription, 2-3 difficult sounds, 1-2 practical tips about mouth and tongue position, and a practice sentence about the topic.
Also create {twister_count} tongue twisters (6-12 words each) about the topic that practise challenging sounds (th, r, l, s, sh, ch).

Return JSON only:
{{"words": [{{"word": "...", "ipa": "/.../", "difficult_sounds": ["/θ/"], "tips": ["..."], "practice_sentence": "..."}}],
 "tongue_twisters": [{{"text": "...", "target_sounds": ["/θ/"], "difficulty": "moderate"}}]}}"""


def build_wrapup_prompt(context: SharedContext, vocabulary: Sequence[str]) -> str:
    count = QUESTION_COUNTS[SectionName.WRAPUP]
    return f"""Create {count} {context.difficulty_level.value} level wrap-up questions that help the student reflect on this lesson.

Topic: {context.main_theme}
Lesson words: {", ".join(vocabulary[:6])}

Return JSON only:
{{"questions": ["question 1", "question 2", "question 3"]}}"""
