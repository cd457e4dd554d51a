"""Unit tests for section validators."""

import pytest

from linguaspark.models.lesson import (
    DialogueLine,
    DialogueSection,
    GrammarExercise,
    GrammarExplanation,
    GrammarSection,
    MultiWordPronunciation,
    PronunciationSection,
    PronunciationWord,
    ReadingSection,
    SectionName,
    SingleWordPronunciation,
    TongueTwister,
    VocabularyItem,
    VocabularySection,
    WarmupSection,
    WrapupSection,
)
from linguaspark.validators.section_validators import (
    SECTION_MINIMUMS,
    ValidationResult,
    validate_section,
)


class TestValidationResult:
    def test_states(self):
        """Test empty, below-minimum and valid states."""
        assert ValidationResult(section=SectionName.WARMUP, count=0, minimum=3).is_empty
        below = ValidationResult(section=SectionName.WARMUP, count=2, minimum=3)
        assert below.below_minimum and not below.is_valid
        assert ValidationResult(section=SectionName.WARMUP, count=3, minimum=3).is_valid

    def test_score_penalties(self):
        """Test that issues cost more than warnings and the score is clamped."""
        result = ValidationResult(section=SectionName.WARMUP, issues=["a"], warnings=["b", "c"])
        assert result.score == 70
        assert ValidationResult(section=SectionName.WARMUP, issues=["x"] * 10).score == 0


class TestQuestionValidation:
    def test_valid_questions(self):
        """Test a complete warm-up."""
        section = WarmupSection(questions=["How do you travel to work?", "Do you like cycling?", "Is traffic bad?"])
        result = validate_section(section)
        assert result.is_valid
        assert result.warnings == []

    def test_short_items_not_counted(self):
        """Test that items under ten characters are not usable questions."""
        result = validate_section(WrapupSection(questions=["Why?", "What now?", "What did you learn today?"]))
        assert result.count == 1
        assert result.issues == ["Insufficient questions: expected at least 3, got 1"]

    def test_warnings_for_statements_and_duplicates(self):
        """Test warnings for missing question marks and repeated questions."""
        section = WarmupSection(
            questions=["Tell me about your city.", "What do you like?", "what do you like?"]
        )
        result = validate_section(section)
        assert result.is_valid
        assert len(result.warnings) == 2


class TestVocabularyValidation:
    def test_missing_parts_are_warnings(self):
        """Test that missing meanings or examples do not invalidate the section."""
        items = [VocabularyItem(word=f"word{i}", meaning="m", examples=[f"I use word{i}."]) for i in range(4)]
        items.append(VocabularyItem(word="helmet"))
        result = validate_section(VocabularySection(items=items))

        assert result.is_valid
        assert any("Missing meaning for: helmet" in w for w in result.warnings)
        assert any("No examples for: helmet" in w for w in result.warnings)

    def test_examples_must_use_the_word(self):
        """Test the warning for examples that never mention the word."""
        items = [VocabularyItem(word="commute", meaning="m", examples=["I ride a bike."])] * 5
        result = validate_section(VocabularySection(items=items))
        assert any("do not use the word" in w for w in result.warnings)


class TestReadingValidation:
    @pytest.mark.parametrize(
        "words,valid,warned",
        [(300, True, False), (120, True, True), (30, False, True), (0, False, False)],
    )
    def test_word_counts(self, words, valid, warned):
        """Test the minimum and the 200-400 word target."""
        result = validate_section(ReadingSection(passage=" ".join(["word"] * words)))
        assert result.is_valid is valid
        assert bool(result.warnings) is warned


class TestDialogueValidation:
    def make_dialogue(self, n, speakers=("Student", "Tutor"), **kwargs):
        lines = [DialogueLine(character=speakers[i % len(speakers)], line=f"Line {i}.") for i in range(n)]
        return DialogueSection(lines=lines, **kwargs)

    def test_valid_dialogue(self):
        """Test a dialogue inside the 12-16 line target."""
        result = validate_section(self.make_dialogue(14))
        assert result.is_valid
        assert result.warnings == []

    def test_outside_target_range_warns(self):
        """Test the target range warning for an acceptable dialogue."""
        result = validate_section(self.make_dialogue(10))
        assert result.is_valid
        assert result.warnings == ["Dialogue has 10 lines (target 12-16)"]

    def test_single_speaker_is_an_issue(self):
        """Test that one speaker invalidates the dialogue."""
        result = validate_section(self.make_dialogue(12, speakers=("Tutor",)))
        assert "Dialogue needs at least two speakers" in result.issues

    def test_answer_bank_must_match_gaps(self):
        """Test the gap and answer count check."""
        section = self.make_dialogue(
            12,
            gapped_lines=[DialogueLine(character="Student", line="I _____ by bike.")],
            answers=["commute", "helmet"],
        )
        result = validate_section(section)
        assert "Answer bank does not match the number of gaps" in result.issues


class TestGrammarValidation:
    def make_grammar(self, examples=3, exercises=3, focus="Present perfect"):
        return GrammarSection(
            focus=focus,
            explanation=GrammarExplanation(form="have + participle", usage="past to now"),
            examples=[f"Example {i}." for i in range(examples)],
            exercises=[GrammarExercise(prompt=f"Q{i}", answer="A") for i in range(exercises)],
        )

    def test_valid_grammar(self):
        """Test a complete grammar section."""
        assert validate_section(self.make_grammar()).is_valid

    def test_shorter_list_decides_count(self):
        """Test that the count is the smaller of examples and exercises."""
        result = validate_section(self.make_grammar(examples=5, exercises=2))
        assert result.count == 2
        assert not result.is_valid

    def test_lone_list_is_partial_content(self):
        """Test that examples without exercises are not empty."""
        result = validate_section(self.make_grammar(examples=3, exercises=0))
        assert not result.is_empty

    def test_missing_focus(self):
        """Test that a grammar section needs a focus."""
        result = validate_section(self.make_grammar(focus=" "))
        assert "Missing grammar focus" in result.issues


class TestPronunciationValidation:
    def test_multi_word(self):
        """Test a complete multi-word section."""
        words = [PronunciationWord(word=w, ipa="/x/") for w in ["a1", "b2", "c3", "d4", "e5"]]
        twisters = [TongueTwister(text="one"), TongueTwister(text="two")]
        section = PronunciationSection(payload=MultiWordPronunciation(words=words, tongue_twisters=twisters))

        result = validate_section(section)
        assert result.is_valid
        assert result.warnings == []

    def test_missing_twisters_only_warn(self):
        """Test that tongue twisters are optional."""
        words = [PronunciationWord(word=w, ipa="/x/") for w in ["a1", "b2", "c3", "d4", "e5"]]
        result = validate_section(PronunciationSection(payload=MultiWordPronunciation(words=words)))
        assert result.is_valid
        assert result.warnings == ["No tongue twisters"]

    def test_legacy_single_word_counts_one(self):
        """Test that the legacy shape counts as one target word."""
        section = PronunciationSection(payload=SingleWordPronunciation(word="through", ipa="/θruː/"))
        result = validate_section(section)
        assert result.count == 1
        assert result.below_minimum


def test_minimums_cover_every_section():
    """Test that every section has a minimum."""
    assert set(SECTION_MINIMUMS) == set(SectionName)
