"""Unit tests for pronunciation difficulty scoring."""

from linguaspark.utils.word_difficulty import DEFAULT_PRACTICE_WORDS, score_word, select_challenging_words


class TestScoreWord:
    def test_hard_sounds_score_higher(self):
        """Test that difficult sound patterns raise the score."""
        assert score_word("through").score > score_word("bus").score
        assert score_word("knight").score > score_word("night").score

    def test_sounds_reported(self):
        """Test the sound labels for a word."""
        result = score_word("Thought")
        assert result.word == "Thought"
        assert "/θ/ or /ð/" in result.sounds
        assert "/ɔː/ or /ʌf/" in result.sounds

    def test_plain_word(self):
        """Test a word with no difficult patterns."""
        result = score_word("cat")
        assert result.score == 3
        assert result.sounds == []


class TestSelectChallengingWords:
    def test_ranked_hardest_first(self):
        """Test ordering by difficulty."""
        ranked = select_challenging_words(["bus", "through", "pedestrian"], 2)
        assert [r.word for r in ranked] == ["through", "pedestrian"]
        assert len(ranked) == 2

    def test_filters_and_dedupes(self):
        """Test that short words, phrases and duplicates are skipped."""
        ranked = select_challenging_words(["go", "bike lane", "Helmet", "helmet", "commute"], 5)
        words = [r.word for r in ranked]

        assert "go" not in words
        assert "bike lane" not in words
        assert [w.lower() for w in words].count("helmet") == 1

    def test_pads_from_defaults(self):
        """Test padding when the vocabulary is too small."""
        ranked = select_challenging_words(["bus"], 3)
        assert [r.word for r in ranked] == ["bus", *DEFAULT_PRACTICE_WORDS[:2]]

    def test_defaults_not_repeated(self):
        """Test that padding skips words already chosen."""
        ranked = select_challenging_words(["through"], 2)
        assert [r.word for r in ranked] == ["through", "thought"]
