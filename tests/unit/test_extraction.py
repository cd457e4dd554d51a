"""Unit tests for pattern extraction from non-JSON model output."""

from linguaspark.resilience.extraction import (
    extract_dialogue_lines,
    extract_labeled_blocks,
    extract_list_items,
    extract_pronunciation_words,
    extract_questions,
    extract_tongue_twisters,
    extract_vocabulary_items,
    strip_numbering,
)


class TestLists:
    def test_strip_numbering(self):
        """Test removal of common list markers."""
        assert strip_numbering("1. First item") == "First item"
        assert strip_numbering("(2) Second item") == "Second item"
        assert strip_numbering("- Third item") == "Third item"
        assert strip_numbering('* "Quoted item"') == "Quoted item"
        assert strip_numbering("b) Fourth item") == "Fourth item"

    def test_list_items_skip_blank_lines(self):
        """Test that blank and too-short lines are dropped."""
        assert extract_list_items("1. one\n\n2. two\n3.", min_length=2) == ["one", "two"]

    def test_questions_only(self):
        """Test that only question lines are returned, without duplicates."""
        text = (
            "Here are your questions:\n"
            "1. What is the main idea of the article?\n"
            "2. Who built the new lanes?\n"
            "2. Who built the new lanes?\n"
            "Note: discuss with your tutor.\n"
            "3. Why?"
        )
        assert extract_questions(text) == [
            "What is the main idea of the article?",
            "Who built the new lanes?",
        ]


class TestDialogue:
    def test_name_colon_lines(self):
        """Test ``Name: line`` parsing with markdown and numbering."""
        text = (
            "**Student**: Hi! I started cycling to work.\n"
            "Tutor: That's great. How far is it?\n"
            "3. Student: About five kilometres.\n"
            "Note: keep it short.\n"
            "This line has no speaker."
        )
        lines = extract_dialogue_lines(text)

        assert [(l.character, l.line) for l in lines] == [
            ("Student", "Hi! I started cycling to work."),
            ("Tutor", "That's great. How far is it?"),
            ("Student", "About five kilometres."),
        ]

    def test_empty_text(self):
        """Test that missing text yields no lines."""
        assert extract_dialogue_lines("") == []
        assert extract_dialogue_lines(None) == []


class TestVocabulary:
    def test_word_meaning_lines(self):
        """Test dash, colon and part-of-speech forms."""
        text = (
            "1. commute - to travel regularly to work\n"
            "2. **helmet**: a hard hat\n"
            "3. subsidy (n.) money paid to reduce costs\n"
            "4. helmet - duplicate entry\n"
            "Some text that is not a definition"
        )
        items = extract_vocabulary_items(text)

        assert [i.word for i in items] == ["commute", "helmet", "subsidy"]
        assert items[0].meaning == "to travel regularly to work"
        assert items[2].meaning == "money paid to reduce costs"


class TestLabelledBlocks:
    def test_blocks_split_on_repeated_labels(self):
        """Test that a repeated label starts a new block."""
        text = "WORD: through\nIPA: /θruː/\nWORD: world\nIPA: /wɜːld/"
        assert extract_labeled_blocks(text) == [
            {"WORD": "through", "IPA": "/θruː/"},
            {"WORD": "world", "IPA": "/wɜːld/"},
        ]

    def test_numbered_tips_are_merged(self):
        """Test that ``TIP_n`` lines are collected into one block value."""
        text = "WORD: thought\nTIP_1: Tongue between teeth.\nTIP_2: Keep it short.\nPRACTICE: I thought so."
        words = extract_pronunciation_words(text)

        assert len(words) == 1
        assert words[0].tips == ["Tongue between teeth.", "Keep it short."]
        assert words[0].practice_sentence == "I thought so."

    def test_numbered_twisters(self):
        """Test that each ``TWISTER_n`` starts its own block."""
        text = (
            "TWISTER_1: Three thin thinkers thought.\nSOUNDS_1: /θ/\nDIFFICULTY_1: hard\n"
            "TWISTER_2: She sells sea shells.\nSOUNDS_2: /s/, /ʃ/"
        )
        twisters = extract_tongue_twisters(text)

        assert [t.text for t in twisters] == ["Three thin thinkers thought.", "She sells sea shells."]
        assert twisters[0].difficulty == "hard"
        assert twisters[1].target_sounds == ["/s/", "/ʃ/"]
        assert twisters[1].difficulty == "moderate"

    def test_no_labels(self):
        """Test plain prose without labels."""
        assert extract_pronunciation_words("Practise these words slowly.") == []
