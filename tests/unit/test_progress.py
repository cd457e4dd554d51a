"""Unit tests for weighted progress tracking and callback dispatch."""

import threading
import time

import pytest

from linguaspark.generators.progress import (
    BASE_SECTIONS,
    DEFAULT_PHASE_WEIGHTS,
    ProgressDispatcher,
    ProgressTracker,
    calculate_progress,
    get_active_sections,
)
from linguaspark.models.lesson import LessonType, ProgressUpdate, SectionName


class TestActiveSections:
    def test_discussion_lesson(self):
        """Test that discussion lessons add the discussion section before wrap-up."""
        assert get_active_sections(LessonType.DISCUSSION) == [
            SectionName.WARMUP,
            SectionName.VOCABULARY,
            SectionName.READING,
            SectionName.COMPREHENSION,
            SectionName.DISCUSSION,
            SectionName.WRAPUP,
        ]

    @pytest.mark.parametrize(
        "lesson_type,extra",
        [
            ("grammar", SectionName.GRAMMAR),
            ("pronunciation", SectionName.PRONUNCIATION),
            ("travel", SectionName.DIALOGUE),
            ("business", SectionName.DIALOGUE),
        ],
    )
    def test_type_additions(self, lesson_type, extra):
        """Test each lesson type's additional section."""
        active = get_active_sections(lesson_type)
        assert extra in active
        assert len(active) == len(BASE_SECTIONS) + 1
        assert active[-1] == SectionName.WRAPUP

    def test_unknown_type_uses_base_set(self):
        """Test that an unknown lesson type falls back to the base sections."""
        assert set(get_active_sections("poetry")) == set(BASE_SECTIONS)


class TestCalculateProgress:
    @pytest.mark.parametrize("lesson_type", list(LessonType))
    def test_every_type_reaches_100(self, lesson_type):
        """Test positive weight sums and 100% once every active section is done."""
        active = get_active_sections(lesson_type)
        assert sum(DEFAULT_PHASE_WEIGHTS[s] for s in active) > 0
        assert calculate_progress(active, None, lesson_type) == 100

    def test_discussion_progress_curve(self):
        """Test the weighted curve for a discussion lesson (total weight 70)."""
        completed = []
        assert calculate_progress(completed, "warmup", "discussion") == 0
        completed.append("warmup")
        assert calculate_progress(completed, "vocabulary", "discussion") == 14
        completed.append("vocabulary")
        assert calculate_progress(completed, "reading", "discussion") == 36
        completed.append("reading")
        assert calculate_progress(completed, "comprehension", "discussion") == 64

    def test_duplicates_do_not_change_progress(self):
        """Test that repeated completed entries are deduplicated."""
        once = calculate_progress(["warmup", "vocabulary"], None, "discussion")
        twice = calculate_progress(["warmup", "warmup", "vocabulary", "vocabulary"], None, "discussion")
        assert once == twice

    def test_wrap_up_aliases(self):
        """Test that wrap-up spellings are treated as one section."""
        base = ["warmup", "vocabulary", "reading", "comprehension"]
        for alias in ("wrapup", "wrap-up", "wrap_up"):
            assert calculate_progress(base + [alias], None, "poetry") == 100

    def test_inactive_sections_ignored(self):
        """Test that completed sections outside the active set add nothing."""
        assert calculate_progress(["grammar", "dialogue"], None, "discussion") == 0

    def test_unknown_section_names_ignored(self):
        """Test that unrecognised names are ignored."""
        assert calculate_progress(["complete", "warmup"], None, "discussion") == 14

    def test_zero_total_weight_gives_zero(self):
        """Test the zero-division guard."""
        weights = {name: 0 for name in SectionName}
        assert calculate_progress(["warmup"], None, "discussion", weights) == 0

    def test_custom_weights(self):
        """Test proportional progress with custom weights."""
        weights = {**DEFAULT_PHASE_WEIGHTS, SectionName.READING: 50}
        progress = calculate_progress(["warmup", "vocabulary", "reading"], None, "discussion", weights)
        assert progress == round(100 * 75 / 100)


class TestProgressTracker:
    def test_progress_never_decreases(self):
        """Test that reported percentages are non-decreasing across a run."""
        tracker = ProgressTracker(LessonType.GRAMMAR)
        values = [tracker.context_started().progress]
        for section in tracker.active_sections:
            values.append(tracker.section_started(section).progress)
            values.append(tracker.section_completed(section).progress)
        values.append(tracker.finalizing().progress)

        assert values == sorted(values)
        assert values[-1] == 100

    def test_repeated_completion_is_idempotent(self):
        """Test that completing a section twice does not move progress."""
        tracker = ProgressTracker(LessonType.DISCUSSION)
        first = tracker.section_completed(SectionName.WARMUP).progress
        second = tracker.section_completed(SectionName.WARMUP).progress
        assert first == second == 14
        assert tracker.completed == [SectionName.WARMUP]

    def test_section_started_names_section(self):
        """Test that section start updates carry the section and a step message."""
        update = ProgressTracker(LessonType.TRAVEL).section_started(SectionName.DIALOGUE)
        assert update.section == SectionName.DIALOGUE
        assert update.phase == "sections"
        assert "dialogue" in update.step.lower()


class TestProgressDispatcher:
    def make_update(self, progress):
        return ProgressUpdate(step="step", phase="sections", progress=progress)

    def test_delivers_updates_in_order(self):
        """Test ordered delivery on the background thread."""
        received = []
        dispatcher = ProgressDispatcher(received.append)
        for value in (0, 14, 36):
            dispatcher.publish(self.make_update(value))
        dispatcher.close()

        assert [u.progress for u in received] == [0, 14, 36]

    def test_callback_exception_is_swallowed(self, caplog):
        """Test that a raising callback is logged and never propagates."""
        received = []

        def callback(update):
            received.append(update)
            raise RuntimeError("UI went away")

        dispatcher = ProgressDispatcher(callback)
        dispatcher.publish(self.make_update(10))
        dispatcher.publish(self.make_update(20))
        dispatcher.close()

        assert len(received) == 2
        assert dispatcher.failures == 2
        assert "Progress callback raised" in caplog.text

    def test_slow_callback_does_not_block_publish(self):
        """Test that publish returns without waiting for the callback."""
        release = threading.Event()

        def callback(update):
            release.wait(2)

        dispatcher = ProgressDispatcher(callback, flush_timeout=2)
        start = time.monotonic()
        for value in range(5):
            dispatcher.publish(self.make_update(value))
        elapsed = time.monotonic() - start
        release.set()
        dispatcher.close()

        assert elapsed < 0.5

    def test_close_is_bounded(self):
        """Test that close gives up after the flush timeout."""
        release = threading.Event()
        dispatcher = ProgressDispatcher(lambda update: release.wait(5), flush_timeout=0.1)
        dispatcher.publish(self.make_update(1))

        start = time.monotonic()
        dispatcher.close()
        assert time.monotonic() - start < 2
        release.set()

    def test_no_callback_is_a_no_op(self):
        """Test that a dispatcher without a callback starts no thread."""
        dispatcher = ProgressDispatcher(None)
        dispatcher.publish(self.make_update(50))
        dispatcher.close()
        assert dispatcher.failures == 0
