"""Unit tests for the lesson generation CLI."""

import json
from unittest.mock import MagicMock, patch

import pytest

from linguaspark.cli.generate_lesson import build_config, main, parse_args
from linguaspark.models.events import CompleteEvent, ErrorEvent, ProgressEvent
from linguaspark.models.lesson import GeneratedLesson, WarmupSection
from linguaspark.resilience.errors import ContextBuildFailure

MODULE = "linguaspark.cli.generate_lesson"

USAGE = {
    "model": "fake-model",
    "calls": 9,
    "failed_calls": 0,
    "prompt_tokens": 10,
    "completion_tokens": 20,
    "total_tokens": 30,
    "cached_tokens": 0,
    "estimated_cost_usd": 0.0001,
}


@pytest.fixture
def source_file(tmp_path):
    path = tmp_path / "article.txt"
    path.write_text("People in the city ride bikes to work every day.", encoding="utf-8")
    return path


@pytest.fixture
def lesson():
    return GeneratedLesson(
        lesson_title="City Cycling",
        lesson_type="discussion",
        student_level="B1",
        target_language="english",
        sections=[WarmupSection(questions=["How do you get to work?"])],
    )


@pytest.fixture
def mock_generator(lesson):
    with patch(f"{MODULE}.LessonGenerator") as mock_cls:
        generator = mock_cls.return_value
        generator.generate.return_value = lesson
        generator.default_client.return_value.get_usage_summary.return_value = USAGE
        yield generator


@pytest.fixture(autouse=True)
def quiet_setup():
    with patch(f"{MODULE}.configure_logging"), patch(f"{MODULE}.load_dotenv"):
        yield


def base_args(source_file):
    return ["--input", str(source_file), "--lesson-type", "discussion", "--level", "B1"]


class TestArgs:
    def test_build_config(self, source_file):
        """Test that flags map onto config overrides."""
        args = parse_args(base_args(source_file) + ["--parallel", "--notify-degraded"])
        config = build_config(args)

        assert config.scheduling == "parallel"
        assert config.degradation_policy == "notify_user"

    def test_invalid_level_rejected(self, source_file):
        """Test argparse choices for the level."""
        with pytest.raises(SystemExit):
            parse_args(["--input", str(source_file), "--lesson-type", "discussion", "--level", "C2"])


class TestMain:
    def test_writes_lesson_json(self, tmp_path, source_file, mock_generator):
        """Test generating a lesson into an output file."""
        output = tmp_path / "out" / "lesson.json"
        main(base_args(source_file) + ["--output", str(output)])

        data = json.loads(output.read_text(encoding="utf-8"))
        assert data["lesson_title"] == "City Cycling"

        request = mock_generator.generate.call_args.args[0]
        assert request.lesson_type.value == "discussion"
        assert request.source_text.startswith("People in the city")

    def test_save_dir(self, tmp_path, source_file, mock_generator):
        """Test storing the lesson in a repository directory."""
        store = tmp_path / "store"
        main(base_args(source_file) + ["--output", str(tmp_path / "l.json"), "--save-dir", str(store)])
        assert len(list(store.glob("*.json"))) == 1

    def test_missing_input(self, tmp_path, mock_generator):
        """Test exit status for a missing input file."""
        with pytest.raises(SystemExit) as exc:
            main(base_args(tmp_path / "missing.txt"))
        assert exc.value.code == 1
        mock_generator.generate.assert_not_called()

    def test_context_failure_exits(self, source_file, mock_generator):
        """Test exit status when the source is unusable."""
        mock_generator.generate.side_effect = ContextBuildFailure("too short", word_count=3)
        with pytest.raises(SystemExit) as exc:
            main(base_args(source_file))
        assert exc.value.code == 1

    def test_sse_mode(self, source_file, mock_generator, lesson, capsys):
        """Test that --sse writes one frame per event."""
        events = [ProgressEvent(step="Analyzing content...", phase="context", progress=0), CompleteEvent(lesson=lesson)]
        with patch(f"{MODULE}.stream_lesson_events", return_value=iter(events)):
            with pytest.raises(SystemExit) as exc:
                main(base_args(source_file) + ["--sse"])

        assert exc.value.code == 0
        frames = capsys.readouterr().out.split("\n\n")
        assert frames[0].startswith('data: {"type":"progress"')
        assert frames[1].startswith('data: {"type":"complete"')

    def test_sse_error_exit_code(self, source_file, mock_generator):
        """Test that a terminal error event gives a failing exit status."""
        events = [ErrorEvent(error_type="CONTENT_ISSUE", message="Too short")]
        with patch(f"{MODULE}.stream_lesson_events", return_value=iter(events)):
            with pytest.raises(SystemExit) as exc:
                main(base_args(source_file) + ["--sse"])
        assert exc.value.code == 1

    def test_progress_callback_drives_bar(self, tmp_path, source_file, mock_generator, lesson):
        """Test that progress updates are passed through to the bar callback."""
        updates = []

        def fake_generate(request, on_progress=None):
            updates.append(on_progress)
            on_progress(MagicMock(progress=50, section=None, phase="sections"))
            return lesson

        mock_generator.generate.side_effect = fake_generate
        main(base_args(source_file) + ["--output", str(tmp_path / "l.json")])

        assert len(updates) == 1 and callable(updates[0])
