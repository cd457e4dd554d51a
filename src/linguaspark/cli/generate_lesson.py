"""CLI for lesson generation.

Usage:
    linguaspark-generate \
        --input article.txt \
        --lesson-type discussion \
        --level B1 \
        --output output/lesson.json

Features:
- Sequential (default) or parallel section generation
- Progress bar with tqdm driven by weighted progress updates
- Server-sent-events output mode (--sse) for piping to a web client
- Token usage and quality summary
"""

import argparse
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv
from pydantic import ValidationError
from tqdm import tqdm

from linguaspark import SUPPORTED_LESSON_TYPES, SUPPORTED_LEVELS
from linguaspark.config import GeneratorConfig
from linguaspark.generators.orchestrator import LessonGenerator, stream_lesson_events
from linguaspark.interfaces import FileContentSource, JsonLessonRepository
from linguaspark.models.events import format_sse
from linguaspark.models.lesson import LessonRequest
from linguaspark.resilience.errors import ContextBuildFailure
from linguaspark.utils.file_io import save_lesson
from linguaspark.utils.logging_config import configure_logging

logger = logging.getLogger(__name__)


def parse_args(argv=None) -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Generate a multi-section language lesson from source text",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # B1 discussion lesson
  linguaspark-generate --input article.txt --lesson-type discussion --level B1 \\
      --output output/lesson.json

  # Business lesson with sections generated in parallel
  linguaspark-generate --input memo.txt --lesson-type business --level B2 --parallel

  # Stream progress and the result as server-sent events
  linguaspark-generate --input article.txt --lesson-type grammar --level A2 --sse
        """,
    )

    parser.add_argument(
        "--input",
        required=True,
        type=Path,
        help="Source text file (UTF-8)",
    )
    parser.add_argument(
        "--lesson-type",
        required=True,
        choices=SUPPORTED_LESSON_TYPES,
        help="Lesson type",
    )
    parser.add_argument(
        "--level",
        required=True,
        choices=SUPPORTED_LEVELS,
        help="CEFR level of the student",
    )
    parser.add_argument(
        "--language",
        default="english",
        help="Target language (default: english)",
    )
    parser.add_argument(
        "--title",
        help="Use this lesson title instead of generating one",
    )
    parser.add_argument(
        "--source-url",
        help="URL the source text was extracted from",
    )
    parser.add_argument(
        "--output",
        type=Path,
        help="Output JSON file path (default: print to stdout)",
    )
    parser.add_argument(
        "--save-dir",
        type=Path,
        help="Also store the lesson in this directory (one JSON file per lesson)",
    )
    parser.add_argument(
        "--parallel",
        action="store_true",
        help="Generate sections in parallel after the shared context is built",
    )
    parser.add_argument(
        "--sse",
        action="store_true",
        help="Write server-sent-events frames to stdout instead of a progress bar",
    )
    parser.add_argument(
        "--notify-degraded",
        action="store_true",
        help="Add a user-facing notice when sections fall back to templates",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> GeneratorConfig:
    overrides = {}
    if args.parallel:
        overrides["scheduling"] = "parallel"
    if args.notify_degraded:
        overrides["degradation_policy"] = "notify_user"
    return GeneratorConfig.from_env(**overrides)


def run_sse(request: LessonRequest, generator: LessonGenerator) -> int:
    exit_code = 0
    for event in stream_lesson_events(request, generator=generator):
        sys.stdout.write(format_sse(event))
        sys.stdout.flush()
        if event.type == "error":
            exit_code = 1
    return exit_code


def main(argv=None):
    """Main CLI entrypoint."""
    load_dotenv()
    args = parse_args(argv)

    configure_logging(level=args.log_level)

    if not args.input.exists():
        logger.error(f"Input file not found: {args.input}")
        sys.exit(1)

    content = FileContentSource(args.input, source_url=args.source_url).fetch()
    try:
        request = LessonRequest(
            source_text=content.text,
            lesson_type=args.lesson_type,
            student_level=args.level,
            target_language=args.language,
            source_url=content.source_url,
            title=args.title,
        )
    except ValidationError as e:
        logger.error(f"Invalid lesson parameters: {e}")
        sys.exit(1)

    config = build_config(args)
    generator = LessonGenerator(config=config)

    if args.sse:
        sys.exit(run_sse(request, generator))

    with tqdm(total=100, desc="Generating lesson", unit="%") as pbar:

        def on_progress(update):
            pbar.set_postfix_str(update.section.value if update.section else update.phase)
            pbar.update(max(0, update.progress - pbar.n))

        try:
            lesson = generator.generate(request, on_progress=on_progress)
        except ContextBuildFailure as e:
            logger.error(f"Cannot build a lesson from this source: {e}")
            sys.exit(1)

    if args.output:
        save_lesson(lesson, args.output)
    else:
        sys.stdout.write(lesson.model_dump_json(indent=2) + "\n")

    if args.save_dir:
        lesson_id = JsonLessonRepository(args.save_dir).save(lesson)
        logger.info(f"Stored lesson as {lesson_id}")

    logger.info("=" * 60)
    logger.info("GENERATION SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Title: {lesson.lesson_title}")
    logger.info(f"Sections: {', '.join(s.value for s in lesson.section_names)}")
    if lesson.degraded_sections:
        logger.warning(f"Degraded sections: {', '.join(d.section.value for d in lesson.degraded_sections)}")
    if lesson.quality:
        logger.info(f"Overall quality score: {lesson.quality.overall_score}/100")

    usage = generator.default_client().get_usage_summary()
    logger.info("Token Usage:")
    logger.info(f"  Model: {usage['model']}")
    logger.info(f"  LLM calls: {usage['calls']} ({usage['failed_calls']} failed)")
    logger.info(f"  Prompt tokens: {usage['prompt_tokens']:,}")
    logger.info(f"  Completion tokens: {usage['completion_tokens']:,}")
    logger.info(f"  Total tokens: {usage['total_tokens']:,}")
    logger.info(f"  Estimated cost: ${usage['estimated_cost_usd']:.4f}")
    logger.info("=" * 60)


if __name__ == "__main__":
    main()
