"""File I/O for source text and stored lessons."""

import json
import logging
import os
from pathlib import Path
from typing import Any, Union

from linguaspark.models.lesson import GeneratedLesson

logger = logging.getLogger(__name__)

PathLike = Union[str, Path]


def read_source_text(file_path: PathLike) -> str:
    """Read extracted source text as UTF-8.

    A leading byte-order mark is dropped and line endings become ``\\n`` so
    word counts and sentence splitting see the same text on every platform.

    Raises:
        FileNotFoundError: If file doesn't exist
    """
    path = Path(file_path)
    text = path.read_text(encoding="utf-8-sig")
    logger.debug(f"Read {len(text)} characters of source text from {path}")
    return text.replace("\r\n", "\n").replace("\r", "\n")


def read_json(file_path: PathLike) -> Any:
    """Parse a JSON file.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file contains invalid JSON
    """
    with open(file_path, "r", encoding="utf-8") as f:
        return json.load(f)


def write_json(data: Any, file_path: PathLike, indent: int = 2) -> None:
    """Write JSON through a sibling temp file so readers never see a partial file.

    Parent directories are created. Non-ASCII text is written as-is.
    """
    path = Path(file_path)
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(f".{path.name}.tmp")
    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=indent, ensure_ascii=False, default=str)
        os.replace(tmp_path, path)
    except BaseException:
        tmp_path.unlink(missing_ok=True)
        raise
    logger.info(f"Wrote JSON to {path}")


def save_lesson(lesson: GeneratedLesson, file_path: PathLike) -> None:
    write_json(lesson.model_dump(mode="json"), file_path)


def load_lesson(file_path: PathLike) -> GeneratedLesson:
    """Load a stored lesson, including ones saved before the pronunciation format tag."""
    return GeneratedLesson.model_validate(read_json(file_path))
