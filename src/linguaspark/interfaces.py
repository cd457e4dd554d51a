"""Contracts for the collaborators around lesson generation.

Content extraction, persistence and export live outside this package. They
are reached only through these protocols. ``JsonLessonRepository`` is a
small file-backed store used by the CLI.
"""

import logging
import re
import uuid
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Protocol, Union

from pydantic import BaseModel, Field

from linguaspark.models.lesson import GeneratedLesson, SectionName
from linguaspark.utils.file_io import load_lesson, read_source_text, save_lesson

logger = logging.getLogger(__name__)

# Ids handed out by JsonLessonRepository.save (uuid4 hex)
_LESSON_ID_RE = re.compile(r"[0-9a-f]{32}")


class ExtractedContent(BaseModel):
    """Source text plus metadata from the content-extraction service."""

    text: str
    title: Optional[str] = None
    source_url: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)


class ContentSource(Protocol):
    """Content-extraction contract."""

    def fetch(self) -> ExtractedContent:
        """Return the extracted source text and its metadata."""


class LessonRepository(Protocol):
    """Persistence contract. Accepts finished lessons only."""

    def save(self, lesson: GeneratedLesson) -> str:
        """Persist a lesson and return its identifier."""

    def get(self, lesson_id: str) -> Optional[GeneratedLesson]:
        """Fetch a lesson by identifier."""


class LessonExporter(Protocol):
    """Export contract: a finished lesson plus section-enablement flags."""

    def export(self, lesson: GeneratedLesson, enabled: Mapping[SectionName, bool]) -> bytes:
        """Render the enabled sections of ``lesson``."""


def enabled_sections(
    lesson: GeneratedLesson, flags: Optional[Mapping[Union[str, SectionName], bool]] = None
) -> List:
    """Sections of ``lesson`` an exporter should render, in lesson order.

    Sections missing from ``flags`` are enabled; ``None`` enables all.
    """
    if not flags:
        return list(lesson.sections)
    resolved = {SectionName.normalize(name): bool(on) for name, on in flags.items()}
    return [s for s in lesson.sections if resolved.get(SectionName(s.kind), True)]


class FileContentSource:
    """ContentSource reading a local UTF-8 text file."""

    def __init__(self, path: Union[str, Path], source_url: Optional[str] = None):
        self.path = Path(path)
        self.source_url = source_url

    def fetch(self) -> ExtractedContent:
        text = read_source_text(self.path)
        return ExtractedContent(text=text, source_url=self.source_url, metadata={"path": str(self.path)})


class JsonLessonRepository:
    """LessonRepository storing one JSON file per lesson under a directory."""

    def __init__(self, root: Union[str, Path]):
        self.root = Path(root)

    def _path(self, lesson_id: str) -> Path:
        """Raises ValueError for anything but a saved-lesson id, so ids cannot name paths."""
        if not isinstance(lesson_id, str) or not _LESSON_ID_RE.fullmatch(lesson_id):
            raise ValueError(f"Invalid lesson id: {lesson_id!r}")
        return self.root / f"{lesson_id}.json"

    def save(self, lesson: GeneratedLesson) -> str:
        lesson_id = uuid.uuid4().hex
        save_lesson(lesson, self._path(lesson_id))
        logger.info(f"Saved lesson {lesson_id}", extra={"lesson_id": lesson_id, "title": lesson.lesson_title})
        return lesson_id

    def get(self, lesson_id: str) -> Optional[GeneratedLesson]:
        path = self._path(lesson_id)
        if not path.exists():
            return None
        return load_lesson(path)

    def list_ids(self) -> List[str]:
        if not self.root.exists():
            return []
        return sorted(p.stem for p in self.root.glob("*.json"))
