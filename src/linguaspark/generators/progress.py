"""Weighted progress tracking for lesson generation.

Progress is the share of active-section weight completed so far. Each lesson
type activates the base sections plus its own additions; weights only affect
the percentage, never the content.
"""

import logging
import queue
import threading
from typing import Callable, Dict, Iterable, List, Mapping, Optional, Union

from linguaspark.models.lesson import LessonType, ProgressUpdate, SectionName
from linguaspark.resilience.errors import CallbackFailure

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ProgressUpdate], None]

DEFAULT_PHASE_WEIGHTS: Dict[SectionName, int] = {
    SectionName.WARMUP: 10,
    SectionName.VOCABULARY: 15,
    SectionName.READING: 20,
    SectionName.COMPREHENSION: 10,
    SectionName.DISCUSSION: 10,
    SectionName.DIALOGUE: 15,
    SectionName.GRAMMAR: 15,
    SectionName.PRONUNCIATION: 15,
    SectionName.WRAPUP: 5,
}

BASE_SECTIONS = (
    SectionName.WARMUP,
    SectionName.VOCABULARY,
    SectionName.READING,
    SectionName.COMPREHENSION,
    SectionName.WRAPUP,
)

LESSON_TYPE_ADDITIONS: Dict[LessonType, tuple] = {
    LessonType.DISCUSSION: (SectionName.DISCUSSION,),
    LessonType.GRAMMAR: (SectionName.GRAMMAR,),
    LessonType.PRONUNCIATION: (SectionName.PRONUNCIATION,),
    LessonType.TRAVEL: (SectionName.DIALOGUE,),
    LessonType.BUSINESS: (SectionName.DIALOGUE,),
}

# Lesson order; wrap-up always closes the lesson
SECTION_ORDER = (
    SectionName.WARMUP,
    SectionName.VOCABULARY,
    SectionName.READING,
    SectionName.COMPREHENSION,
    SectionName.DISCUSSION,
    SectionName.DIALOGUE,
    SectionName.GRAMMAR,
    SectionName.PRONUNCIATION,
    SectionName.WRAPUP,
)

STEP_MESSAGES: Dict[SectionName, str] = {
    SectionName.WARMUP: "Creating warm-up questions...",
    SectionName.VOCABULARY: "Extracting key vocabulary...",
    SectionName.READING: "Preparing reading passage...",
    SectionName.COMPREHENSION: "Creating comprehension questions...",
    SectionName.DISCUSSION: "Creating discussion questions...",
    SectionName.DIALOGUE: "Creating dialogue practice...",
    SectionName.GRAMMAR: "Analyzing grammar patterns...",
    SectionName.PRONUNCIATION: "Identifying pronunciation challenges...",
    SectionName.WRAPUP: "Creating wrap-up activities...",
}

PHASE_CONTEXT = "context"
PHASE_SECTIONS = "sections"
PHASE_FINALIZATION = "finalization"


def _lesson_type(lesson_type: Union[str, LessonType]) -> Optional[LessonType]:
    if isinstance(lesson_type, LessonType):
        return lesson_type
    try:
        return LessonType(str(lesson_type).strip().lower())
    except ValueError:
        return None


def _section(name: Union[str, SectionName]) -> Optional[SectionName]:
    try:
        return SectionName.normalize(name)
    except ValueError:
        return None


def get_active_sections(lesson_type: Union[str, LessonType]) -> List[SectionName]:
    """Sections generated for ``lesson_type``, in lesson order.

    Unknown lesson types get the base set.
    """
    active = set(BASE_SECTIONS)
    resolved = _lesson_type(lesson_type)
    if resolved is not None:
        active.update(LESSON_TYPE_ADDITIONS.get(resolved, ()))
    return [name for name in SECTION_ORDER if name in active]


def calculate_progress(
    completed_sections: Iterable[Union[str, SectionName]],
    current_section: Optional[Union[str, SectionName]],
    lesson_type: Union[str, LessonType],
    weights: Optional[Mapping[SectionName, int]] = None,
) -> int:
    """Percent of active-section weight completed, as an int in [0, 100].

    ``current_section`` names the section about to run and does not count
    toward the total. Completed entries are deduplicated and entries outside
    the active set are ignored.
    """
    weights = weights if weights is not None else DEFAULT_PHASE_WEIGHTS
    active = get_active_sections(lesson_type)
    total = sum(weights.get(name, 0) for name in active)
    if total <= 0:
        return 0

    completed = {_section(name) for name in completed_sections}
    completed_weight = sum(weights.get(name, 0) for name in active if name in completed)
    percent = round(100 * completed_weight / total)
    return max(0, min(100, percent))


class ProgressTracker:
    """Per-run progress state. Reported percentages never decrease."""

    def __init__(
        self,
        lesson_type: Union[str, LessonType],
        weights: Optional[Mapping[SectionName, int]] = None,
    ):
        self.lesson_type = lesson_type
        self.weights = dict(weights) if weights is not None else dict(DEFAULT_PHASE_WEIGHTS)
        self.active_sections = get_active_sections(lesson_type)
        self.completed: List[SectionName] = []
        self._last_percent = 0
        self._lock = threading.Lock()

    @property
    def percent(self) -> int:
        return self._last_percent

    def _update(self, current: Optional[SectionName]) -> int:
        computed = calculate_progress(self.completed, current, self.lesson_type, self.weights)
        self._last_percent = max(self._last_percent, computed)
        return self._last_percent

    def context_started(self) -> ProgressUpdate:
        return ProgressUpdate(
            step="Analyzing content and extracting key topics...",
            phase=PHASE_CONTEXT,
            progress=self._last_percent,
        )

    def section_started(self, section: SectionName) -> ProgressUpdate:
        with self._lock:
            percent = self._update(section)
        return ProgressUpdate(step=STEP_MESSAGES[section], phase=PHASE_SECTIONS, section=section, progress=percent)

    def section_completed(self, section: SectionName) -> ProgressUpdate:
        with self._lock:
            if section not in self.completed:
                self.completed.append(section)
            percent = self._update(None)
        return ProgressUpdate(
            step=f"Completed {section.value} section",
            phase=PHASE_SECTIONS,
            section=section,
            progress=percent,
        )

    def finalizing(self) -> ProgressUpdate:
        with self._lock:
            percent = self._update(None)
        return ProgressUpdate(step="Finalizing lesson structure...", phase=PHASE_FINALIZATION, progress=percent)


class ProgressDispatcher:
    """Delivers progress updates to a caller callback on a background thread.

    ``publish`` only enqueues, so a slow callback never delays generation.
    Exceptions from the callback are logged as CallbackFailure and dropped.
    """

    _STOP = object()

    def __init__(self, callback: Optional[ProgressCallback], flush_timeout: float = 5.0):
        self.callback = callback
        self.flush_timeout = flush_timeout
        self.failures = 0
        self._queue: "queue.Queue" = queue.Queue()
        self._thread: Optional[threading.Thread] = None
        if callback is not None:
            self._thread = threading.Thread(target=self._run, name="progress-dispatcher", daemon=True)
            self._thread.start()

    def publish(self, update: ProgressUpdate) -> None:
        if self._thread is not None:
            self._queue.put(update)

    def _run(self) -> None:
        while True:
            item = self._queue.get()
            if item is self._STOP:
                return
            try:
                self.callback(item)
            except Exception as e:
                self.failures += 1
                failure = CallbackFailure(f"Progress callback raised: {e}")
                logger.warning(str(failure), exc_info=True)

    def close(self) -> None:
        """Flush pending updates, waiting at most ``flush_timeout`` seconds."""
        if self._thread is None:
            return
        self._queue.put(self._STOP)
        self._thread.join(self.flush_timeout)
        if self._thread.is_alive():
            logger.warning(f"Progress callback still running after {self.flush_timeout}s, not waiting further")
        self._thread = None

    def __enter__(self) -> "ProgressDispatcher":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
