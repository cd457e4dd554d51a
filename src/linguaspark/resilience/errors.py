"""Exception hierarchy for lesson generation.

Only ContextBuildFailure escapes ``generate_lesson``. Everything else is
resolved inside the section state machine or the callback dispatcher.
"""

from typing import Optional

from linguaspark.models.lesson import ErrorKind


class LessonGenerationError(Exception):
    """Base class for lesson generation errors."""


class ContextBuildFailure(LessonGenerationError):
    """Source material is unusable even for the heuristic extractor. Fatal."""

    def __init__(self, message: str, word_count: int = 0):
        super().__init__(message)
        self.word_count = word_count


class LLMCallError(LessonGenerationError):
    """A remote generation call failed after its bounded retry."""

    kind: ErrorKind = ErrorKind.UPSTREAM_FAILURE

    def __init__(self, message: str, kind: Optional[ErrorKind] = None, partial_text: str = ""):
        super().__init__(message)
        if kind is not None:
            self.kind = kind
        self.partial_text = partial_text


class UpstreamTimeout(LLMCallError):
    """The remote call exceeded its per-call timeout.

    Recorded as EMPTY_OUTPUT, the same as a section that misses its deadline;
    the message keeps the timeout wording.
    """

    kind = ErrorKind.EMPTY_OUTPUT


class EmptyResponseError(LLMCallError):
    """The remote call returned no usable text."""

    kind = ErrorKind.EMPTY_OUTPUT


class CallbackFailure(LessonGenerationError):
    """The caller's progress callback raised. Logged, never propagated."""
