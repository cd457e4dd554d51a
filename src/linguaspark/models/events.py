"""Outbound progress stream events.

A generation stream is an ordered run of ``progress`` events terminated by
exactly one ``complete`` or ``error`` event. Each event renders as one
server-sent-events frame.
"""

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, Field

from linguaspark.models.lesson import GeneratedLesson, ProgressUpdate, SectionName


class ProgressEvent(BaseModel):
    type: Literal["progress"] = "progress"
    step: str
    phase: str
    section: Optional[SectionName] = None
    progress: int = Field(..., ge=0, le=100)

    @classmethod
    def from_update(cls, update: ProgressUpdate) -> "ProgressEvent":
        return cls(
            step=update.step,
            phase=update.phase,
            section=update.section,
            progress=update.progress,
        )


class CompleteEvent(BaseModel):
    type: Literal["complete"] = "complete"
    lesson: GeneratedLesson


class ErrorEvent(BaseModel):
    type: Literal["error"] = "error"
    error_type: str = Field(..., description="Machine-readable category, e.g. CONTENT_ISSUE")
    message: str = Field(..., description="User-facing explanation")
    action_suggestion: Optional[str] = None


LessonEvent = Annotated[
    Union[ProgressEvent, CompleteEvent, ErrorEvent],
    Field(discriminator="type"),
]


def format_sse(event: Union[ProgressEvent, CompleteEvent, ErrorEvent]) -> str:
    """Render one event as a server-sent-events ``data:`` frame."""
    return f"data: {event.model_dump_json(exclude_none=True)}\n\n"
