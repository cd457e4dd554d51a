"""
Lesson generation.

- context_builder.py: one-time source analysis into a SharedContext
- sections/: per-section generators and their state machine
- progress.py: active-section plans, weighted progress and callback dispatch
- quality.py: per-section quality metrics
- orchestrator.py: LessonGenerator, generate_lesson and the event stream
"""

__all__ = [
    "context_builder",
    "sections",
    "progress",
    "quality",
    "orchestrator",
]
