"""
LinguaSpark Lesson Generator

Turns raw source text into a structured, multi-section language lesson by
orchestrating sequential (or parallel) calls to an external generative model,
tracking weighted progress and surviving truncated or malformed output.

**Version**: 0.1.0
**Python**: >=3.11
**Key Dependencies**: openai, instructor, pydantic, langfuse
"""

__version__ = "0.1.0"
__author__ = "LinguaSpark"

SUPPORTED_LESSON_TYPES = ["discussion", "grammar", "travel", "business", "pronunciation"]
SUPPORTED_LEVELS = ["A1", "A2", "B1", "B2", "C1"]


def generate_lesson(*args, **kwargs):
    """Generate a lesson. See linguaspark.generators.orchestrator.generate_lesson."""
    from linguaspark.generators.orchestrator import generate_lesson as _generate_lesson

    return _generate_lesson(*args, **kwargs)


__all__ = [
    "__version__",
    "__author__",
    "SUPPORTED_LESSON_TYPES",
    "SUPPORTED_LEVELS",
    "generate_lesson",
]
