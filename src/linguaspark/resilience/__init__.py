"""
Resilience and repair layer.

- errors.py: exception hierarchy (only ContextBuildFailure is fatal)
- classifier.py: maps failures and responses onto ErrorKind
- json_repair.py: table-driven repair of truncated or malformed JSON
- extraction.py: pattern extraction from non-JSON text
- templates.py: deterministic per-section fallbacks
"""

__all__ = [
    "errors",
    "classifier",
    "json_repair",
    "extraction",
    "templates",
]
