"""
Shared utilities for lesson generation.

- llm_client.py: Instructor-wrapped OpenAI client with timeout and one bounded retry
- file_io.py: source text reading and atomic lesson JSON storage
- logging_config.py: structured JSON logging and stage timing
- word_difficulty.py: pronunciation difficulty scoring
"""

__all__ = [
    "llm_client",
    "file_io",
    "logging_config",
    "word_difficulty",
]
