"""Failure classification for remote generation calls.

Maps exceptions and raw responses onto the ErrorKind taxonomy used by the
section state machine, and builds user-facing messages for the few failures
that reach a caller.
"""

import logging
from typing import Dict, Optional

from openai import APIConnectionError, APIStatusError, APITimeoutError, RateLimitError

from linguaspark.models.lesson import ErrorKind
from linguaspark.resilience.errors import ContextBuildFailure, LLMCallError

logger = logging.getLogger(__name__)

TRUNCATION_FINISH_REASONS = frozenset({"length", "max_tokens", "MAX_TOKENS"})


def classify_exception(error: BaseException) -> ErrorKind:
    """Classify an exception raised by a remote call."""
    if isinstance(error, LLMCallError):
        return error.kind
    if isinstance(error, (APITimeoutError, TimeoutError)):
        return ErrorKind.EMPTY_OUTPUT
    if isinstance(error, (APIConnectionError, APIStatusError, RateLimitError)):
        return ErrorKind.UPSTREAM_FAILURE
    if isinstance(error, ValueError):
        return ErrorKind.MALFORMED_OUTPUT
    return ErrorKind.UPSTREAM_FAILURE


def classify_response(text: Optional[str], finish_reason: Optional[str] = None) -> Optional[ErrorKind]:
    """Classify a returned response before parsing.

    Returns:
        EMPTY_OUTPUT for blank text, TRUNCATED_OUTPUT when the model stopped
        at its token ceiling, otherwise None
    """
    if text is None or not text.strip():
        return ErrorKind.EMPTY_OUTPUT
    if finish_reason in TRUNCATION_FINISH_REASONS:
        return ErrorKind.TRUNCATED_OUTPUT
    return None


# ============================================================================
# User-facing messages
# ============================================================================

USER_MESSAGES: Dict[str, Dict[str, str]] = {
    "CONTENT_ISSUE": {
        "message": "The page content could not be turned into a lesson. It may be too short or not contain readable text.",
        "action_suggestion": "Try a different page or select a longer passage of text.",
    },
    "QUOTA_EXCEEDED": {
        "message": "The AI service is temporarily over its usage limit.",
        "action_suggestion": "Wait a few minutes and try again.",
    },
    "NETWORK_ERROR": {
        "message": "The AI service could not be reached.",
        "action_suggestion": "Check your connection and try again.",
    },
    "UNKNOWN": {
        "message": "Something went wrong while generating the lesson.",
        "action_suggestion": "Try again. If the problem persists, contact support.",
    },
}


def user_error_type(error: BaseException) -> str:
    """Bucket an exception into a user-facing error category."""
    if isinstance(error, ContextBuildFailure):
        return "CONTENT_ISSUE"
    if isinstance(error, RateLimitError):
        return "QUOTA_EXCEEDED"
    if isinstance(error, (APIConnectionError, APITimeoutError, TimeoutError)):
        return "NETWORK_ERROR"
    text = str(error).lower()
    if "quota" in text or "rate limit" in text or "429" in text:
        return "QUOTA_EXCEEDED"
    return "UNKNOWN"


def user_message_for(error: BaseException) -> Dict[str, str]:
    """Return ``{error_type, message, action_suggestion}`` for an exception."""
    error_type = user_error_type(error)
    payload = USER_MESSAGES[error_type]
    return {"error_type": error_type, **payload}


__all__ = [
    "ErrorKind",
    "TRUNCATION_FINISH_REASONS",
    "USER_MESSAGES",
    "classify_exception",
    "classify_response",
    "user_error_type",
    "user_message_for",
]
