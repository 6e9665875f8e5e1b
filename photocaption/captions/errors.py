"""
Purpose:
- Typed failures for the captioning core.
- Every error carries an ErrorKind so routers/callers branch on the kind, not on
  exception classes.
"""

from __future__ import annotations
from enum import Enum
from typing import Optional

class ErrorKind(str, Enum):
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    REMOTE_THROTTLED = "remote_throttled"
    RETRIES_EXHAUSTED = "retries_exhausted"
    NO_TAGS_DETECTED = "no_tags_detected"
    MALFORMED_RESPONSE = "malformed_response"
    ALREADY_IN_PROGRESS = "already_in_progress"
    NETWORK_OR_SERVICE = "network_or_service"

class CaptionError(Exception):
    kind: ErrorKind = ErrorKind.NETWORK_OR_SERVICE
    default_message = "Failed to generate caption"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)

class RateLimitExceeded(CaptionError):
    """Our own client-side throttle said no; the caller may try again later."""
    kind = ErrorKind.RATE_LIMIT_EXCEEDED
    default_message = "Rate limit reached. Please wait a minute before trying again"

    def __init__(self, message: Optional[str] = None, reason: str = "quota", retry_after: float = 0.0):
        super().__init__(message)
        self.reason = reason            # "spacing" | "quota"
        self.retry_after = retry_after  # seconds until the limiter would accept

class RemoteThrottled(CaptionError):
    """Provider answered 429 / throttled; retried by RetryPolicy."""
    kind = ErrorKind.REMOTE_THROTTLED
    default_message = "The captioning service is rate limiting requests"

class RetriesExhausted(CaptionError):
    kind = ErrorKind.RETRIES_EXHAUSTED
    default_message = "Max retries reached for rate limit"

    def __init__(self, message: Optional[str] = None, attempts: int = 0):
        super().__init__(message)
        self.attempts = attempts

class NoTagsDetected(CaptionError):
    kind = ErrorKind.NO_TAGS_DETECTED
    default_message = "No elements detected in the image"

class MalformedResponse(CaptionError):
    kind = ErrorKind.MALFORMED_RESPONSE
    default_message = "Invalid response format from the captioning service"

class AlreadyInProgress(CaptionError):
    kind = ErrorKind.ALREADY_IN_PROGRESS
    default_message = "A request is already in progress"

class NetworkOrServiceError(CaptionError):
    kind = ErrorKind.NETWORK_OR_SERVICE
    default_message = "The captioning service request failed"
