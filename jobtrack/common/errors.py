"""
Error types and handling helpers for structured model output.

Failures inside the extraction pipeline are raised as StructuredOutputError
subclasses carrying a bounded preview of the offending text. Transport errors
from the model client are never wrapped, so callers can tell "model
unreachable" apart from "model replied with garbage".

Caller services that prefer a degraded answer over an error use the
ai_operation decorator, which logs the failure and returns a fallback.
"""

import logging
from functools import wraps
from typing import Awaitable, Callable, List, Optional, TypeVar

T = TypeVar("T")

# Upper bound on text carried by an error
PREVIEW_LIMIT = 2000


def preview(text: Optional[str], limit: int = PREVIEW_LIMIT) -> str:
    """Return at most `limit` characters of text ("" for None)."""
    if not text:
        return ""
    return text[:limit]


class StructuredOutputError(Exception):
    """
    Base class for extraction failures.

    Attributes:
        preview: At most PREVIEW_LIMIT characters of the text being parsed
    """

    def __init__(self, message: str, text: Optional[str] = None):
        super().__init__(message)
        self.preview = preview(text)


class EmptyResponseError(StructuredOutputError):
    """The model returned nothing to work with."""


class NoJsonFoundError(StructuredOutputError):
    """The cleaned text contains no '{' or '[' at all."""


class JsonExtractionFailedError(StructuredOutputError):
    """A structure start was found but no parse strategy succeeded."""


class SchemaValidationError(StructuredOutputError):
    """
    Parsed JSON did not match the caller's expected shape.

    Attributes:
        errors: pydantic error dicts describing each mismatch
    """

    def __init__(self, message: str, text: Optional[str] = None, errors: Optional[List[dict]] = None):
        super().__init__(message, text)
        self.errors = errors or []


def ai_operation(
    operation_name: str,
    fallback: Callable[..., T],
    service: str = "unknown",
    log_success: bool = True,
):
    """
    Decorator for async AI operations that degrade to a fallback value.

    Provides:
    - INFO logging on success (if log_success=True)
    - WARNING logging on failure, with exception type and message
    - Fallback computed from the same arguments the operation received

    Args:
        operation_name: Human-readable operation name (e.g., "STAR validation")
        fallback: Called with the operation's (*args, **kwargs) on failure
        service: Service identifier used as a log prefix
        log_success: If True, logs successful completion at INFO level

    Usage:
        @ai_operation("STAR validation", fallback=lambda self, response: {...})
        async def validate_star_method(self, response: str) -> dict:
            ...
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            logger = logging.getLogger(func.__module__)
            try:
                result = await func(*args, **kwargs)
                if log_success:
                    logger.info(f"[{service}] [{operation_name}] Completed successfully")
                return result
            except Exception as e:
                logger.warning(
                    f"[{service}] [{operation_name}] Failed, using fallback: "
                    f"{type(e).__name__}: {e}"
                )
                return fallback(*args, **kwargs)

        return wrapper

    return decorator

