"""Decorator utilities for cross-cutting concerns."""
import time
import logging
import functools
from typing import Any, Callable, TypeVar, cast

# Setup logging
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])

def log_remote_call(func: F) -> F:
    """Decorator logging how long an Autonomi API call took.

    Failures are logged with their exception type and re-raised unchanged;
    the decorator never retries.

    Args:
        func: The bridge method to decorate

    Returns:
        Decorated method
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        start_time = time.monotonic()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            duration = time.monotonic() - start_time
            logger.error(f"{func.__name__} failed after {duration:.2f}s: {type(e).__name__}: {e}")
            raise
        duration = time.monotonic() - start_time
        logger.info(f"{func.__name__} completed in {duration:.2f}s")
        return result
    return cast(F, wrapper)
