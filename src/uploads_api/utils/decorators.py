"""Decorator utilities for cross-cutting concerns."""
import time
import logging
import functools
from typing import Any, Callable, Optional, TypeVar, cast

# Setup logging
logger = logging.getLogger(__name__)

F = TypeVar('F', bound=Callable[..., Any])

def log_execution_time(func: Optional[F] = None, *, logger_name: Optional[str] = None):
    """Decorator to log how long a blocking call took.
    
    Usable bare (``@log_execution_time``) or with the logger to report to
    (``@log_execution_time(logger_name=__name__)``). Failures are logged with
    their duration and re-raised unchanged.
    """
    timing_logger = logging.getLogger(logger_name) if logger_name else logger

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            try:
                result = fn(*args, **kwargs)
            except Exception as e:
                duration = time.perf_counter() - start_time
                timing_logger.error(f"{fn.__qualname__} failed after {duration:.2f}s: {e}")
                raise
            duration = time.perf_counter() - start_time
            timing_logger.info(f"{fn.__qualname__} completed in {duration:.2f}s")
            return result
        return cast(F, wrapper)

    if func is not None:
        return decorator(func)
    return decorator
