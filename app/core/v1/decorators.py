"""Decorators for outbound calls to Supabase, Google and Microsoft."""

import time
import functools
from typing import Callable, Optional, Tuple, Type

from app.core.v1.log_manager import LogManager
from app.core.v1.exceptions import RuntimeException
from app.settings.v1.general import SETTINGS


def retry(
    max_retries: Optional[int] = None,
    delay: Optional[float] = None,
    exceptions: Tuple[Type[BaseException], ...] = (Exception,),
    reraise: bool = False,
    backoff: Optional[float] = None
):
    """Retry a call that failed with one of ``exceptions``.

    The wait doubles (``backoff``) after every failed attempt, so a
    provider that is briefly down is not hammered.

    Args:
        max_retries (Optional[int]): Retries after the first attempt.
        delay (Optional[float]): Initial wait in seconds.
        exceptions (tuple): Errors worth retrying, usually network errors.
        reraise (bool): Re-raise the provider error itself once retries are
            exhausted, so the caller can translate it to a domain error.
        backoff (Optional[float]): Multiplier applied to the wait.

    Returns:
        Callable: Decorated function.
    """
    max_retries = SETTINGS.NUMBER_OF_RETRIES if max_retries is None else max_retries
    delay = SETTINGS.SECONDS_BETWEEN_RETRIES if delay is None else delay
    backoff = SETTINGS.RETRY_BACKOFF_FACTOR if backoff is None else backoff

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            logger = LogManager(func.__module__)
            wait = delay
            attempt = 0

            while True:
                try:
                    return func(*args, **kwargs)
                except exceptions as err:
                    attempt += 1
                    if attempt > max_retries:
                        logger.error(
                            f"{func.__name__} gave up",
                            error=str(err),
                            attempts=attempt
                        )
                        if reraise:
                            raise
                        raise RuntimeException(f"{func.__name__} gave up after {attempt} attempts: {err}") from err

                    logger.warning(
                        f"{func.__name__} failed, retrying in {wait:.1f}s",
                        error=type(err).__name__,
                        attempt=attempt
                    )
                    time.sleep(wait)
                    wait *= backoff

        return wrapper
    return decorator


def log_execution_time(func: Callable) -> Callable:
    """Log how long a provider call took.

    Calls slower than ``SLOW_OPERATION_SECONDS`` are logged as warnings
    (OCR of a long PDF, Gemini transcription).
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        logger = LogManager(func.__module__)
        started = time.perf_counter()

        try:
            return func(*args, **kwargs)
        except Exception as err:
            logger.error(
                f"{func.__name__} failed",
                seconds=f"{time.perf_counter() - started:.3f}",
                error=type(err).__name__
            )
            raise
        finally:
            elapsed = time.perf_counter() - started
            if elapsed >= SETTINGS.SLOW_OPERATION_SECONDS:
                logger.warning(f"{func.__name__} is slow", seconds=f"{elapsed:.3f}")
            else:
                logger.debug(f"{func.__name__} done", seconds=f"{elapsed:.3f}")

    return wrapper
