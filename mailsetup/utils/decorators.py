import asyncio
import functools
import inspect
import time
import threading
from typing import Any, Callable, Optional, Tuple, Type, Union


def retry_on_fail(
    max_retries: int = 3,
    retry_delay: float = 1.0,
    exceptions: Union[Type[Exception], Tuple[Type[Exception], ...]] = Exception,
    log_failure: bool = True,
    retry_on_error_message: Optional[str] = None,
):
    """
    Decorator that retries a function if it fails with specified exceptions.

    Works for plain functions and coroutine functions alike.

    Args:
        max_retries: Maximum number of retry attempts (default: 3)
        retry_delay: Delay between retries in seconds (default: 1.0)
        exceptions: Exception type or tuple of exception types to retry on (default: Exception)
        log_failure: Whether to log failures (default: True)
        retry_on_error_message: If provided, only retry if the error message contains this string

    Returns:
        The decorator function
    """

    def decorator(func: Callable) -> Callable:
        from mailsetup.utils.logger import Logger

        logger = Logger().get_logger(__name__)

        def _should_give_up(error: Exception, attempt: int) -> bool:
            # attempt is 1-based; returns True when the error must be re-raised
            if retry_on_error_message and retry_on_error_message not in str(error):
                return True
            if attempt > max_retries:
                if log_failure:
                    logger.error(
                        f"Failed to execute {func.__name__} after {max_retries} retries. Last error: {error}"
                    )
                return True
            if log_failure:
                logger.warning(
                    f"Retry {attempt}/{max_retries} for {func.__name__} due to: {error}"
                )
            return False

        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs) -> Any:
                attempt = 0
                while True:
                    try:
                        result = await func(*args, **kwargs)
                    except exceptions as e:
                        attempt += 1
                        if _should_give_up(e, attempt):
                            raise
                        await asyncio.sleep(retry_delay)
                        continue
                    if attempt > 0:
                        logger.info(
                            f"Successfully executed {func.__name__} after {attempt} retries"
                        )
                    return result

            return async_wrapper

        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> Any:
            attempt = 0
            while True:
                try:
                    result = func(*args, **kwargs)
                except exceptions as e:
                    attempt += 1
                    if _should_give_up(e, attempt):
                        raise
                    time.sleep(retry_delay)
                    continue
                if attempt > 0:
                    logger.info(
                        f"Successfully executed {func.__name__} after {attempt} retries"
                    )
                return result

        return wrapper

    return decorator


def Singleton(cls):
    """
    Thread-safe singleton decorator.
    Ensures only one instance of a class is created even in concurrent environments.

    The decorated callable exposes reset_instance() so tests can start clean.
    """
    _instances = {}
    _lock = threading.Lock()

    @functools.wraps(cls)
    def _singleton(*args, **kwargs):
        if cls not in _instances:
            with _lock:
                # Double-check locking pattern
                if cls not in _instances:
                    _instances[cls] = cls(*args, **kwargs)
        return _instances[cls]

    def reset_instance():
        with _lock:
            _instances.pop(cls, None)

    _singleton.reset_instance = reset_instance
    return _singleton
