"""Utility decorators for rate source resilience and tracing."""
import asyncio
import functools
import time
from typing import Callable, Type, Tuple
from rate_engine.utils.logging import get_logger

logger = get_logger(__name__)


def retry(
    max_attempts: int = 3,
    delay: float = 1.0,
    backoff: float = 2.0,
    exceptions: Tuple[Type[Exception], ...] = (Exception,)
):
    """
    Retry decorator with exponential backoff for coroutine functions.
    
    Args:
        max_attempts: Maximum number of attempts
        delay: Initial delay between retries in seconds
        backoff: Backoff multiplier for delay
        exceptions: Tuple of exceptions to catch and retry
    
    Example:
        @retry(max_attempts=3, delay=0.5, exceptions=(httpx.HTTPError,))
        async def fetch_json():
            ...
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            current_delay = delay
            
            for attempt in range(1, max_attempts + 1):
                try:
                    return await func(*args, **kwargs)
                except exceptions as e:
                    if attempt == max_attempts:
                        logger.error(
                            f"Function {func.__name__} failed after {max_attempts} attempts",
                            extra={"error": str(e), "function": func.__name__}
                        )
                        raise
                    
                    logger.warning(
                        f"Function {func.__name__} failed (attempt {attempt}/{max_attempts}), retrying in {current_delay}s",
                        extra={"error": str(e), "function": func.__name__}
                    )
                    await asyncio.sleep(current_delay)
                    current_delay *= backoff
        
        return wrapper
    
    return decorator


def log_execution(log_result: bool = False):
    """
    Decorator to log coroutine execution with timing.
    
    Args:
        log_result: Whether to log the function result
    """
    def decorator(func: Callable):
        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.time()
            func_name = func.__name__
            
            logger.debug(f"Starting {func_name}", extra={"function": func_name})
            
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                execution_time = (time.time() - start_time) * 1000
                logger.error(
                    f"Failed {func_name}",
                    extra={"function": func_name, "execution_time_ms": round(execution_time, 2), "error": str(e)}
                )
                raise

            execution_time = (time.time() - start_time) * 1000  # ms
            message = f"Completed {func_name}"
            if log_result:
                message = f"{message}: {str(result)[:100]}"
            logger.debug(
                message,
                extra={"function": func_name, "execution_time_ms": round(execution_time, 2)}
            )
            return result
        
        return wrapper
    
    return decorator
