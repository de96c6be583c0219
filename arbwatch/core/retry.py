"""Retry with exponential backoff for network calls."""

import asyncio
from typing import Awaitable, Callable, Tuple, Type, TypeVar
from loguru import logger

from .errors import UpstreamUnavailable

T = TypeVar("T")


async def retry_async(operation: Callable[[], Awaitable[T]],
                      max_retries: int = 3,
                      base_delay: float = 0.5,
                      retry_on: Tuple[Type[BaseException], ...] = (UpstreamUnavailable,),
                      description: str = "operation") -> T:
    """Await operation(), retrying up to max_retries times on retry_on errors.

    The delay before retry n (0-based) is base_delay * 2**n. Errors outside
    retry_on propagate immediately; the last error is re-raised once retries
    are exhausted.
    """
    if max_retries < 0:
        raise ValueError("max_retries must be >= 0")

    attempt = 0
    while True:
        try:
            return await operation()
        except retry_on as e:
            if attempt >= max_retries:
                logger.error(f"{description} failed after {attempt + 1} attempts: {e}")
                raise
            delay = base_delay * (2 ** attempt)
            logger.warning(f"⚠️  {description} attempt {attempt + 1} failed: {e}, retrying in {delay:.2f}s...")
            await asyncio.sleep(delay)
            attempt += 1
