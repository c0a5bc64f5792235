"""
Wrapper for side effects whose failure must not fail the request
"""

import logging
from typing import Any, Awaitable, Callable, Optional

logger = logging.getLogger(__name__)


async def best_effort(
    description: str,
    func: Callable[..., Awaitable[Any]],
    *args,
    **kwargs
) -> Optional[Any]:
    """
    Await func(*args, **kwargs); log and return None on any error
    """
    try:
        return await func(*args, **kwargs)
    except Exception as e:
        logger.warning(f"{description} failed: {type(e).__name__}: {e}")
        return None
