"""
Run blocking docker SDK calls without blocking the event loop.
"""

import asyncio
import functools
from typing import Any, Callable


async def async_docker_call(func: Callable, *args, **kwargs) -> Any:
    """
    Execute a synchronous docker SDK call in the default executor.

    Example:
        images = await async_docker_call(client.images.list)
    """
    loop = asyncio.get_running_loop()
    return await loop.run_in_executor(None, functools.partial(func, *args, **kwargs))
