"""
Shared aiohttp GET helper for the upstream fetchers.
Every transport, status or decoding failure surfaces as UpstreamError.
"""
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

import aiohttp

from heatsentry.errors import UpstreamError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36",
    "Accept": "application/json",
}


@asynccontextmanager
async def session_scope(session: Optional[aiohttp.ClientSession], timeout_sec: float):
    """Use the caller's session when given, otherwise open a short-lived one."""
    if session is not None:
        yield session
        return
    async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=timeout_sec)) as own:
        yield own


async def get_json(
    session: Optional[aiohttp.ClientSession],
    url: str,
    *,
    params: Optional[Dict[str, str]] = None,
    timeout_sec: float = 10.0,
    source: str = "upstream",
) -> Any:
    try:
        async with session_scope(session, timeout_sec) as http:
            async with http.get(
                url,
                params=params,
                headers=DEFAULT_HEADERS,
                timeout=aiohttp.ClientTimeout(total=timeout_sec),
            ) as resp:
                if not 200 <= resp.status < 300:
                    raise UpstreamError(
                        f"{source} returned {resp.status} {resp.reason}",
                        status=resp.status,
                        reason=resp.reason,
                    )
                return await resp.json()
    except UpstreamError:
        raise
    except asyncio.TimeoutError as e:
        raise UpstreamError(f"{source} timed out after {timeout_sec}s") from e
    except (aiohttp.ClientError, ValueError) as e:
        raise UpstreamError(f"{source} request failed: {e}") from e
