"""
Client for the whale swap ingestion API.
Fetches the latest batch of swaps and parses it into Swap models.
"""
import asyncio
import logging
from typing import Any, List, Optional

import aiohttp
from pydantic import ValidationError

from core.models import Swap

logger = logging.getLogger(__name__)
swaps_logger = logging.getLogger("swaps")


def parse_swaps(payload: Any) -> List[Swap]:
    """
    Parse an ingestion API payload into swaps.

    The payload must be a JSON array; anything else yields an empty batch.
    Malformed entries are skipped individually, batch order is preserved.
    """
    if not isinstance(payload, list):
        logger.warning(f"Unexpected swap payload type: {type(payload).__name__}")
        return []

    swaps: List[Swap] = []
    for entry in payload:
        if not isinstance(entry, dict):
            logger.debug(f"Skipping non-object swap entry: {entry!r}")
            continue
        try:
            swaps.append(Swap.from_api(entry))
        except (ValidationError, TypeError, ValueError, OverflowError) as e:
            logger.debug(f"Skipping malformed swap {entry.get('signature')}: {e}")

    return swaps


class SwapFeed:
    """Polls the ingestion API for the most recent whale swaps."""

    def __init__(self, api_url: str, timeout: float = 10.0):
        self.api_url = api_url
        self.timeout = timeout
        self._session: Optional[aiohttp.ClientSession] = None

    async def _ensure_session(self):
        """Ensure aiohttp session exists."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                timeout=aiohttp.ClientTimeout(total=self.timeout)
            )

    async def close(self):
        """Close the aiohttp session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def fetch_latest(self) -> List[Swap]:
        """
        Fetch the latest batch of swaps.

        Returns:
            Parsed swaps in API order (empty on any failure)
        """
        try:
            await self._ensure_session()

            async with self._session.get(self.api_url) as response:
                if response.status != 200:
                    logger.error(f"Swap API request failed: HTTP {response.status}")
                    return []

                payload = await response.json(content_type=None)

        except asyncio.TimeoutError:
            logger.error(f"Swap API request timed out after {self.timeout}s")
            return []
        except (aiohttp.ClientError, ValueError) as e:
            logger.error(f"Error fetching swaps: {e}")
            return []

        swaps = parse_swaps(payload)
        swaps_logger.info(f"Fetched {len(swaps)} swaps from {self.api_url}")
        return swaps
