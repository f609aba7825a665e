"""
Raw liquidation heatmap from the HyperTracker aggregator.
"""
import logging
from typing import Any, Optional

import aiohttp

from config import config
from heatsentry.services.http_client import get_json

logger = logging.getLogger(__name__)


class HeatmapFetcher:
    def __init__(
        self,
        base_url: str,
        session: Optional[aiohttp.ClientSession] = None,
        timeout_sec: Optional[float] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session
        self.timeout_sec = timeout_sec or config.HTTP_TIMEOUT_SEC

    def url_for(self, symbol: str) -> str:
        return f"{self.base_url}/aggregator/assets/{symbol}/liquidation-heatmap.json"

    async def fetch_heatmap(self, symbol: str) -> Any:
        """Decoded JSON body, expected shape `{"heatmap": [...]}`."""
        data = await get_json(
            self.session,
            self.url_for(symbol),
            timeout_sec=self.timeout_sec,
            source="heatmap aggregator",
        )
        if isinstance(data, dict):
            logger.debug("Heatmap %s: %d raw bins", symbol, len(data.get("heatmap") or []))
        return data
