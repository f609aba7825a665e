"""
Spot price lookup against the CoinGecko simple-price endpoint.
"""
import logging
from typing import Dict, Optional

import aiohttp

from config import config
from heatsentry.errors import UnsupportedSymbolError, UpstreamError
from heatsentry.services.http_client import get_json

logger = logging.getLogger(__name__)

# Symbol -> CoinGecko coin id. Anything not listed is rejected up front.
ORACLE_IDS: Dict[str, str] = {
    "BTC": "bitcoin",
    "ETH": "ethereum",
    "SOL": "solana",
    "HYPE": "hyperliquid",
}


def oracle_id_for(symbol: str) -> str:
    try:
        return ORACLE_IDS[symbol.upper()]
    except (KeyError, AttributeError):
        raise UnsupportedSymbolError(symbol) from None


class PriceFetcher:
    def __init__(
        self,
        session: Optional[aiohttp.ClientSession] = None,
        api_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout_sec: Optional[float] = None,
    ):
        self.session = session
        self.api_url = (api_url or config.COINGECKO_API_URL).rstrip("/")
        self.api_key = api_key if api_key is not None else config.COINGECKO_API_KEY
        self.timeout_sec = timeout_sec or config.HTTP_TIMEOUT_SEC

    async def fetch_price(self, symbol: str) -> float:
        """Current USD price for `symbol`."""
        coin_id = oracle_id_for(symbol)

        params = {"ids": coin_id, "vs_currencies": "usd"}
        if self.api_key:
            params["x_cg_demo_api_key"] = self.api_key

        data = await get_json(
            self.session,
            f"{self.api_url}/simple/price",
            params=params,
            timeout_sec=self.timeout_sec,
            source="price oracle",
        )

        try:
            price = float(data[coin_id]["usd"])
        except (KeyError, TypeError, ValueError):
            raise UpstreamError(f"price oracle response has no usd price for {coin_id}") from None
        if not price > 0:
            raise UpstreamError(f"price oracle returned non-positive price for {coin_id}: {price}")

        logger.debug("Price %s = %s", symbol, price)
        return price
