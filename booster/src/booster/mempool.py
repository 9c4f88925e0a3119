"""
Mempool.space REST API client for observing deposits on the settlement network.
"""

from __future__ import annotations

from typing import Any

import httpx
from loguru import logger
from pydantic import TypeAdapter

from booster.constants import DEFAULT_MEMPOOL_API_URL, DEFAULT_REQUEST_TIMEOUT
from booster.models import MempoolTransaction

_TX_LIST = TypeAdapter(list[MempoolTransaction])


class MempoolAPI:
    """
    Thin async client for the subset of the explorer API the booster needs.

    HTTP and timeout errors are logged and re-raised as ``httpx.HTTPError``;
    callers decide whether to skip or retry.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_MEMPOOL_API_URL,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def _get(self, endpoint: str) -> Any:
        url = f"{self.base_url}/{endpoint}"
        try:
            response = await self.client.get(url)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Mempool API request timed out: {endpoint} - {e}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"Mempool API request failed: {endpoint} - {e}")
            raise

    async def get_address_txs(self, address: str) -> list[MempoolTransaction]:
        """
        Transactions touching ``address``, in explorer order.

        The explorer lists unconfirmed transactions first, followed by the most
        recent confirmed ones, so a deposit stays visible after it is mined.
        """
        data = await self._get(f"address/{address}/txs")
        return _TX_LIST.validate_python(data)

    async def get_tip_height(self) -> int:
        data = await self._get("blocks/tip/height")
        return int(data)

    async def test_connection(self) -> bool:
        try:
            height = await self.get_tip_height()
        except httpx.HTTPError:
            return False
        logger.debug(f"Mempool API reachable, tip height {height}")
        return True

    async def close(self) -> None:
        await self.client.aclose()
