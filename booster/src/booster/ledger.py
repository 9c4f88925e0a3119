"""
Remote ledger access: boost requests, booster accounts and request claims.
"""

from __future__ import annotations

import json
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any

import httpx
from loguru import logger
from pydantic import ValidationError

from booster.constants import ALREADY_CLAIMED_MARKERS, DEFAULT_REQUEST_TIMEOUT
from booster.identity import BoosterIdentity
from booster.models import BoosterAccount, BoostRequest, unwrap_option


class LedgerError(Exception):
    """Error reported by the ledger service itself (not a transport failure)."""

    def __init__(self, message: str, code: int | str | None = None):
        super().__init__(message)
        self.message = message
        self.code = code


class ClaimStatus(str, Enum):
    ACCEPTED = "accepted"
    ALREADY_CLAIMED = "already_claimed"
    FAILED = "failed"


@dataclass(frozen=True)
class ClaimResult:
    status: ClaimStatus
    message: str = ""

    @property
    def accepted(self) -> bool:
        return self.status == ClaimStatus.ACCEPTED


def is_already_claimed(message: str) -> bool:
    lowered = message.lower()
    return any(marker in lowered for marker in ALREADY_CLAIMED_MARKERS)


def classify_claim_error(message: str) -> ClaimResult:
    if is_already_claimed(message):
        return ClaimResult(ClaimStatus.ALREADY_CLAIMED, message)
    return ClaimResult(ClaimStatus.FAILED, message)


def unwrap_result(value: Any) -> Any:
    """Unwrap an ``{ok: T} | {err: text}`` variant, raising LedgerError on err."""
    if isinstance(value, dict):
        if "err" in value:
            raise LedgerError(str(value["err"]))
        if "ok" in value:
            return value["ok"]
    return value


class RequestRepository(ABC):
    """
    Abstract view of the ckBoost ledger as consumed by the booster.
    """

    @abstractmethod
    async def list_pending(self) -> list[BoostRequest]:
        """Pending boost requests, in ledger order"""

    @abstractmethod
    async def get_booster_account(self, owner: str | None = None) -> BoosterAccount | None:
        """Booster account for owner (defaults to our own identity)"""

    @abstractmethod
    async def claim(self, request_id: int) -> ClaimResult:
        """Accept a pending request on behalf of this booster"""

    @abstractmethod
    async def register_booster_account(self) -> BoosterAccount:
        """Register the calling identity as a booster"""

    @abstractmethod
    async def update_booster_deposit(self, owner: str, amount: int) -> BoosterAccount:
        """Credit a completed top-up transfer to the booster account"""

    @abstractmethod
    async def get_boost_request(self, request_id: int) -> BoostRequest | None:
        """Single request by id"""

    async def close(self) -> None:
        """Close ledger connection"""
        pass


class LedgerRPCClient(RequestRepository):
    """
    JSON-RPC 2.0 client for the ckBoost ledger gateway.

    Every request is signed with the booster identity so the gateway can act
    on the ledger as this booster.
    """

    def __init__(
        self,
        rpc_url: str,
        identity: BoosterIdentity,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ):
        self.rpc_url = rpc_url.rstrip("/")
        self.identity = identity
        self.client = client or httpx.AsyncClient(timeout=timeout)
        self._request_id = 0

    async def _rpc_call(self, method: str, params: list | None = None) -> Any:
        """
        Make an RPC call to the ledger gateway.

        Raises:
            LedgerError: On errors reported by the ledger
            httpx.HTTPError: On connection/timeout errors
        """
        self._request_id += 1
        payload = {
            "jsonrpc": "2.0",
            "id": self._request_id,
            "method": method,
            "params": params or [],
        }
        body = json.dumps(payload, separators=(",", ":")).encode("utf-8")
        headers = {
            "Content-Type": "application/json",
            "X-Booster-Identity": self.identity.principal,
            "X-Booster-Signature": self.identity.sign(body),
        }

        try:
            response = await self.client.post(self.rpc_url, content=body, headers=headers)
            response.raise_for_status()
            data = response.json()
        except httpx.TimeoutException as e:
            logger.error(f"Ledger call timed out: {method} - {e}")
            raise
        except httpx.HTTPError as e:
            logger.error(f"Ledger call failed: {method} - {e}")
            raise

        if "error" in data and data["error"]:
            error_info = data["error"]
            if isinstance(error_info, dict):
                raise LedgerError(
                    error_info.get("message", str(error_info)), error_info.get("code")
                )
            raise LedgerError(str(error_info))

        return data.get("result")

    async def list_pending(self) -> list[BoostRequest]:
        result = await self._rpc_call("getPendingBoostRequests")

        requests = []
        for item in result or []:
            try:
                requests.append(BoostRequest.model_validate(item))
            except ValidationError as e:
                request_id = item.get("id") if isinstance(item, dict) else None
                logger.warning(f"Skipping malformed boost request {request_id}: {e}")
        return requests

    async def get_booster_account(self, owner: str | None = None) -> BoosterAccount | None:
        result = unwrap_option(
            await self._rpc_call("getBoosterAccount", [owner or self.identity.principal])
        )
        if result is None:
            return None
        return BoosterAccount.model_validate(result)

    async def claim(self, request_id: int) -> ClaimResult:
        try:
            result = await self._rpc_call("acceptBoostRequest", [request_id])
            message = unwrap_result(result)
        except LedgerError as e:
            return classify_claim_error(e.message)
        return ClaimResult(ClaimStatus.ACCEPTED, str(message or ""))

    async def register_booster_account(self) -> BoosterAccount:
        result = unwrap_result(await self._rpc_call("registerBoosterAccount"))
        return BoosterAccount.model_validate(result)

    async def update_booster_deposit(self, owner: str, amount: int) -> BoosterAccount:
        result = unwrap_result(await self._rpc_call("updateBoosterDeposit", [owner, amount]))
        return BoosterAccount.model_validate(result)

    async def get_boost_request(self, request_id: int) -> BoostRequest | None:
        result = unwrap_option(await self._rpc_call("getBoostRequest", [request_id]))
        if result is None:
            return None
        return BoostRequest.model_validate(result)

    async def close(self) -> None:
        await self.client.aclose()
