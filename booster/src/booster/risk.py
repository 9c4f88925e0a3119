"""
Risk policies deciding which boost requests the booster is willing to take.

Policies are pure: no I/O, no logging, no mutation of the request. The
controller logs the rejection reason.
"""

from __future__ import annotations

from datetime import UTC, datetime
from typing import Protocol

from booster.constants import DEFAULT_MAX_AMOUNT_BTC, DEFAULT_MIN_FEE_PERCENTAGE
from booster.models import BoostRequest


class RiskPolicy(Protocol):
    def rejection_reason(
        self, request: BoostRequest, now: datetime | None = None
    ) -> str | None: ...

    def accept(self, request: BoostRequest, now: datetime | None = None) -> bool: ...


class AcceptAllPolicy:
    """Takes every request that passes the balance and deposit checks."""

    def rejection_reason(self, request: BoostRequest, now: datetime | None = None) -> str | None:
        return None

    def accept(self, request: BoostRequest, now: datetime | None = None) -> bool:
        return True


class ThresholdRiskPolicy:
    """
    Rejects requests outside the configured amount, fee and age limits.

    Args:
        max_amount_btc: Largest request accepted, in BTC
        min_fee_percentage: Smallest fee ceiling accepted, in percent (0.1 = 0.1%)
        max_request_age: Maximum request age in seconds, None to disable
    """

    def __init__(
        self,
        max_amount_btc: float = DEFAULT_MAX_AMOUNT_BTC,
        min_fee_percentage: float = DEFAULT_MIN_FEE_PERCENTAGE,
        max_request_age: float | None = None,
    ):
        self.max_amount_btc = max_amount_btc
        self.min_fee_percentage = min_fee_percentage
        self.max_request_age = max_request_age

    def rejection_reason(self, request: BoostRequest, now: datetime | None = None) -> str | None:
        amount_btc = float(request.amount_btc)
        if amount_btc > self.max_amount_btc:
            return f"amount too large ({amount_btc} BTC > {self.max_amount_btc} BTC)"

        if request.max_fee_percentage < self.min_fee_percentage:
            return (
                f"fee too low ({request.max_fee_percentage}% < {self.min_fee_percentage}%)"
            )

        if self.max_request_age is not None:
            age = request.age_seconds(now or datetime.now(UTC))
            if age > self.max_request_age:
                return f"request too old ({age:.0f}s > {self.max_request_age:.0f}s)"

        return None

    def accept(self, request: BoostRequest, now: datetime | None = None) -> bool:
        return self.rejection_reason(request, now) is None
