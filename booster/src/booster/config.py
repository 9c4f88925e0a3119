"""
Booster configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field, field_validator

from booster.constants import (
    DEFAULT_MAX_AMOUNT_BTC,
    DEFAULT_MEMPOOL_API_URL,
    DEFAULT_MIN_DEPOSIT,
    DEFAULT_MIN_FEE_PERCENTAGE,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_REQUEST_TIMEOUT,
)
from booster.identity import normalize_mnemonic
from booster.risk import ThresholdRiskPolicy


class RiskConfig(BaseModel):
    max_amount_btc: float = Field(
        default=DEFAULT_MAX_AMOUNT_BTC,
        gt=0,
        description="Largest request accepted, in BTC",
    )
    min_fee_percentage: float = Field(
        default=DEFAULT_MIN_FEE_PERCENTAGE,
        ge=0,
        description="Smallest fee ceiling accepted, in percent (0.1 = 0.1%)",
    )
    # Disabled by default
    max_request_age: float | None = Field(
        default=None,
        gt=0,
        description="Maximum request age in seconds",
    )

    def build_policy(self) -> ThresholdRiskPolicy:
        return ThresholdRiskPolicy(
            max_amount_btc=self.max_amount_btc,
            min_fee_percentage=self.min_fee_percentage,
            max_request_age=self.max_request_age,
        )


class BoosterConfig(BaseModel):
    mnemonic: str
    ledger_url: str = Field(..., min_length=1)
    mempool_api_url: str = DEFAULT_MEMPOOL_API_URL

    poll_interval: float = Field(default=DEFAULT_POLL_INTERVAL, gt=0)
    request_timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)

    # Booster account top-up threshold in sats
    min_deposit: int = Field(default=DEFAULT_MIN_DEPOSIT, ge=0)

    risk: RiskConfig = Field(default_factory=RiskConfig)

    model_config = {"frozen": False}

    @field_validator("mnemonic")
    @classmethod
    def validate_mnemonic(cls, v: str) -> str:
        return normalize_mnemonic(v)

    @field_validator("ledger_url", "mempool_api_url")
    @classmethod
    def validate_url(cls, v: str) -> str:
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"URL must start with http:// or https://, got {v}")
        return v.rstrip("/")
