"""
Core data models using Pydantic for validation and serialization.

Ledger records mirror the ckBoost backend interface (camelCase on the wire).
Explorer records mirror the mempool.space REST API.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime
from decimal import ROUND_DOWN, Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from booster.constants import MAX_BIP125_RBF_SEQUENCE, SATS_PER_BTC

_SATS = Decimal(SATS_PER_BTC)
_EIGHT_PLACES = Decimal("0.00000001")


def btc_to_sats(amount: float | str | Decimal) -> int:
    """Convert a BTC amount to satoshis, truncating anything below one sat."""
    value = Decimal(str(amount)) * _SATS
    return int(value.to_integral_value(rounding=ROUND_DOWN))


def sats_to_btc(sats: int) -> Decimal:
    return (Decimal(sats) / _SATS).quantize(_EIGHT_PLACES)


def format_btc(sats: int) -> str:
    return f"{sats_to_btc(sats):.8f}"


def expected_fee(amount: int, fee_percentage: float) -> int:
    """Fee earned on a boost, in sats (percentage truncated to basis points)."""
    basis_points = int(fee_percentage * 100)
    return amount * basis_points // 10_000


def unwrap_option(value: Any) -> Any:
    """Candid ``opt T`` arrives as null, [] or [value]."""
    if isinstance(value, list):
        return value[0] if value else None
    return value


class BoostStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class BoostRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: int = Field(..., ge=0)
    status: BoostStatus
    amount: int = Field(..., ge=0)
    max_fee_percentage: float = Field(..., alias="maxFeePercentage")
    confirmations_required: int = Field(default=0, ge=0, alias="confirmationsRequired")
    deposit_address: str | None = Field(default=None, alias="btcAddress")
    owner: str | None = None
    booster: str | None = None
    preferred_booster: str | None = Field(default=None, alias="preferredBooster")
    received_amount: int = Field(default=0, ge=0, alias="receivedBTC")
    # Ledger timestamps are nanoseconds since the epoch
    created_at: int = Field(default=0, alias="createdAt")
    updated_at: int = Field(default=0, alias="updatedAt")

    @field_validator("status", mode="before")
    @classmethod
    def normalize_status(cls, v: Any) -> Any:
        # Variant form: {"pending": null}
        if isinstance(v, dict) and len(v) == 1:
            return next(iter(v))
        if isinstance(v, str):
            return v.lower()
        return v

    @field_validator("deposit_address", "owner", "booster", "preferred_booster", mode="before")
    @classmethod
    def normalize_optional(cls, v: Any) -> Any:
        v = unwrap_option(v)
        if v == "":
            return None
        return v

    @property
    def is_pending(self) -> bool:
        return self.status == BoostStatus.PENDING

    @property
    def is_assigned(self) -> bool:
        return self.booster is not None

    @property
    def amount_btc(self) -> Decimal:
        return sats_to_btc(self.amount)

    @property
    def created_at_datetime(self) -> datetime:
        return datetime.fromtimestamp(self.created_at / 1_000_000_000, tz=UTC)

    def age_seconds(self, now: datetime) -> float:
        return (now - self.created_at_datetime).total_seconds()


class BoosterAccount(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    owner: str
    available_balance: int = Field(..., ge=0, alias="availableBalance")
    total_deposited: int = Field(default=0, ge=0, alias="totalDeposited")
    created_at: int = Field(default=0, alias="createdAt")
    updated_at: int = Field(default=0, alias="updatedAt")


class TxStatus(BaseModel):
    confirmed: bool = False
    block_height: int | None = None
    block_time: int | None = None


class TxInput(BaseModel):
    txid: str | None = None
    vout: int | None = None
    sequence: int = Field(..., ge=0)

    @property
    def signals_rbf(self) -> bool:
        return self.sequence <= MAX_BIP125_RBF_SEQUENCE


class TxOutput(BaseModel):
    # OP_RETURN and non-standard outputs carry no address
    scriptpubkey_address: str | None = None
    value: int = Field(..., ge=0)


class MempoolTransaction(BaseModel):
    """Transaction record as returned by the explorer."""

    txid: str
    status: TxStatus = Field(default_factory=TxStatus)
    vin: list[TxInput] = Field(default_factory=list)
    vout: list[TxOutput] = Field(default_factory=list)

    def pays(self, address: str) -> bool:
        return any(output.scriptpubkey_address == address for output in self.vout)

    def value_to(self, address: str) -> int:
        return sum(
            output.value for output in self.vout if output.scriptpubkey_address == address
        )

    @property
    def signals_rbf(self) -> bool:
        return any(tx_input.signals_rbf for tx_input in self.vin)

    @property
    def replaceable(self) -> bool:
        # A mined transaction can no longer be replaced
        return self.signals_rbf and not self.status.confirmed


@dataclass(frozen=True)
class ObservedTransaction:
    """Per-cycle view of an explorer transaction relative to one deposit address."""

    txid: str
    confirmed: bool
    matched_value: int
    replaceable: bool

    @classmethod
    def from_mempool(cls, tx: MempoolTransaction, address: str) -> ObservedTransaction:
        return cls(
            txid=tx.txid,
            confirmed=tx.status.confirmed,
            matched_value=tx.value_to(address),
            replaceable=tx.replaceable,
        )
