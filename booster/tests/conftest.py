"""
Pytest configuration and fixtures for booster tests.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import pytest

from booster.constants import SEQUENCE_FINAL
from booster.identity import BoosterIdentity
from booster.models import BoosterAccount, BoostRequest, MempoolTransaction


@pytest.fixture
def test_mnemonic() -> str:
    """Test mnemonic (BIP39 test vector)"""
    return (
        "abandon abandon abandon abandon abandon abandon "
        "abandon abandon abandon abandon abandon about"
    )


@pytest.fixture
def identity(test_mnemonic: str) -> BoosterIdentity:
    return BoosterIdentity.from_mnemonic(test_mnemonic)


@pytest.fixture
def make_request() -> Callable[..., BoostRequest]:
    """Factory for pending boost requests."""

    def _make(**overrides: Any) -> BoostRequest:
        data: dict[str, Any] = {
            "id": 1,
            "status": "pending",
            "amount": 500_000,
            "maxFeePercentage": 1.0,
            "confirmationsRequired": 2,
            "btcAddress": "addr1",
            "owner": "owner-principal",
        }
        data.update(overrides)
        return BoostRequest.model_validate(data)

    return _make


@pytest.fixture
def make_account() -> Callable[..., BoosterAccount]:
    def _make(available_balance: int = 1_000_000, **overrides: Any) -> BoosterAccount:
        data: dict[str, Any] = {
            "owner": "booster-principal",
            "availableBalance": available_balance,
            "totalDeposited": available_balance,
        }
        data.update(overrides)
        return BoosterAccount.model_validate(data)

    return _make


@pytest.fixture
def make_tx() -> Callable[..., MempoolTransaction]:
    """Factory for explorer transactions; outputs are (address, value) pairs."""

    def _make(
        txid: str = "aa" * 32,
        outputs: list[tuple[str | None, int]] | None = None,
        sequences: list[int] | None = None,
        confirmed: bool = False,
    ) -> MempoolTransaction:
        outputs = outputs if outputs is not None else [("addr1", 500_000)]
        sequences = sequences if sequences is not None else [SEQUENCE_FINAL]
        return MempoolTransaction.model_validate(
            {
                "txid": txid,
                "status": {"confirmed": confirmed},
                "vin": [
                    {"txid": "bb" * 32, "vout": i, "sequence": seq}
                    for i, seq in enumerate(sequences)
                ],
                "vout": [{"scriptpubkey_address": a, "value": v} for a, v in outputs],
            }
        )

    return _make
