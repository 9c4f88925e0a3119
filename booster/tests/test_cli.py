"""
Tests for CLI commands.
"""

from __future__ import annotations

import asyncio
import sys
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest
from loguru import logger
from typer.testing import CliRunner

from booster.cli import app, run_booster
from booster.config import BoosterConfig
from booster.identity import BoosterIdentity
from booster.ledger import LedgerError

runner = CliRunner()


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch):
    for var in ("MNEMONICS", "LEDGER_URL", "MEMPOOL_API_URL", "POLL_INTERVAL", "LOG_LEVEL"):
        monkeypatch.delenv(var, raising=False)
    yield
    # CLI commands point loguru at the runner's captured stderr
    logger.remove()
    logger.add(sys.stderr)


def test_identity_command(test_mnemonic: str) -> None:
    result = runner.invoke(app, ["identity", "--mnemonic", test_mnemonic])

    assert result.exit_code == 0
    assert result.stdout.strip() == BoosterIdentity.from_mnemonic(test_mnemonic).principal


def test_identity_command_invalid_mnemonic() -> None:
    result = runner.invoke(app, ["identity", "--mnemonic", "too short"])
    assert result.exit_code == 1


def test_run_requires_mnemonic() -> None:
    with patch("booster.cli.run_booster", new=AsyncMock()) as run_mock:
        result = runner.invoke(app, ["run", "--ledger-url", "http://localhost"])

    assert result.exit_code == 1
    run_mock.assert_not_called()


def test_run_requires_ledger_url(test_mnemonic: str) -> None:
    with patch("booster.cli.run_booster", new=AsyncMock()) as run_mock:
        result = runner.invoke(app, ["run", "--mnemonic", test_mnemonic])

    assert result.exit_code == 1
    run_mock.assert_not_called()


def test_run_rejects_invalid_risk_config(test_mnemonic: str) -> None:
    with patch("booster.cli.run_booster", new=AsyncMock()) as run_mock:
        result = runner.invoke(
            app,
            [
                "run",
                "--mnemonic",
                test_mnemonic,
                "--ledger-url",
                "http://localhost",
                "--max-amount",
                "0",
            ],
        )

    assert result.exit_code == 1
    run_mock.assert_not_called()


def test_run_builds_config_from_env(test_mnemonic: str) -> None:
    env = {
        "MNEMONICS": test_mnemonic,
        "LEDGER_URL": "http://ledger.local/rpc",
        "POLL_INTERVAL": "30",
    }
    with patch("booster.cli.run_booster", new=AsyncMock()) as run_mock:
        result = runner.invoke(app, ["run", "--once", "--min-fee", "0.5"], env=env)

    assert result.exit_code == 0, result.output
    run_mock.assert_awaited_once()
    config = run_mock.call_args.args[0]
    assert config.ledger_url == "http://ledger.local/rpc"
    assert config.poll_interval == 30.0
    assert config.risk.min_fee_percentage == 0.5
    assert run_mock.call_args.kwargs["once"] is True


class TestRunBooster:
    @pytest.mark.asyncio
    async def test_single_cycle(self, test_mnemonic: str, make_request, make_account) -> None:
        ledger = MagicMock()
        ledger.identity = BoosterIdentity.from_mnemonic(test_mnemonic)
        ledger.get_booster_account = AsyncMock(return_value=make_account(1_000_000))
        ledger.list_pending = AsyncMock(return_value=[make_request(btcAddress=None)])
        ledger.claim = AsyncMock()
        ledger.close = AsyncMock()

        mempool = MagicMock()
        mempool.test_connection = AsyncMock(return_value=True)
        mempool.get_address_txs = AsyncMock(return_value=[])
        mempool.close = AsyncMock()

        config = BoosterConfig(mnemonic=test_mnemonic, ledger_url="http://ledger.local")

        with (
            patch("booster.cli.create_ledger_client", return_value=ledger),
            patch("booster.cli.MempoolAPI", return_value=mempool),
        ):
            await asyncio.wait_for(run_booster(config, once=True), timeout=5)

        ledger.list_pending.assert_awaited_once()
        ledger.claim.assert_not_awaited()
        ledger.close.assert_awaited_once()
        mempool.close.assert_awaited_once()


@pytest.fixture
def ledger(test_mnemonic: str) -> MagicMock:
    ledger = MagicMock()
    ledger.identity = BoosterIdentity.from_mnemonic(test_mnemonic)
    ledger.close = AsyncMock()
    return ledger


@pytest.fixture
def base_args(test_mnemonic: str) -> list[str]:
    return ["--mnemonic", test_mnemonic, "--ledger-url", "http://ledger.local"]


def test_status_command(ledger, base_args, make_request, make_account) -> None:
    ledger.get_booster_account = AsyncMock(return_value=make_account(150_000_000))
    ledger.list_pending = AsyncMock(return_value=[make_request(id=4)])

    with patch("booster.cli.create_ledger_client", return_value=ledger):
        result = runner.invoke(app, ["status", *base_args])

    assert result.exit_code == 0, result.output
    assert "Available balance: 1.50000000 BTC" in result.stdout
    assert "Pending requests: 1" in result.stdout
    assert "#4 0.00500000 BTC" in result.stdout
    ledger.close.assert_awaited_once()


def test_status_command_unregistered(ledger, base_args) -> None:
    ledger.get_booster_account = AsyncMock(return_value=None)
    ledger.list_pending = AsyncMock(return_value=[])

    with patch("booster.cli.create_ledger_client", return_value=ledger):
        result = runner.invoke(app, ["status", *base_args])

    assert result.exit_code == 0, result.output
    assert "Account: not registered" in result.stdout


def test_credit_deposit(ledger, base_args, make_account) -> None:
    ledger.update_booster_deposit = AsyncMock(return_value=make_account(50_000_000))

    with patch("booster.cli.create_ledger_client", return_value=ledger):
        result = runner.invoke(app, ["credit-deposit", "0.5", *base_args])

    assert result.exit_code == 0, result.output
    ledger.update_booster_deposit.assert_awaited_once_with(ledger.identity.principal, 50_000_000)
    assert "0.50000000 BTC" in result.stdout
    ledger.close.assert_awaited_once()


def test_credit_deposit_rejects_non_positive_amount(ledger, base_args) -> None:
    ledger.update_booster_deposit = AsyncMock()

    with patch("booster.cli.create_ledger_client", return_value=ledger):
        result = runner.invoke(app, ["credit-deposit", "0", *base_args])

    assert result.exit_code == 1
    ledger.update_booster_deposit.assert_not_awaited()


def test_credit_deposit_ledger_error(ledger, base_args) -> None:
    ledger.update_booster_deposit = AsyncMock(side_effect=LedgerError("Booster not registered"))

    with patch("booster.cli.create_ledger_client", return_value=ledger):
        result = runner.invoke(app, ["credit-deposit", "1", *base_args])

    assert result.exit_code == 1
    ledger.close.assert_awaited_once()


def test_show_request(ledger, base_args, make_request) -> None:
    ledger.get_boost_request = AsyncMock(return_value=make_request(id=7))

    with patch("booster.cli.create_ledger_client", return_value=ledger):
        result = runner.invoke(app, ["show-request", "7", *base_args])

    assert result.exit_code == 0, result.output
    assert '"id": 7' in result.stdout
    ledger.get_boost_request.assert_awaited_once_with(7)


def test_show_request_not_found(ledger, base_args) -> None:
    ledger.get_boost_request = AsyncMock(return_value=None)

    with patch("booster.cli.create_ledger_client", return_value=ledger):
        result = runner.invoke(app, ["show-request", "99", *base_args])

    assert result.exit_code == 1


def test_status_command_ledger_unreachable(ledger, base_args) -> None:
    ledger.get_booster_account = AsyncMock(side_effect=httpx.ConnectError("refused"))
    ledger.list_pending = AsyncMock(return_value=[])

    with patch("booster.cli.create_ledger_client", return_value=ledger):
        result = runner.invoke(app, ["status", *base_args])

    assert result.exit_code == 1
    assert not isinstance(result.exception, httpx.HTTPError)
    ledger.close.assert_awaited_once()


def test_show_request_ledger_error(ledger, base_args) -> None:
    ledger.get_boost_request = AsyncMock(side_effect=LedgerError("canister stopped"))

    with patch("booster.cli.create_ledger_client", return_value=ledger):
        result = runner.invoke(app, ["show-request", "7", *base_args])

    assert result.exit_code == 1
    assert not isinstance(result.exception, LedgerError)
    ledger.close.assert_awaited_once()
