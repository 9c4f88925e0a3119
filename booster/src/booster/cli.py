"""
Command-line interface for the ckBoost booster.
"""

from __future__ import annotations

import asyncio
import signal
import sys
from typing import Annotated

import httpx
import typer
from loguru import logger
from pydantic import ValidationError

from booster.config import BoosterConfig
from booster.constants import (
    DEFAULT_MAX_AMOUNT_BTC,
    DEFAULT_MEMPOOL_API_URL,
    DEFAULT_MIN_FEE_PERCENTAGE,
    DEFAULT_POLL_INTERVAL,
)
from booster.controller import SettlementController, ensure_booster_account
from booster.dedup import DedupRegistry
from booster.identity import BoosterIdentity, IdentityError
from booster.ledger import LedgerError, LedgerRPCClient
from booster.mempool import MempoolAPI
from booster.models import btc_to_sats, format_btc
from booster.observer import DepositObserver
from booster.scheduler import Scheduler

app = typer.Typer(
    name="ckboost-booster",
    help="ckBoost booster - provide liquidity for boost requests",
    add_completion=False,
)

MnemonicOption = Annotated[
    str | None, typer.Option(help="12-word booster mnemonic", envvar="MNEMONICS")
]
LedgerUrlOption = Annotated[
    str | None, typer.Option("--ledger-url", envvar="LEDGER_URL", help="Ledger gateway RPC URL")
]
LogLevelOption = Annotated[
    str, typer.Option("--log-level", "-l", envvar="LOG_LEVEL", help="Log level")
]


def setup_logging(level: str) -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def load_config(mnemonic: str | None, ledger_url: str | None, **kwargs: object) -> BoosterConfig:
    """
    Build and validate the configuration, exiting before any network activity on error.
    """
    if not mnemonic:
        logger.error("MNEMONICS environment variable is not set (or pass --mnemonic)")
        raise typer.Exit(1)
    if not ledger_url:
        logger.error("Ledger URL required. Use --ledger-url or LEDGER_URL env var")
        raise typer.Exit(1)

    try:
        return BoosterConfig(mnemonic=mnemonic, ledger_url=ledger_url, **kwargs)  # type: ignore[arg-type]
    except ValidationError as e:
        for error in e.errors():
            location = ".".join(str(part) for part in error["loc"])
            logger.error(f"Invalid configuration: {location}: {error['msg']}")
        raise typer.Exit(1)


def create_ledger_client(config: BoosterConfig) -> LedgerRPCClient:
    identity = BoosterIdentity.from_mnemonic(config.mnemonic)
    return LedgerRPCClient(
        rpc_url=config.ledger_url,
        identity=identity,
        timeout=config.request_timeout,
    )


async def run_booster(config: BoosterConfig, once: bool = False) -> None:
    ledger = create_ledger_client(config)
    mempool = MempoolAPI(base_url=config.mempool_api_url, timeout=config.request_timeout)
    controller = SettlementController(
        repository=ledger,
        observer=DepositObserver(mempool),
        risk_policy=config.risk.build_policy(),
        registry=DedupRegistry(),
    )
    scheduler = Scheduler(
        controller,
        interval=config.poll_interval,
        max_cycles=1 if once else None,
    )

    loop = asyncio.get_running_loop()

    def shutdown_handler() -> None:
        logger.info("Received shutdown signal, finishing current cycle...")
        scheduler.stop()

    for sig in (signal.SIGTERM, signal.SIGINT):
        loop.add_signal_handler(sig, shutdown_handler)

    try:
        logger.info(f"Booster identity: {ledger.identity.principal}")
        logger.info(f"Ledger: {config.ledger_url}")
        logger.info(f"Mempool API: {config.mempool_api_url}")

        if not await mempool.test_connection():
            logger.warning("Mempool API connection test failed - deposits cannot be observed yet")

        await ensure_booster_account(ledger, config.min_deposit)
        await scheduler.run()
    finally:
        for sig in (signal.SIGTERM, signal.SIGINT):
            loop.remove_signal_handler(sig)
        await mempool.close()
        await ledger.close()


@app.command()
def run(
    mnemonic: MnemonicOption = None,
    ledger_url: LedgerUrlOption = None,
    mempool_api_url: Annotated[
        str, typer.Option(envvar="MEMPOOL_API_URL", help="Mempool explorer API URL")
    ] = DEFAULT_MEMPOOL_API_URL,
    poll_interval: Annotated[
        float, typer.Option(envvar="POLL_INTERVAL", help="Seconds between cycles")
    ] = DEFAULT_POLL_INTERVAL,
    max_amount: Annotated[
        float, typer.Option(envvar="MAX_AMOUNT_BTC", help="Largest request accepted, in BTC")
    ] = DEFAULT_MAX_AMOUNT_BTC,
    min_fee: Annotated[
        float,
        typer.Option(envvar="MIN_FEE_PERCENTAGE", help="Minimum fee percentage (0.1 = 0.1%)"),
    ] = DEFAULT_MIN_FEE_PERCENTAGE,
    max_request_age: Annotated[
        float | None, typer.Option(help="Ignore requests older than this many seconds")
    ] = None,
    once: Annotated[bool, typer.Option("--once", help="Run a single cycle and exit")] = False,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Monitor pending boost requests and accept those with verified deposits."""
    setup_logging(log_level)

    config = load_config(
        mnemonic,
        ledger_url,
        mempool_api_url=mempool_api_url,
        poll_interval=poll_interval,
        risk={
            "max_amount_btc": max_amount,
            "min_fee_percentage": min_fee,
            "max_request_age": max_request_age,
        },
    )

    logger.info("Starting ckBoost liquidity provider bot")
    logger.info(
        f"Configuration: interval={config.poll_interval}s, "
        f"max_amount={config.risk.max_amount_btc} BTC, "
        f"min_fee={config.risk.min_fee_percentage}%"
    )

    try:
        asyncio.run(run_booster(config, once=once))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.exception(f"Fatal error: {e}")
        raise typer.Exit(1)


@app.command()
def status(
    mnemonic: MnemonicOption = None,
    ledger_url: LedgerUrlOption = None,
    log_level: LogLevelOption = "WARNING",
) -> None:
    """Show our booster account and the pending boost requests."""
    setup_logging(log_level)
    config = load_config(mnemonic, ledger_url)

    async def _status() -> None:
        ledger = create_ledger_client(config)
        try:
            account = await ledger.get_booster_account()
            requests = await ledger.list_pending()
        except (httpx.HTTPError, LedgerError) as e:
            logger.error(f"Failed to query ledger: {e}")
            raise typer.Exit(1)
        finally:
            await ledger.close()

        typer.echo(f"Booster: {ledger.identity.principal}")
        if account is None:
            typer.echo("Account: not registered")
        else:
            typer.echo(f"Available balance: {format_btc(account.available_balance)} BTC")
            typer.echo(f"Total deposited:   {format_btc(account.total_deposited)} BTC")
        typer.echo(f"Pending requests: {len(requests)}")
        for request in requests:
            address = request.deposit_address or "-"
            typer.echo(
                f"  #{request.id} {format_btc(request.amount)} BTC "
                f"fee<={request.max_fee_percentage}% address={address}"
            )

    asyncio.run(_status())


@app.command()
def credit_deposit(
    amount: Annotated[float, typer.Argument(help="Amount already transferred, in BTC")],
    mnemonic: MnemonicOption = None,
    ledger_url: LedgerUrlOption = None,
    log_level: LogLevelOption = "INFO",
) -> None:
    """Credit a completed top-up transfer to our booster account."""
    setup_logging(log_level)
    config = load_config(mnemonic, ledger_url)
    sats = btc_to_sats(amount)
    if sats <= 0:
        logger.error(f"Amount must be positive, got {amount}")
        raise typer.Exit(1)

    async def _credit() -> None:
        ledger = create_ledger_client(config)
        try:
            account = await ledger.update_booster_deposit(ledger.identity.principal, sats)
        except (httpx.HTTPError, LedgerError) as e:
            logger.error(f"Failed to update deposit: {e}")
            raise typer.Exit(1)
        finally:
            await ledger.close()
        typer.echo(f"Updated available balance: {format_btc(account.available_balance)} BTC")

    asyncio.run(_credit())


@app.command()
def show_request(
    request_id: Annotated[int, typer.Argument(help="Boost request id")],
    mnemonic: MnemonicOption = None,
    ledger_url: LedgerUrlOption = None,
    log_level: LogLevelOption = "WARNING",
) -> None:
    """Show a single boost request."""
    setup_logging(log_level)
    config = load_config(mnemonic, ledger_url)

    async def _show() -> None:
        ledger = create_ledger_client(config)
        try:
            request = await ledger.get_boost_request(request_id)
        except (httpx.HTTPError, LedgerError) as e:
            logger.error(f"Failed to fetch boost request {request_id}: {e}")
            raise typer.Exit(1)
        finally:
            await ledger.close()
        if request is None:
            typer.echo(f"Boost request {request_id} not found", err=True)
            raise typer.Exit(1)
        typer.echo(request.model_dump_json(indent=2))

    asyncio.run(_show())


@app.command()
def identity(mnemonic: MnemonicOption = None) -> None:
    """Print the booster identity derived from the mnemonic."""
    if not mnemonic:
        typer.echo("MNEMONICS environment variable is not set (or pass --mnemonic)", err=True)
        raise typer.Exit(1)
    try:
        booster_identity = BoosterIdentity.from_mnemonic(mnemonic)
    except IdentityError as e:
        typer.echo(str(e), err=True)
        raise typer.Exit(1)
    typer.echo(booster_identity.principal)


def main() -> None:  # pragma: no cover
    app()


if __name__ == "__main__":
    main()
