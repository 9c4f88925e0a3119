"""
Deposit observation: match explorer transactions against a boost request.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from loguru import logger

from booster.dedup import DedupRegistry
from booster.models import MempoolTransaction, ObservedTransaction, format_btc


class MempoolSource(Protocol):
    async def get_address_txs(self, address: str) -> list[MempoolTransaction]: ...


class MatchStatus(str, Enum):
    NO_MATCH = "no_match"
    RBF_PENDING = "rbf_pending"
    AMOUNT_MISMATCH = "amount_mismatch"
    MATCHED = "matched"


@dataclass(frozen=True)
class MatchOutcome:
    status: MatchStatus
    txid: str | None = None
    received: int = 0

    @classmethod
    def no_match(cls) -> MatchOutcome:
        return cls(MatchStatus.NO_MATCH)

    @classmethod
    def rbf_pending(cls, txid: str) -> MatchOutcome:
        return cls(MatchStatus.RBF_PENDING, txid=txid)

    @classmethod
    def amount_mismatch(cls, txid: str, received: int) -> MatchOutcome:
        return cls(MatchStatus.AMOUNT_MISMATCH, txid=txid, received=received)

    @classmethod
    def matched(cls, txid: str, received: int) -> MatchOutcome:
        return cls(MatchStatus.MATCHED, txid=txid, received=received)

    @property
    def is_match(self) -> bool:
        return self.status == MatchStatus.MATCHED


class DepositObserver:
    """
    Looks for an unprocessed deposit paying exactly the expected amount.

    The registry belongs to the caller and is only read here. Marking a txid is
    the caller's job and happens after the ledger has acknowledged the claim.
    """

    def __init__(self, mempool: MempoolSource):
        self.mempool = mempool

    @staticmethod
    def select_candidate(
        transactions: list[MempoolTransaction], address: str, registry: DedupRegistry
    ) -> MempoolTransaction | None:
        # First seen wins, explorer order
        for tx in transactions:
            if registry.seen(tx.txid):
                continue
            if tx.pays(address):
                return tx
        return None

    async def observe(
        self, address: str, expected_amount: int, registry: DedupRegistry
    ) -> MatchOutcome:
        logger.debug(f"Checking transactions for address: {address}")
        transactions = await self.mempool.get_address_txs(address)

        candidate = self.select_candidate(transactions, address, registry)
        if candidate is None:
            logger.debug(f"No new transactions found for address {address}")
            return MatchOutcome.no_match()

        observed = ObservedTransaction.from_mempool(candidate, address)
        logger.debug(f"Found transaction {observed.txid} paying {address}")

        if observed.replaceable:
            logger.info(f"Transaction {observed.txid} signals RBF, waiting for it to settle")
            return MatchOutcome.rbf_pending(observed.txid)

        if observed.matched_value != expected_amount:
            logger.info(
                f"Amount mismatch for {address}: expected {format_btc(expected_amount)}, "
                f"received {format_btc(observed.matched_value)} (tx {observed.txid})"
            )
            return MatchOutcome.amount_mismatch(observed.txid, observed.matched_value)

        logger.info(
            f"Valid deposit {observed.txid} of {format_btc(observed.matched_value)} BTC "
            f"to {address}"
        )
        return MatchOutcome.matched(observed.txid, observed.matched_value)
