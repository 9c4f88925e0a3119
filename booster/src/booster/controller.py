"""
Settlement controller: one reconciliation cycle over the pending boost requests.

Flow per request:
1. Skip requests that are no longer claimable (not pending, booster assigned)
2. Check our available balance against the request amount
3. Require a deposit address
4. Apply the risk policy (before any explorer query)
5. Observe the deposit address for an exact, non-replaceable payment
6. Claim the request; mark the deposit txid only once the ledger accepted
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum

from loguru import logger

from booster.dedup import DedupRegistry
from booster.ledger import ClaimStatus, RequestRepository
from booster.models import BoosterAccount, BoostRequest, expected_fee, format_btc
from booster.observer import DepositObserver, MatchStatus
from booster.risk import RiskPolicy, ThresholdRiskPolicy


class RequestOutcome(str, Enum):
    SKIPPED_NOT_PENDING = "skipped_not_pending"
    SKIPPED_INSUFFICIENT_FUNDS = "skipped_insufficient_funds"
    SKIPPED_NO_ADDRESS = "skipped_no_address"
    SKIPPED_RISK = "skipped_risk"
    NO_MATCH = "no_match"
    AMOUNT_MISMATCH = "amount_mismatch"
    RBF_PENDING = "rbf_pending"
    CLAIMED = "claimed"
    RACE_LOST = "race_lost"
    ERROR = "error"


_MATCH_OUTCOMES = {
    MatchStatus.NO_MATCH: RequestOutcome.NO_MATCH,
    MatchStatus.AMOUNT_MISMATCH: RequestOutcome.AMOUNT_MISMATCH,
    MatchStatus.RBF_PENDING: RequestOutcome.RBF_PENDING,
}


@dataclass
class CycleReport:
    outcomes: dict[int, RequestOutcome] = field(default_factory=dict)
    error: str | None = None

    def record(self, request_id: int, outcome: RequestOutcome) -> None:
        self.outcomes[request_id] = outcome

    @property
    def counts(self) -> Counter[RequestOutcome]:
        return Counter(self.outcomes.values())

    @property
    def claimed(self) -> list[int]:
        return [rid for rid, outcome in self.outcomes.items() if outcome == RequestOutcome.CLAIMED]

    def summary(self) -> str:
        if self.error:
            return f"cycle aborted: {self.error}"
        if not self.outcomes:
            return "no pending requests"
        parts = [f"{outcome.value}={count}" for outcome, count in sorted(self.counts.items())]
        return f"{len(self.outcomes)} requests evaluated ({', '.join(parts)})"


class SettlementController:
    """
    Evaluates pending boost requests sequentially and claims verified ones.

    The dedup registry is owned here and handed to the observer on each call.
    """

    def __init__(
        self,
        repository: RequestRepository,
        observer: DepositObserver,
        risk_policy: RiskPolicy | None = None,
        registry: DedupRegistry | None = None,
    ):
        self.repository = repository
        self.observer = observer
        self.risk_policy: RiskPolicy = risk_policy or ThresholdRiskPolicy()
        self.registry = registry if registry is not None else DedupRegistry()

    async def run_cycle(self) -> CycleReport:
        report = CycleReport()

        try:
            requests = await self.repository.list_pending()
            logger.info(f"Found {len(requests)} pending boost requests")
            if not requests:
                return report

            account = await self.repository.get_booster_account()
        except Exception as e:
            logger.warning(f"Could not fetch ledger state, retrying next cycle: {e}")
            report.error = str(e)
            return report

        if account is None:
            logger.warning("No booster account found, skipping cycle")
            report.error = "no booster account"
            return report

        logger.info(f"Our available balance: {format_btc(account.available_balance)} BTC")

        now = datetime.now(UTC)
        for request in requests:
            try:
                outcome = await self.process_request(request, account, now)
            except Exception as e:
                logger.error(f"Error processing request {request.id}: {e}")
                outcome = RequestOutcome.ERROR
            report.record(request.id, outcome)

        logger.info(report.summary())
        return report

    async def process_request(
        self,
        request: BoostRequest,
        account: BoosterAccount,
        now: datetime | None = None,
    ) -> RequestOutcome:
        logger.debug(
            f"Processing boost request {request.id}: amount={format_btc(request.amount)}, "
            f"max_fee={request.max_fee_percentage}%, "
            f"confirmations_required={request.confirmations_required}"
        )

        if not request.is_pending or request.is_assigned:
            logger.info(
                f"Request {request.id} is no longer claimable "
                f"(status={request.status.value}, booster={request.booster})"
            )
            return RequestOutcome.SKIPPED_NOT_PENDING

        if account.available_balance < request.amount:
            logger.info(
                f"Insufficient balance for request {request.id}. "
                f"Required: {format_btc(request.amount)}, "
                f"Available: {format_btc(account.available_balance)}"
            )
            return RequestOutcome.SKIPPED_INSUFFICIENT_FUNDS

        if request.deposit_address is None:
            logger.info(f"Request {request.id} has no deposit address, skipping")
            return RequestOutcome.SKIPPED_NO_ADDRESS

        reason = self.risk_policy.rejection_reason(request, now)
        if reason is not None:
            logger.info(f"Request {request.id} rejected by risk policy: {reason}")
            return RequestOutcome.SKIPPED_RISK

        match = await self.observer.observe(
            request.deposit_address, request.amount, self.registry
        )
        if not match.is_match:
            return _MATCH_OUTCOMES[match.status]

        assert match.txid is not None
        return await self._claim(request, match.txid)

    async def _claim(self, request: BoostRequest, txid: str) -> RequestOutcome:
        logger.info(f"Accepting boost request {request.id} (deposit {txid})...")
        result = await self.repository.claim(request.id)

        if result.status == ClaimStatus.ACCEPTED:
            self.registry.mark(txid)
            fee = expected_fee(request.amount, request.max_fee_percentage)
            logger.info(f"Successfully accepted boost request {request.id}: {result.message}")
            logger.info(
                f"Expected fee earnings: {format_btc(fee)} BTC "
                f"({request.max_fee_percentage:.2f}%)"
            )
            return RequestOutcome.CLAIMED

        if result.status == ClaimStatus.ALREADY_CLAIMED:
            logger.warning(f"Request {request.id} was already accepted by another booster")
            return RequestOutcome.RACE_LOST

        logger.error(f"Failed to accept boost request {request.id}: {result.message}")
        return RequestOutcome.ERROR


async def ensure_booster_account(
    repository: RequestRepository, min_deposit: int
) -> BoosterAccount:
    """
    Make sure we are registered as a booster and report whether a top-up is due.

    Funding the account happens outside this process; a low balance only
    produces a warning.
    """
    account = await repository.get_booster_account()
    if account is None:
        logger.info("Registering as booster...")
        account = await repository.register_booster_account()
        logger.info("Registration successful")

    logger.info(
        f"Booster account {account.owner}: available={format_btc(account.available_balance)} BTC, "
        f"total deposited={format_btc(account.total_deposited)} BTC"
    )

    if account.available_balance < min_deposit:
        logger.warning(
            f"Available balance {format_btc(account.available_balance)} BTC is below the "
            f"top-up threshold of {format_btc(min_deposit)} BTC. "
            "Transfer funds to the booster account and credit them with `credit-deposit`."
        )

    return account
