"""
booster - ckBoost liquidity provider

Watches pending boost requests on the ckBoost ledger, verifies the matching
deposits on the Bitcoin network and accepts the requests it is willing to
front.
"""

__version__ = "0.1.0"

from booster.controller import CycleReport, RequestOutcome, SettlementController
from booster.dedup import DedupRegistry
from booster.ledger import ClaimResult, ClaimStatus, LedgerError, RequestRepository
from booster.models import BoosterAccount, BoostRequest, BoostStatus
from booster.observer import DepositObserver, MatchOutcome, MatchStatus
from booster.risk import AcceptAllPolicy, RiskPolicy, ThresholdRiskPolicy
from booster.scheduler import Scheduler

__all__ = [
    "AcceptAllPolicy",
    "BoostRequest",
    "BoostStatus",
    "BoosterAccount",
    "ClaimResult",
    "ClaimStatus",
    "CycleReport",
    "DedupRegistry",
    "DepositObserver",
    "LedgerError",
    "MatchOutcome",
    "MatchStatus",
    "RequestOutcome",
    "RequestRepository",
    "RiskPolicy",
    "Scheduler",
    "SettlementController",
    "ThresholdRiskPolicy",
]
