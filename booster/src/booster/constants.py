"""
Bitcoin and ckBoost constants.
"""

from __future__ import annotations

SATS_PER_BTC = 100_000_000

# BIP125: an input with nSequence below 0xfffffffe signals replaceability
MAX_BIP125_RBF_SEQUENCE = 0xFFFFFFFD
SEQUENCE_FINAL = 0xFFFFFFFF

DEFAULT_MEMPOOL_API_URL = "https://mempool.space/testnet4/api"

DEFAULT_POLL_INTERVAL = 10.0  # seconds
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds

# Risk defaults (display units, i.e. BTC and percent)
DEFAULT_MAX_AMOUNT_BTC = 1.0
DEFAULT_MIN_FEE_PERCENTAGE = 0.1

# Booster account top-up threshold: 10 ckTESTBTC
DEFAULT_MIN_DEPOSIT = 10 * SATS_PER_BTC

# Ledger error fragments meaning another booster won the request
ALREADY_CLAIMED_MARKERS = ("already accepted", "already claimed")
