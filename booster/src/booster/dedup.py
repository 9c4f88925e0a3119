"""
Process-lifetime registry of deposit transactions already acted upon.

This is a local guard only. The ledger's claim semantics remain authoritative:
a txid forgotten across a restart can at worst produce a claim attempt that
the ledger rejects as already accepted.
"""

from __future__ import annotations


class DedupRegistry:
    def __init__(self) -> None:
        self._txids: set[str] = set()

    def seen(self, txid: str) -> bool:
        return txid in self._txids

    def mark(self, txid: str) -> None:
        self._txids.add(txid)

    def __contains__(self, txid: object) -> bool:
        return txid in self._txids

    def __len__(self) -> int:
        return len(self._txids)
