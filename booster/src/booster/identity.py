"""
Booster identity: a signing key derived from the operator's mnemonic.
"""

from __future__ import annotations

import hashlib

from coincurve import PrivateKey

MNEMONIC_WORD_COUNT = 12


class IdentityError(ValueError):
    pass


def normalize_mnemonic(mnemonic: str) -> str:
    words = mnemonic.strip().split()
    if len(words) != MNEMONIC_WORD_COUNT:
        raise IdentityError(
            f"Invalid mnemonic length. Expected {MNEMONIC_WORD_COUNT} words, got {len(words)}."
        )
    return " ".join(words)


class BoosterIdentity:
    """
    Deterministic secp256k1 identity.

    The seed is SHA256 of the normalised mnemonic; the public identity is the
    compressed public key in hex. Ledger requests are authenticated by signing
    the request body.
    """

    def __init__(self, private_key: PrivateKey):
        self._private_key = private_key
        self.public_key_bytes = private_key.public_key.format(compressed=True)

    @classmethod
    def from_mnemonic(cls, mnemonic: str) -> BoosterIdentity:
        seed = hashlib.sha256(normalize_mnemonic(mnemonic).encode("utf-8")).digest()
        return cls(PrivateKey(seed))

    @property
    def principal(self) -> str:
        return self.public_key_bytes.hex()

    def sign(self, payload: bytes) -> str:
        """DER signature over SHA256(payload), hex encoded."""
        return self._private_key.sign(payload).hex()
