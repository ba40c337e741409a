"""
Transaction Signer - handles transaction signing.

Produces canonical, recoverable secp256k1 signatures in ``SIG_K1_`` form.
"""

import hashlib
from typing import Optional

import structlog
from ecdsa import SECP256k1, BadSignatureError, SigningKey, VerifyingKey
from ecdsa.util import sigdecode_string, sigencode_string_canonize

from hdsigner.errors import SigningKeyUnavailable
from hdsigner.keys.encoding import (
    public_key_from_text,
    public_key_to_text,
    signature_from_text,
    signature_to_text,
    wif_decode,
)
from hdsigner.tx.transaction import SignedTransaction, Transaction

logger = structlog.get_logger(__name__)

RECOVERY_HEADER = 27 + 4  # compressed key
MAX_SIGNING_ATTEMPTS = 256


def is_canonical(rs: bytes) -> bool:
    """Check that r and s both fit the chain's canonical 32-byte form."""
    return (
        not rs[0] & 0x80
        and not (rs[0] == 0 and not rs[1] & 0x80)
        and not rs[32] & 0x80
        and not (rs[32] == 0 and not rs[33] & 0x80)
    )


def recover_public_key(digest: bytes, signature: str) -> str:
    """Recover the ``EOS...`` public key that produced a signature."""
    recovery_id, rs = signature_from_text(signature)
    candidates = VerifyingKey.from_public_key_recovery_with_digest(
        rs, digest, SECP256k1, hashfunc=hashlib.sha256, sigdecode=sigdecode_string,
    )
    if not 0 <= recovery_id < len(candidates):
        raise ValueError(f"Invalid recovery id: {recovery_id}")
    return public_key_to_text(candidates[recovery_id].to_string("compressed"))


class TransactionSigner:
    """
    Signs digests and transactions with a single private key.

    The private key is taken from WIF text, usually the output of
    ``KeyNode.get_private_key()``. Signing is deterministic (RFC 6979).
    """

    def __init__(self, private_key: Optional[str] = None):
        """
        Initialize the transaction signer.

        Args:
            private_key: WIF-encoded private key
        """
        self._signing_key: Optional[SigningKey] = None
        self._public_key: Optional[bytes] = None
        if private_key is not None:
            self.load_key(private_key)

    def load_key(self, private_key: str) -> None:
        """Load a WIF-encoded private key."""
        raw = wif_decode(private_key)
        self._signing_key = SigningKey.from_string(raw, curve=SECP256k1)
        self._public_key = self._signing_key.get_verifying_key().to_string("compressed")
        logger.debug("signing_key_loaded", public_key=self.public_key)

    @property
    def is_loaded(self) -> bool:
        """Check if a signing key is loaded."""
        return self._signing_key is not None

    @property
    def public_key(self) -> Optional[str]:
        if self._public_key is None:
            return None
        return public_key_to_text(self._public_key)

    def _require_key(self) -> SigningKey:
        if not self._signing_key:
            raise SigningKeyUnavailable("No signing key loaded")
        return self._signing_key

    def sign_digest(self, digest: bytes) -> str:
        """
        Sign a 32-byte digest.

        Returns:
            ``SIG_K1_`` signature text
        """
        signing_key = self._require_key()

        for attempt in range(MAX_SIGNING_ATTEMPTS):
            entropy = attempt.to_bytes(32, "big") if attempt else b""
            rs = signing_key.sign_digest_deterministic(
                digest,
                hashfunc=hashlib.sha256,
                sigencode=sigencode_string_canonize,
                extra_entropy=entropy,
            )
            if is_canonical(rs):
                break
        else:
            raise RuntimeError("Could not produce a canonical signature")

        candidates = VerifyingKey.from_public_key_recovery_with_digest(
            rs, digest, SECP256k1, hashfunc=hashlib.sha256, sigdecode=sigdecode_string,
        )
        for recovery_id, candidate in enumerate(candidates):
            if candidate.to_string("compressed") == self._public_key:
                return signature_to_text(bytes([RECOVERY_HEADER + recovery_id]) + rs)

        raise RuntimeError("Signature does not recover to the signing key")

    def verify_digest(self, digest: bytes, signature: str) -> bool:
        """Check a signature against this signer's public key."""
        self._require_key()
        return verify_public_key(digest, signature, self.public_key)

    def sign_transaction(self, transaction: Transaction) -> SignedTransaction:
        """
        Sign a transaction.

        Args:
            transaction: The transaction to sign

        Returns:
            Signed transaction
        """
        signature = self.sign_digest(transaction.signing_digest())
        logger.debug("transaction_signed", tx_id=transaction.id[:16] + "...")
        return SignedTransaction(transaction, (signature,))


def verify_public_key(digest: bytes, signature: str, public_key: str) -> bool:
    """Check a signature against an ``EOS...`` public key."""
    verifying_key = VerifyingKey.from_string(public_key_from_text(public_key), curve=SECP256k1)
    _, rs = signature_from_text(signature)
    try:
        return verifying_key.verify_digest(rs, digest, sigdecode=sigdecode_string)
    except BadSignatureError:
        return False
