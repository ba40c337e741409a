"""
Error taxonomy.

Every failure is a deterministic input-validation failure, raised at the
point of violation. ``field`` names the offending input where there is one.
"""

from typing import Optional


class HDSignerError(Exception):
    """Base class for all errors raised by hdsigner."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


# Key derivation and export

class KeyNodeError(HDSignerError):
    """Raised when a key node cannot be built or used."""
    pass


class InvalidSeed(KeyNodeError):
    pass


class InvalidWIF(KeyNodeError):
    pass


class InvalidPrivateKey(KeyNodeError):
    pass


class InvalidExtendedKey(KeyNodeError):
    pass


class InvalidPath(KeyNodeError):
    pass


class NotDerivable(KeyNodeError):
    """Raised when deriving from a raw keypair or a public-only node."""
    pass


class KeyUnavailable(KeyNodeError):
    """Raised when a node lacks the material for the requested encoding."""
    pass


# Transaction construction

class TransactionBuildError(HDSignerError):
    """Raised when transaction construction fails."""
    pass


class SigningKeyUnavailable(TransactionBuildError):
    pass


class ValidationError(TransactionBuildError):
    """Raised when an operation input is missing or malformed."""
    pass


class InvalidAmount(ValidationError):
    pass


class InvalidExpiration(ValidationError):
    pass


class InvalidHeaderValue(ValidationError):
    pass


class InvalidAccountName(ValidationError):
    pass


class MissingRequiredField(ValidationError):
    def __init__(self, field: str, message: Optional[str] = None):
        super().__init__(message or f"Missing required field: {field}", field=field)
