"""
Exception hierarchy for apptoken.

Every error raised by the package derives from TokenError. Format and key
errors also derive from ValueError, state errors from RuntimeError, so callers
that only know the builtin types keep working.
"""

from typing import Optional


class TokenError(Exception):
    """Base class for all apptoken errors."""


class TokenFormatError(TokenError, ValueError):
    """The wire string, one of its segments, or a token field is malformed."""


class TokenAlgorithmError(TokenFormatError):
    """The token header names an algorithm other than EdDSA."""


class KeyFormatError(TokenError, ValueError):
    """A key encoding is not a valid Ed25519 key."""


class TokenStateError(TokenError, RuntimeError):
    """The token is missing something the operation needs (its signature)."""


class TokenVerificationError(TokenError):
    """
    Raised by TokenVerifier.verify_or_raise when a token is rejected.

    Attributes:
        reason: Short machine-readable rejection reason.
    """

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or f"Token rejected: {reason}")
