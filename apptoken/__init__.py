"""
apptoken - Ed25519-signed authentication tokens for multi-tenant applications.

An application holds an Ed25519 key pair. It issues compact, JWS-compatible
tokens asserting its own identity, optionally a user's, for a bounded
lifetime; anyone holding the public key can verify them.
"""

__version__ = "1.0.0"

# Token model
from .token import Token, TokenKind

# Keys
from .keys import KeyPair, TokenPrivateKey, TokenPublicKey, generate_keypair

# Issuance and verification
from .builder import TokenBuilder
from .verifier import TokenVerifier

# Errors
from .exceptions import (
    KeyFormatError,
    TokenAlgorithmError,
    TokenError,
    TokenFormatError,
    TokenStateError,
    TokenVerificationError,
)

__all__ = [
    "__version__",
    # Token model
    "Token",
    "TokenKind",
    # Keys
    "KeyPair",
    "TokenPrivateKey",
    "TokenPublicKey",
    "generate_keypair",
    # Issuance and verification
    "TokenBuilder",
    "TokenVerifier",
    # Errors
    "TokenError",
    "TokenFormatError",
    "TokenAlgorithmError",
    "KeyFormatError",
    "TokenStateError",
    "TokenVerificationError",
]
