"""
Ed25519 signing keys for apptoken.

TokenPrivateKey signs tokens, TokenPublicKey verifies them. Both are exchanged
as standard (padded, non-URL) Base64 of the raw 32-byte key, or as OKP JWKs.

Example:
    >>> keys = generate_keypair()
    >>> signed = keys.private_key.sign(Token(TokenKind.APPLICATION, app_id))
    >>> keys.public_key.verify(signed)
    True
"""

import binascii
import logging
from dataclasses import dataclass
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey, Ed25519PublicKey
from jwcrypto import jwk
from jwcrypto.common import json_decode

from apptoken.codec import b64_decode, b64_encode, b64url_decode, b64url_encode
from apptoken.exceptions import KeyFormatError, TokenFormatError, TokenStateError
from apptoken.token import Token

logger = logging.getLogger(__name__)

KEY_LENGTH = 32
SIGNATURE_LENGTH = 64


def _decode_key_material(encoded: Union[bytes, str]) -> bytes:
    """Raw bytes pass through; strings are standard Base64."""
    if isinstance(encoded, (bytes, bytearray)):
        return bytes(encoded)
    if isinstance(encoded, str):
        try:
            return b64_decode(encoded.strip())
        except (ValueError, binascii.Error) as e:
            raise KeyFormatError(f"Invalid base64 key: {e}") from e
    raise KeyFormatError(f"Key must be bytes or a base64 string, not {type(encoded).__name__}")


def _load_okp_jwk(jwk_json: str, need_private: bool) -> dict:
    """Parse a JWK and return its parameters, insisting on an Ed25519 OKP key."""
    try:
        key = jwk.JWK.from_json(jwk_json)
        params = json_decode(key.export_private() if key.has_private else key.export_public())
    except Exception as e:
        raise KeyFormatError(f"Invalid JWK: {e}") from e

    if params.get("kty") != "OKP" or params.get("crv") != "Ed25519":
        raise KeyFormatError("Key must be an Ed25519 key (OKP with crv=Ed25519)")
    if need_private and "d" not in params:
        raise KeyFormatError("JWK has no private component")
    return params


class TokenPublicKey:
    """An Ed25519 public key that verifies token signatures."""

    def __init__(self, key: Ed25519PublicKey):
        self._key = key

    @classmethod
    def from_private(cls, private_key: "TokenPrivateKey") -> "TokenPublicKey":
        return private_key.public_key()

    @classmethod
    def from_encoded(cls, encoded: Union[bytes, str]) -> "TokenPublicKey":
        """
        Load a public key from raw bytes or their Base64 string form.

        Raises:
            KeyFormatError: If the input is not a 32-byte Ed25519 public key.
        """
        raw = _decode_key_material(encoded)
        if len(raw) != KEY_LENGTH:
            raise KeyFormatError(f"Ed25519 public key must be {KEY_LENGTH} bytes, got {len(raw)}")
        try:
            return cls(Ed25519PublicKey.from_public_bytes(raw))
        except ValueError as e:
            raise KeyFormatError(f"Invalid Ed25519 public key: {e}") from e

    @classmethod
    def from_jwk(cls, jwk_json: str) -> "TokenPublicKey":
        """Load from an OKP/Ed25519 JWK JSON string (private JWKs are accepted too)."""
        params = _load_okp_jwk(jwk_json, need_private=False)
        try:
            return cls.from_encoded(b64url_decode(params.get("x", "")))
        except TokenFormatError as e:
            raise KeyFormatError(f"Invalid JWK 'x' parameter: {e}") from e

    def verify_raw(self, data: bytes, signature: bytes) -> bool:
        """
        Check an Ed25519 signature over `data`.

        Returns False, never raises, for a signature that does not match or
        is not 64 bytes long.
        """
        if len(signature) != SIGNATURE_LENGTH:
            return False
        try:
            self._key.verify(bytes(signature), bytes(data))
            return True
        except InvalidSignature:
            return False

    def verify(self, token: Token) -> bool:
        """
        Check a token's signature against its canonical form.

        Raises:
            TokenStateError: If the token carries no signature.
        """
        if token.signature is None:
            raise TokenStateError("Cannot verify a token without a signature")
        try:
            signature = b64url_decode(token.signature)
        except TokenFormatError as e:
            logger.debug(f"Undecodable signature on token for app {token.app_id}: {e}")
            return False

        valid = self.verify_raw(token.canonical_form().encode("utf-8"), signature)
        if not valid:
            logger.debug(f"Signature mismatch on {token.kind.name} token for app {token.app_id}")
        return valid

    def raw_bytes(self) -> bytes:
        return self._key.public_bytes(
            encoding=serialization.Encoding.Raw, format=serialization.PublicFormat.Raw
        )

    def encode(self) -> str:
        """Standard Base64 of the raw 32-byte key."""
        return b64_encode(self.raw_bytes())

    def to_jwk(self) -> str:
        """Public JWK JSON string (kty=OKP, crv=Ed25519)."""
        return jwk.JWK.from_pyca(self._key).export_public()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenPublicKey):
            return NotImplemented
        return self.raw_bytes() == other.raw_bytes()

    def __hash__(self) -> int:
        return hash(self.raw_bytes())

    def __str__(self) -> str:
        return self.encode()

    def __repr__(self) -> str:
        return f"TokenPublicKey({self.encode()!r})"


class TokenPrivateKey:
    """
    An Ed25519 private key that signs tokens.

    Use TokenPrivateKey.from_encoded() to load an existing key from its Base64
    string form. generate_random() is mostly useful for initial setup of an
    application's key pair.
    """

    def __init__(self, key: Ed25519PrivateKey):
        self._key = key

    @classmethod
    def generate_random(cls) -> "TokenPrivateKey":
        """Create a new key from the operating system's secure random source."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_encoded(cls, encoded: Union[bytes, str]) -> "TokenPrivateKey":
        """
        Load a private key from its raw 32-byte seed or the seed's Base64 form.

        Raises:
            KeyFormatError: If the input is not a valid Ed25519 private key.
        """
        raw = _decode_key_material(encoded)
        if len(raw) != KEY_LENGTH:
            raise KeyFormatError(f"Ed25519 private key must be {KEY_LENGTH} bytes, got {len(raw)}")
        try:
            return cls(Ed25519PrivateKey.from_private_bytes(raw))
        except ValueError as e:
            raise KeyFormatError(f"Invalid Ed25519 private key: {e}") from e

    @classmethod
    def from_jwk(cls, jwk_json: str) -> "TokenPrivateKey":
        """Load from a private OKP/Ed25519 JWK JSON string."""
        params = _load_okp_jwk(jwk_json, need_private=True)
        try:
            return cls.from_encoded(b64url_decode(params["d"]))
        except TokenFormatError as e:
            raise KeyFormatError(f"Invalid JWK 'd' parameter: {e}") from e

    def sign_raw(self, data: bytes) -> bytes:
        """Sign `data` and return the 64-byte Ed25519 signature."""
        return self._key.sign(bytes(data))

    def compute_signature(self, token: Token) -> str:
        """Base64URL signature over the token's canonical form."""
        return b64url_encode(self.sign_raw(token.canonical_form().encode("utf-8")))

    def sign(self, token: Token) -> Token:
        """
        Sign a token.

        Returns:
            A signed copy of `token`; the argument itself is not modified.
        """
        return token.with_signature(self.compute_signature(token))

    def public_key(self) -> TokenPublicKey:
        return TokenPublicKey(self._key.public_key())

    def raw_bytes(self) -> bytes:
        return self._key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def encode(self) -> str:
        """Standard Base64 of the raw 32-byte seed. Keep this secret."""
        return b64_encode(self.raw_bytes())

    def to_jwk(self) -> str:
        """Private JWK JSON string (kty=OKP, crv=Ed25519, includes 'd')."""
        return jwk.JWK.from_pyca(self._key).export_private()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TokenPrivateKey):
            return NotImplemented
        return self.raw_bytes() == other.raw_bytes()

    def __hash__(self) -> int:
        return hash(self.raw_bytes())

    def __str__(self) -> str:
        return self.encode()

    def __repr__(self) -> str:
        return f"TokenPrivateKey(public={self.public_key().encode()!r})"


@dataclass(frozen=True)
class KeyPair:
    """An application's signing key together with its public half."""

    private_key: TokenPrivateKey
    public_key: TokenPublicKey

    @classmethod
    def from_private(cls, private_key: TokenPrivateKey) -> "KeyPair":
        return cls(private_key=private_key, public_key=private_key.public_key())


def generate_keypair() -> KeyPair:
    """
    Generates a fresh Ed25519 key pair for a new application.

    Store the private key securely; publish the public key to whoever
    verifies the application's tokens.
    """
    keypair = KeyPair.from_private(TokenPrivateKey.generate_random())
    logger.info(f"Generated new Ed25519 key pair (public key {keypair.public_key.encode()})")
    return keypair
