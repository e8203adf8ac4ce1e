"""
Token data model and wire format.

A token is three dot-separated Base64URL segments:

    header.payload.signature

where the header is {"alg":"EdDSA","typ":"app"|"user"|"anon"} and the payload
is {"app":<app id>,"exp":<epoch seconds>,"uid":<user id>}, with "uid" present
only on user tokens. The first two segments form the canonical (signable)
string that the Ed25519 signature covers.
"""

from __future__ import annotations

import math
import uuid
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, Optional, Union

from apptoken import config
from apptoken.codec import b64url_decode, decode_record, encode_record
from apptoken.exceptions import TokenAlgorithmError, TokenFormatError, TokenStateError

ALGORITHM = "EdDSA"


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


class TokenKind(str, Enum):
    """Closed set of token kinds. The value is the wire string used in "typ"."""

    APPLICATION = "app"
    USER = "user"
    ANONYMOUS = "anon"

    @property
    def wire(self) -> str:
        return self.value

    @classmethod
    def from_wire(cls, value: Any) -> "TokenKind":
        """
        Resolve a kind from its wire string.

        Raises:
            TokenFormatError: If the value is not a known kind.
        """
        for kind in cls:
            if kind.value == value:
                return kind
        raise TokenFormatError(f"Invalid token type: {value!r}")


class Token:
    """
    One authentication assertion: who (application, optionally user) and until when.

    Tokens are immutable. The canonical form is computed on first use and
    kept; a parsed token keeps the exact segments it was parsed from instead,
    so verification checks what was transmitted.

    Example:
        >>> token = Token(TokenKind.USER, app_id, user_id="alice")
        >>> signed = private_key.sign(token)
        >>> wire = signed.render()
        >>> Token.parse(wire).user_id
        'alice'
    """

    def __init__(
        self,
        kind: TokenKind,
        app_id: Union[str, uuid.UUID],
        expiration: Optional[datetime] = None,
        user_id: Optional[str] = None,
        signature: Optional[str] = None,
    ):
        """
        Create a token.

        Args:
            kind: The token kind.
            app_id: Issuing application ID (a UUID is stored as its string form).
            expiration: Expiry instant. Naive datetimes are taken as UTC.
                Defaults to now plus DEFAULT_TTL_SECONDS.
            user_id: Required for USER tokens, forbidden for the other kinds.
            signature: Base64URL signature, if already known.

        Raises:
            TokenFormatError: If a field is missing or kind and user_id disagree.
        """
        if not isinstance(kind, TokenKind):
            kind = TokenKind.from_wire(kind)
        if isinstance(app_id, uuid.UUID):
            app_id = str(app_id)
        if not isinstance(app_id, str) or not app_id:
            raise TokenFormatError("Token requires a non-empty app_id")

        if kind is TokenKind.USER:
            if not isinstance(user_id, str) or not user_id:
                raise TokenFormatError("User tokens require a non-empty user_id")
        elif user_id is not None:
            raise TokenFormatError(f"{kind.name.lower()} tokens cannot carry a user_id")

        if expiration is None:
            expiration = utc_now() + timedelta(seconds=config.DEFAULT_TTL_SECONDS)
        elif not isinstance(expiration, datetime):
            raise TokenFormatError("Token expiration must be a datetime")
        elif expiration.tzinfo is None:
            expiration = expiration.replace(tzinfo=timezone.utc)

        self._kind = kind
        self._app_id = app_id
        self._expiration = expiration
        self._user_id = user_id
        self._signature = signature
        self._canonical: Optional[str] = None

    # -------------------------------------------------------------------------
    # Fields
    # -------------------------------------------------------------------------

    @property
    def kind(self) -> TokenKind:
        return self._kind

    @property
    def app_id(self) -> str:
        return self._app_id

    @property
    def expiration(self) -> datetime:
        return self._expiration

    @property
    def expiration_epoch(self) -> int:
        """Expiration as whole seconds since the epoch (sub-second part dropped)."""
        return math.floor(self._expiration.timestamp())

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id

    @property
    def signature(self) -> Optional[str]:
        return self._signature

    @property
    def is_signed(self) -> bool:
        return self._signature is not None

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """
        True if `now` (default: the current time) is strictly after expiration.

        A naive `now` is taken as UTC, as for the expiration itself.
        """
        if now is None:
            now = utc_now()
        elif now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        return now > self._expiration

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def header(self) -> Dict[str, Any]:
        return {"alg": ALGORITHM, "typ": self._kind.wire}

    def payload(self) -> Dict[str, Any]:
        return {"app": self._app_id, "exp": self.expiration_epoch, "uid": self._user_id}

    def canonical_form(self) -> str:
        """
        The signable "header.payload" string.

        Computed once and memoized. For parsed tokens this is the transmitted
        text, not a re-encoding of the parsed fields.
        """
        if self._canonical is None:
            self._canonical = f"{encode_record(self.header())}.{encode_record(self.payload())}"
        return self._canonical

    def render(self) -> str:
        """
        The full "header.payload.signature" wire string.

        Raises:
            TokenStateError: If the token has not been signed.
        """
        if self._signature is None:
            raise TokenStateError("Token signature is missing")
        return f"{self.canonical_form()}.{self._signature}"

    def with_signature(self, signature: str) -> "Token":
        """
        Return a copy of this token carrying `signature`.

        The copy shares the memoized canonical form, so a parsed token keeps
        its transmitted bytes. This token is left unchanged.
        """
        if not isinstance(signature, str) or not signature:
            raise TokenFormatError("Signature must be a non-empty base64url string")
        signed = Token(self._kind, self._app_id, self._expiration, self._user_id, signature)
        signed._canonical = self.canonical_form()
        return signed

    @classmethod
    def parse(cls, wire: str) -> "Token":
        """
        Parse a wire string into a Token.

        Neither the signature nor the expiration is checked; use
        TokenPublicKey.verify() and is_expired() (or TokenVerifier) for that.

        Raises:
            TokenFormatError: On a wrong segment count, bad Base64URL or JSON,
                an unknown kind, or missing/mistyped payload fields.
            TokenAlgorithmError: If the header algorithm is not EdDSA.
        """
        if not isinstance(wire, str):
            raise TokenFormatError("Token must be a string")

        segments = wire.split(".")
        if len(segments) != 3:
            raise TokenFormatError(f"Invalid token: expected 3 segments, got {len(segments)}")
        if not all(segments):
            raise TokenFormatError("Invalid token: empty segment")

        header_segment, payload_segment, signature = segments
        header = decode_record(header_segment)
        payload = decode_record(payload_segment)
        b64url_decode(signature)

        if header.get("alg") != ALGORITHM:
            raise TokenAlgorithmError(f"Invalid token algorithm: {header.get('alg')!r}")
        kind = TokenKind.from_wire(header.get("typ"))

        app_id = payload.get("app")
        if not isinstance(app_id, str):
            raise TokenFormatError("Token payload 'app' must be a string")

        exp = payload.get("exp")
        if not isinstance(exp, int) or isinstance(exp, bool):
            raise TokenFormatError("Token payload 'exp' must be an integer")
        try:
            expiration = datetime.fromtimestamp(exp, tz=timezone.utc)
        except (OverflowError, OSError, ValueError) as e:
            raise TokenFormatError(f"Token payload 'exp' out of range: {exp}") from e

        user_id = payload.get("uid")
        if user_id is not None and not isinstance(user_id, str):
            raise TokenFormatError("Token payload 'uid' must be a string")

        token = cls(kind, app_id, expiration, user_id, signature)
        token._canonical = f"{header_segment}.{payload_segment}"
        return token

    def __str__(self) -> str:
        return self.render()

    def __repr__(self) -> str:
        return (
            f"Token(kind={self._kind.name}, app_id={self._app_id!r}, "
            f"expiration={self._expiration.isoformat()}, user_id={self._user_id!r}, "
            f"signed={self.is_signed})"
        )
