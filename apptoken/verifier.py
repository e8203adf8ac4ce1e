"""
One-call token verification.

TokenVerifier bundles the steps a receiving service performs on an incoming
wire token: parse it, check it was issued for the expected application, check
the signature and check it has not expired.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Tuple, Union

from apptoken import config
from apptoken.exceptions import TokenAlgorithmError, TokenFormatError, TokenVerificationError
from apptoken.keys import TokenPublicKey
from apptoken.token import Token, utc_now

logger = logging.getLogger(__name__)


class TokenVerifier:
    """
    Verifies wire tokens against one application's public key.

    Example:
        >>> verifier = TokenVerifier(public_key, app_id="4f1c...")
        >>> valid, token = verifier.check(request.headers["Authorization"][7:])
        >>> if valid:
        ...     print(token.kind, token.user_id)
    """

    def __init__(
        self,
        public_key: Union[TokenPublicKey, str],
        app_id: Optional[str] = None,
        clock_skew_seconds: Optional[int] = None,
    ):
        """
        Initialize the verifier.

        Args:
            public_key: The issuing application's public key, or its Base64 form.
            app_id: If given, tokens issued for any other application are rejected.
            clock_skew_seconds: Leeway after expiration (default: CLOCK_SKEW_SECONDS).
        """
        if isinstance(public_key, str):
            public_key = TokenPublicKey.from_encoded(public_key)
        self._public_key = public_key
        self._app_id = app_id
        self._clock_skew = timedelta(
            seconds=clock_skew_seconds if clock_skew_seconds is not None else config.CLOCK_SKEW_SECONDS
        )

    def _evaluate(self, wire: str, now: Optional[datetime]) -> Tuple[Optional[str], Optional[Token]]:
        """Return (rejection reason or None, parsed token or None)."""
        if not wire:
            return "empty_token", None

        try:
            token = Token.parse(wire)
        except TokenAlgorithmError as e:
            logger.debug(f"Unsupported algorithm: {e}")
            return "unsupported_algorithm", None
        except TokenFormatError as e:
            logger.debug(f"Malformed token: {e}")
            return "malformed_token", None

        if self._app_id is not None and token.app_id != self._app_id:
            logger.debug(f"Token issued for app {token.app_id}, expected {self._app_id}")
            return "app_mismatch", token

        if not self._public_key.verify(token):
            return "invalid_signature", token

        now = now or utc_now()
        if token.is_expired(now - self._clock_skew):
            logger.debug(f"Token expired: exp={token.expiration_epoch}, now={int(now.timestamp())}")
            return "expired", token

        return None, token

    def check(self, wire: str, now: Optional[datetime] = None) -> Tuple[bool, Optional[Token]]:
        """
        Verify a wire token.

        Args:
            wire: The token string.
            now: Override for the current time.

        Returns:
            Tuple of (is_valid, Token or None). The token is only returned
            when it is valid.
        """
        reason, token = self._evaluate(wire, now)
        if reason is not None:
            return False, None
        return True, token

    def verify_or_raise(self, wire: str, now: Optional[datetime] = None) -> Token:
        """
        Verify a wire token, raising on rejection.

        Raises:
            TokenVerificationError: With `reason` set to one of empty_token,
                malformed_token, unsupported_algorithm, app_mismatch,
                invalid_signature or expired.
        """
        reason, token = self._evaluate(wire, now)
        if reason is not None:
            raise TokenVerificationError(reason)
        return token

