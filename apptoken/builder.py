"""
Token issuance for one application.

TokenBuilder binds an application ID to that application's private key and
produces signed wire tokens of each kind.
"""

import logging
import uuid
from datetime import timedelta
from typing import Optional, Union

from apptoken import config
from apptoken.keys import TokenPrivateKey, TokenPublicKey
from apptoken.token import Token, TokenKind, utc_now

logger = logging.getLogger(__name__)


class TokenBuilder:
    """
    Issues signed tokens for a fixed application.

    Tokens created by a builder expire `ttl_seconds` after creation
    (DEFAULT_TTL_SECONDS, 15 minutes unless configured otherwise).

    Example:
        >>> key = TokenPrivateKey.from_encoded(os.environ["APPTOKEN_PRIVATE_KEY"])
        >>> builder = TokenBuilder("4f1c...", key)
        >>> builder.user("alice")
        'eyJhbGciOiJFZERTQSIsInR5cCI6InVzZXIifQ.eyJhcHAiOi...'
    """

    def __init__(
        self,
        app_id: Union[str, uuid.UUID],
        private_key: TokenPrivateKey,
        ttl_seconds: Optional[int] = None,
    ):
        """
        Initialize the builder.

        Args:
            app_id: The application ID, usually a UUID.
            private_key: The application's signing key.
            ttl_seconds: Token lifetime override.

        Raises:
            ValueError: If app_id or private_key is missing.
        """
        if isinstance(app_id, uuid.UUID):
            app_id = str(app_id)
        if not app_id:
            raise ValueError("TokenBuilder requires 'app_id'")
        if private_key is None:
            raise ValueError("TokenBuilder requires 'private_key'")

        self.app_id = app_id
        self.ttl_seconds = ttl_seconds if ttl_seconds is not None else config.DEFAULT_TTL_SECONDS
        self._key = private_key

    def build(self, kind: TokenKind, user_id: Optional[str] = None) -> Token:
        """
        Create and sign a token of the given kind.

        The expiration is truncated to whole seconds, matching what the wire
        form can carry.
        """
        expiration = (utc_now() + timedelta(seconds=self.ttl_seconds)).replace(microsecond=0)
        token = self._key.sign(Token(kind, self.app_id, expiration, user_id))
        logger.debug(f"Issued {kind.name} token for app {self.app_id}, exp={token.expiration_epoch}")
        return token

    def issue_application_token(self) -> str:
        """Creates an APPLICATION token."""
        return self.build(TokenKind.APPLICATION).render()

    def issue_user_token(self, user_id: str) -> str:
        """Creates a USER token for `user_id`."""
        return self.build(TokenKind.USER, user_id).render()

    def issue_anonymous_token(self) -> str:
        """Creates an ANONYMOUS token."""
        return self.build(TokenKind.ANONYMOUS).render()

    app = issue_application_token
    user = issue_user_token
    anonymous = issue_anonymous_token

    def public_key(self) -> TokenPublicKey:
        """The public key matching this builder's signing key."""
        return self._key.public_key()
