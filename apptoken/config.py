# apptoken/config.py
"""
Centralized configuration for apptoken.

All configurable values are read from environment variables with sensible defaults.
This allows different environments (dev, staging, production) to issue and accept
tokens with different lifetimes without code changes.

Usage:
    from apptoken.config import DEFAULT_TTL_SECONDS

    builder = TokenBuilder(app_id, key, ttl_seconds=DEFAULT_TTL_SECONDS)

Environment Variables:
    APPTOKEN_TTL_SECONDS: Lifetime of issued tokens (default: 900, i.e. 15 minutes)
    APPTOKEN_CLOCK_SKEW_SECONDS: Expiration leeway applied by TokenVerifier (default: 0)
    APPTOKEN_APP_ID: Application ID used by the CLI when --app-id is omitted
    APPTOKEN_PRIVATE_KEY: Base64 private key used by the CLI when --key is omitted
    APPTOKEN_PUBLIC_KEY: Base64 public key used by the CLI when --key is omitted
"""

import os
from typing import Final, Optional

# =============================================================================
# Token Lifetime
# =============================================================================

# Issued tokens expire this many seconds after creation
DEFAULT_TTL_SECONDS: Final[int] = int(os.getenv("APPTOKEN_TTL_SECONDS", "900"))

# Leeway granted to tokens whose expiration just passed
CLOCK_SKEW_SECONDS: Final[int] = int(os.getenv("APPTOKEN_CLOCK_SKEW_SECONDS", "0"))

# =============================================================================
# Credentials (CLI fallbacks)
# =============================================================================

ENV_APP_ID: Final[str] = "APPTOKEN_APP_ID"
ENV_PRIVATE_KEY: Final[str] = "APPTOKEN_PRIVATE_KEY"
ENV_PUBLIC_KEY: Final[str] = "APPTOKEN_PUBLIC_KEY"


def get_credential(name: str, override: Optional[str] = None) -> Optional[str]:
    """
    Resolve a credential, preferring an explicit value over the environment.

    Credentials are read at call time rather than import time so that a
    process can export them after apptoken has been imported.

    Args:
        name: Environment variable name (one of the ENV_* constants)
        override: Value given explicitly, e.g. on the command line

    Returns:
        The credential, or None if neither source provides one
    """
    return override or os.environ.get(name) or None


# =============================================================================
# Configuration Summary (for debugging)
# =============================================================================

def print_config() -> None:
    """Print current configuration (useful for debugging). Secrets are never printed."""
    print("apptoken Configuration:")
    print(f"  DEFAULT_TTL_SECONDS: {DEFAULT_TTL_SECONDS}")
    print(f"  CLOCK_SKEW_SECONDS:  {CLOCK_SKEW_SECONDS}")
    print(f"  APP_ID:              {os.environ.get(ENV_APP_ID, '(unset)')}")
    print(f"  PRIVATE_KEY:         {'(set)' if os.environ.get(ENV_PRIVATE_KEY) else '(unset)'}")
    print(f"  PUBLIC_KEY:          {'(set)' if os.environ.get(ENV_PUBLIC_KEY) else '(unset)'}")


if __name__ == "__main__":
    print_config()
