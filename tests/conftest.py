"""
Shared pytest fixtures for apptoken tests.
"""

import pytest

from apptoken import KeyPair, TokenBuilder, TokenPrivateKey, generate_keypair

# Fixed seed shared with other implementations of the token format
KNOWN_SEED_B64 = "pX5CBNVs0MRYRm6/eUq0kBCf63Dkv3Dv7+9yhFLO+hk="

APP_ID = "0b6a4e5c-3f0e-4c8e-9a57-2d1f6c1e8b42"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    """Keep credentials from the developer's shell out of the tests."""
    for name in ("APPTOKEN_APP_ID", "APPTOKEN_PRIVATE_KEY", "APPTOKEN_PUBLIC_KEY"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def keypair() -> KeyPair:
    """Generate a fresh keypair for testing."""
    return generate_keypair()


@pytest.fixture
def other_keypair() -> KeyPair:
    """A second, unrelated keypair."""
    return generate_keypair()


@pytest.fixture
def known_seed() -> str:
    return KNOWN_SEED_B64


@pytest.fixture
def known_key(known_seed: str) -> TokenPrivateKey:
    """Private key loaded from the fixed seed."""
    return TokenPrivateKey.from_encoded(known_seed)


@pytest.fixture
def app_id() -> str:
    return APP_ID


@pytest.fixture
def builder(keypair: KeyPair, app_id: str) -> TokenBuilder:
    """Create a TokenBuilder with test keys."""
    return TokenBuilder(app_id, keypair.private_key)
