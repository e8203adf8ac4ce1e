"""
Unit tests for TokenBuilder and end-to-end issue/parse/verify flows.
"""

import json
import time
import uuid

import pytest
from jwcrypto import jwk, jws

from apptoken import Token, TokenBuilder, TokenKind, TokenPublicKey, config
from apptoken.codec import b64url_decode, b64url_encode
from apptoken.exceptions import TokenFormatError


def _decode(segment: str) -> dict:
    return json.loads(b64url_decode(segment))


class TestBuilderInitialization:
    """Tests for TokenBuilder initialization."""

    def test_missing_app_id(self, keypair):
        with pytest.raises(ValueError, match="app_id"):
            TokenBuilder("", keypair.private_key)

    def test_missing_private_key(self, app_id):
        with pytest.raises(ValueError, match="private_key"):
            TokenBuilder(app_id, None)

    def test_uuid_app_id(self, keypair):
        app_id = uuid.uuid4()
        builder = TokenBuilder(app_id, keypair.private_key)
        assert Token.parse(builder.app()).app_id == str(app_id)

    def test_default_ttl_from_config(self, keypair, app_id, monkeypatch):
        monkeypatch.setattr(config, "DEFAULT_TTL_SECONDS", 60)
        assert TokenBuilder(app_id, keypair.private_key).ttl_seconds == 60

    def test_public_key(self, builder, keypair):
        assert isinstance(builder.public_key(), TokenPublicKey)
        assert builder.public_key() == keypair.public_key


class TestKnownKeyScenario:
    """The fixed seed with app ID "a" issuing a user token for "testify"."""

    def test_user_token(self, known_key):
        builder = TokenBuilder("a", known_key)
        before = int(time.time())
        wire = builder.user("testify")
        after = int(time.time())

        segments = wire.split(".")
        assert len(segments) == 3
        assert b64url_decode(segments[0]) == b'{"alg":"EdDSA","typ":"user"}'

        payload = _decode(segments[1])
        assert list(payload) == ["app", "exp", "uid"]
        assert payload["app"] == "a"
        assert payload["uid"] == "testify"
        assert before + 900 <= payload["exp"] <= after + 900

        assert known_key.public_key().verify(Token.parse(wire)) is True

    def test_all_kinds_verify(self, known_key):
        builder = TokenBuilder("a", known_key)
        public_key = known_key.public_key()
        for wire in (builder.app(), builder.user("123"), builder.anonymous()):
            assert public_key.verify(Token.parse(wire)) is True


class TestIssuance:
    """Tests for the three issue methods."""

    def test_application_token(self, builder, app_id):
        header, payload, _ = builder.issue_application_token().split(".")
        assert _decode(header) == {"alg": "EdDSA", "typ": "app"}
        assert set(_decode(payload)) == {"app", "exp"}
        assert _decode(payload)["app"] == app_id

    def test_user_token(self, builder):
        header, payload, _ = builder.issue_user_token("alice").split(".")
        assert _decode(header)["typ"] == "user"
        assert _decode(payload)["uid"] == "alice"

    def test_anonymous_token(self, builder):
        header, payload, _ = builder.issue_anonymous_token().split(".")
        assert _decode(header)["typ"] == "anon"
        assert "uid" not in _decode(payload)

    def test_short_aliases(self, builder):
        assert Token.parse(builder.app()).kind is TokenKind.APPLICATION
        assert Token.parse(builder.user("u")).kind is TokenKind.USER
        assert Token.parse(builder.anonymous()).kind is TokenKind.ANONYMOUS

    def test_user_token_requires_user_id(self, builder):
        with pytest.raises(TokenFormatError):
            builder.issue_user_token("")

    def test_signature_is_unpadded_base64url(self, builder):
        signature = builder.app().split(".")[2]
        assert "=" not in signature
        assert len(b64url_decode(signature)) == 64

    def test_default_expiration_not_expired(self, builder):
        assert Token.parse(builder.app()).is_expired() is False

    def test_negative_ttl_is_expired(self, keypair, app_id):
        builder = TokenBuilder(app_id, keypair.private_key, ttl_seconds=-1)
        assert Token.parse(builder.app()).is_expired() is True

    def test_build_returns_signed_token(self, builder, keypair):
        token = builder.build(TokenKind.USER, "alice")
        assert token.is_signed
        assert token.expiration.microsecond == 0
        assert keypair.public_key.verify(token)


class TestRoundTrip:
    """parse(render(sign(build(...)))) reproduces the issued token."""

    @pytest.mark.parametrize(
        "kind,user_id",
        [(TokenKind.APPLICATION, None), (TokenKind.USER, "user-42"), (TokenKind.ANONYMOUS, None)],
    )
    def test_fields_survive(self, builder, kind, user_id):
        issued = builder.build(kind, user_id)
        parsed = Token.parse(issued.render())
        assert parsed.kind is issued.kind
        assert parsed.app_id == issued.app_id
        assert parsed.expiration == issued.expiration
        assert parsed.user_id == issued.user_id
        assert parsed.canonical_form() == issued.canonical_form()

    def test_unicode_user_id(self, builder, keypair):
        parsed = Token.parse(builder.user("Zoë 世界"))
        assert parsed.user_id == "Zoë 世界"
        assert keypair.public_key.verify(parsed)


class TestSignatureBinding:
    """Signatures verify only under the issuing key and over the issued bytes."""

    def test_other_key_rejects(self, builder, keypair, other_keypair):
        parsed = Token.parse(builder.user("alice"))
        assert keypair.public_key.verify(parsed) is True
        assert other_keypair.public_key.verify(parsed) is False

    def test_modified_payload_rejected(self, builder, keypair):
        """Swapping in a different but well-formed payload breaks the signature."""
        header, payload, signature = builder.user("alice").split(".")
        claims = _decode(payload)
        claims["uid"] = "mallory"
        forged_payload = b64url_encode(json.dumps(claims, separators=(",", ":")))
        forged = Token.parse(f"{header}.{forged_payload}.{signature}")
        assert keypair.public_key.verify(forged) is False

    def test_any_payload_character_flip_rejected(self, builder, keypair):
        """Every single-character change to the payload segment fails parse or verify."""
        header, payload, signature = builder.user("alice").split(".")
        for i, char in enumerate(payload):
            replacement = "A" if char != "A" else "B"
            tampered = payload[:i] + replacement + payload[i + 1:]
            try:
                token = Token.parse(f"{header}.{tampered}.{signature}")
            except TokenFormatError:
                continue
            assert keypair.public_key.verify(token) is False

    def test_signature_trailing_bits_rejected(self, builder):
        """Only one text form of a signature is accepted, so the wire string is unique."""
        header, payload, signature = builder.user("testify").split(".")
        alphabet = "ABCDEFGHIJKLMNOPQRSTUVWXYZabcdefghijklmnopqrstuvwxyz0123456789-_"
        last = alphabet.index(signature[-1])
        assert last & 0b1111 == 0
        altered = signature[:-1] + alphabet[last | 0b0001]
        with pytest.raises(TokenFormatError):
            Token.parse(f"{header}.{payload}.{altered}")

    def test_changed_kind_rejected(self, builder, keypair):
        _, payload, signature = builder.anonymous().split(".")
        app_header = b64url_encode('{"alg":"EdDSA","typ":"app"}')
        assert keypair.public_key.verify(Token.parse(f"{app_header}.{payload}.{signature}")) is False


class TestJwsInterop:
    """Issued tokens are standard JWS compact serializations."""

    def test_jwcrypto_verifies_issued_token(self, builder, keypair, app_id):
        verifier = jws.JWS()
        verifier.deserialize(builder.user("alice"))
        verifier.verify(jwk.JWK.from_json(keypair.public_key.to_jwk()))

        claims = json.loads(verifier.payload)
        assert claims["app"] == app_id
        assert claims["uid"] == "alice"
