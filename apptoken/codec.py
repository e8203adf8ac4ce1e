"""
Encoding helpers shared by tokens and keys.

Token segments use unpadded Base64URL (RFC 7515 style) and compact JSON with
sorted keys, both provided by jwcrypto. Key material uses standard padded
Base64, which is a different alphabet and is kept in separate helpers so the
two are never mixed up.
"""

import base64
import binascii
import re
from typing import Any, Dict, Union

from jwcrypto.common import base64url_decode, base64url_encode, json_decode, json_encode

from apptoken.exceptions import TokenFormatError

_B64URL_RE = re.compile(r"^[A-Za-z0-9_-]*$")


def b64url_encode(data: Union[bytes, str]) -> str:
    """Encode bytes (or UTF-8 text) as Base64URL without padding."""
    return base64url_encode(data)


def b64url_decode(segment: str) -> bytes:
    """
    Decode an unpadded Base64URL string.

    Unlike the lenient stdlib decoder, characters outside the URL-safe
    alphabet and padding are rejected rather than silently skipped. The
    encoding must also be canonical: unused trailing bits must be zero, so
    each byte string has exactly one accepted text form.

    Raises:
        TokenFormatError: If the segment is not valid unpadded Base64URL.
    """
    if not isinstance(segment, str) or not _B64URL_RE.match(segment):
        raise TokenFormatError("Invalid base64url segment")
    try:
        decoded = base64url_decode(segment)
    except (ValueError, binascii.Error) as e:
        raise TokenFormatError(f"Invalid base64url segment: {e}") from e
    if b64url_encode(decoded) != segment:
        raise TokenFormatError("Non-canonical base64url segment")
    return decoded


def b64_encode(data: bytes) -> str:
    """Encode bytes as standard padded Base64 (used for key material)."""
    return base64.b64encode(data).decode("ascii")


def b64_decode(text: str) -> bytes:
    """
    Decode standard padded Base64.

    Raises:
        ValueError: If the text contains characters outside the alphabet or
            has incorrect padding.
    """
    return base64.b64decode(text, validate=True)


def encode_record(record: Dict[str, Any]) -> str:
    """
    Serialize a header or payload record to its segment form.

    Fields whose value is None are dropped entirely, never emitted as null.
    Keys are sorted and separators compact, so equal records always produce
    identical bytes.
    """
    present = {k: v for k, v in record.items() if v is not None}
    return b64url_encode(json_encode(present))


def decode_record(segment: str) -> Dict[str, Any]:
    """
    Parse a header or payload segment back into a dict.

    Raises:
        TokenFormatError: If the segment is not Base64URL, not UTF-8 JSON
            (including JSON nested too deeply to decode), or does not hold a
            JSON object.
    """
    raw = b64url_decode(segment)
    try:
        record = json_decode(raw)
    except (ValueError, RecursionError) as e:
        raise TokenFormatError(f"Invalid token JSON: {e}") from e
    if not isinstance(record, dict):
        raise TokenFormatError("Token segment must be a JSON object")
    return record
