# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Percent-encoding primitives used to build canonical paths and query strings.

SigV4 requires every byte outside the RFC 3986 unreserved set to be escaped, which
is stricter than what most URL libraries produce.
"""

import re
from urllib.parse import quote, unquote_to_bytes

from .exceptions import DecodeError

# Sub-delimiters left alone by ``encodeURIComponent``-style encoders.
_RFC3986_RESERVED_RE = re.compile(r"[!'()*\x00-\x1f\x7f]")
_MALFORMED_ESCAPE_RE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def uri_encode(value: str, safe: str = "") -> str:
    """Percent-encode everything except unreserved characters and ``safe``.

    :param value: The text to encode. Non-ASCII characters are encoded as UTF-8.
    :param safe: Additional characters to leave as-is, such as ``/`` for paths.
    """
    return quote(value, safe=safe)


def encode_rfc3986(value: str) -> str:
    """Escape the characters that generic URL encoders leave unescaped but that
    SigV4 requires to be percent-encoded."""
    return _RFC3986_RESERVED_RE.sub(lambda m: f"%{ord(m.group(0)):02X}", value)


def encode(value: str) -> str:
    """Fully encode a single path segment, query key, or query value."""
    return encode_rfc3986(uri_encode(value))


def decode(value: str) -> str:
    """Reverse percent-encoding.

    :param value: The percent-encoded text.
    :returns: The decoded text.
    :raises DecodeError: If an escape is malformed or the decoded bytes aren't
        valid UTF-8.
    """
    if match := _MALFORMED_ESCAPE_RE.search(value):
        raise DecodeError(
            f"Malformed percent-encoding at position {match.start()} of {value!r}."
        )
    try:
        return unquote_to_bytes(value).decode("utf-8")
    except UnicodeDecodeError as e:
        raise DecodeError(f"{value!r} does not decode to valid UTF-8: {e}") from e
