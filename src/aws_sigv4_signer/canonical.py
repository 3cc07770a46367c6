# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Construction of the SigV4 canonical request."""

import logging
import re
from dataclasses import dataclass
from hashlib import sha256
from typing import Final, Self
from urllib.parse import parse_qsl

from ._http import URI, AWSRequest, Fields
from .encoding import decode, encode, encode_rfc3986, uri_encode
from .exceptions import DecodeError, ValidationError

logger: Final = logging.getLogger(__name__)

UNSIGNABLE_HEADERS: Final[frozenset[str]] = frozenset(
    (
        "authorization",
        "content-type",
        "content-length",
        "user-agent",
        "presigned-expires",
        "expect",
        "x-amzn-trace-id",
        "range",
        "connection",
    )
)
CONTENT_SHA256_HEADER: Final = "X-Amz-Content-Sha256"
UNSIGNED_PAYLOAD: Final = "UNSIGNED-PAYLOAD"
EMPTY_SHA256_HASH: Final = (
    "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"
)

_CONSECUTIVE_SLASHES_RE = re.compile(r"/+")


def remove_dot_segments(path: str) -> str:
    """Removes dot segments from a path per :rfc:`3986#section-5.2.4`."""
    output: list[str] = []
    for segment in path.split("/"):
        if segment == ".":
            continue
        elif segment != "..":
            output.append(segment)
        elif output:
            output.pop()
    if path.startswith("/") and (not output or output[0]):
        output.insert(0, "")
    if output and path.endswith(("/.", "/..")):
        output.append("")
    return "/".join(output)


def format_canonical_path(
    path: str | None, *, service: str, single_encode: bool = False
) -> str:
    """Build the canonical URI.

    S3 object keys are signed in their decoded form, so the wire path is decoded
    once before being encoded again. Every other service signs the normalized
    path. Unless ``single_encode`` is set, the path ends up encoded twice.
    """
    if not path:
        path = "/"

    if service == "s3":
        try:
            path = decode(path.replace("+", " "))
        except DecodeError as e:
            logger.debug("Signing undecoded S3 path: %s", e)
    else:
        path = _CONSECUTIVE_SLASHES_RE.sub("/", remove_dot_segments(path))

    if not single_encode:
        path = uri_encode(path, safe="/")
    return encode_rfc3986(path)


def parse_query(query: str | None) -> list[tuple[str, str]]:
    """Decode a query string into ordered ``(key, value)`` pairs.

    Blank values are kept and ``+`` is read as a space.
    """
    if not query:
        return []
    return parse_qsl(query, keep_blank_values=True)


def format_canonical_query(params: list[tuple[str, str]], *, service: str) -> str:
    """Build the canonical query string from decoded query parameters.

    Parameters with an empty key are dropped. S3 only signs the first occurrence
    of a repeated key.
    """
    seen_keys: set[str] = set()
    query_parts: list[tuple[str, str]] = []
    for key, value in params:
        if not key:
            continue
        if service == "s3":
            if key in seen_keys:
                continue
            seen_keys.add(key)
        query_parts.append((encode(key), encode(value)))
    # key-value pairs must be in sorted order for their encoded forms.
    return "&".join(f"{key}={value}" for key, value in sorted(query_parts))


def signed_header_names(fields: Fields, *, all_headers: bool = False) -> list[str]:
    """The sorted, lowercase names of the headers to sign, always including
    ``host``."""
    names = {"host"}
    names.update(
        name
        for name in (field.name.lower() for field in fields)
        if all_headers or name not in UNSIGNABLE_HEADERS
    )
    return sorted(names)


def format_canonical_headers(
    fields: Fields, *, destination: URI, signed_headers: list[str]
) -> str:
    """Build the canonical header block, one newline-terminated ``name:value``
    line per signed header.

    The ``host`` value is taken from ``destination`` rather than from the headers.
    """
    lines: list[str] = []
    for name in signed_headers:
        if name == "host":
            value = destination.host_header
        elif (field := fields.get(name)) is not None:
            value = field.as_string()
        else:
            value = ""
        lines.append(f"{name}:{' '.join(value.split())}\n")
    return "".join(lines)


def compute_payload_hash(
    request: AWSRequest, *, service: str, sign_query: bool = False
) -> str:
    """Hex SHA-256 of the request body, or the value to sign in its place.

    An explicit ``X-Amz-Content-Sha256`` header is used verbatim. Presigned S3
    requests sign ``UNSIGNED-PAYLOAD``.

    :raises ValidationError: If the body is a stream and no hash was supplied.
    """
    if (hash_field := request.fields.get(CONTENT_SHA256_HEADER)) is not None:
        return hash_field.as_string()
    if service == "s3" and sign_query:
        return UNSIGNED_PAYLOAD

    body = request.body
    if body is None:
        return EMPTY_SHA256_HASH
    if isinstance(body, str):
        body = body.encode("utf-8")
    if not isinstance(body, bytes | bytearray):
        raise ValidationError(
            "body must be bytes or str, unless you include the "
            f"{CONTENT_SHA256_HEADER} header. Received {type(body)}."
        )
    return sha256(body).hexdigest()


@dataclass(frozen=True, kw_only=True)
class CanonicalRequest:
    """The components of a canonical request.

    The SigV4 specification defines the canonical request to be:
        <HTTPMethod>\\n
        <CanonicalURI>\\n
        <CanonicalQueryString>\\n
        <CanonicalHeaders>\\n
        <SignedHeaders>\\n
        <HashedPayload>

    where ``CanonicalHeaders`` carries its own trailing newline.
    """

    method: str
    path: str
    query: str
    headers: str
    signed_headers: str
    payload_hash: str

    @classmethod
    def from_request(
        cls,
        request: AWSRequest,
        *,
        service: str,
        sign_query: bool = False,
        all_headers: bool = False,
        single_encode: bool = False,
    ) -> Self:
        """Canonicalize ``request`` as it will be sent.

        :param request: The request, with all headers and query parameters that
            take part in signing already applied.
        :param service: The signing service. S3 gets special path, query, and
            payload handling.
        :param sign_query: Whether the signature goes in the query string.
        :param all_headers: Sign headers that are normally left unsigned.
        :param single_encode: Don't encode the path a second time.
        """
        destination = request.destination
        signed_headers = signed_header_names(request.fields, all_headers=all_headers)
        return cls(
            method=request.method.upper(),
            path=format_canonical_path(
                destination.path, service=service, single_encode=single_encode
            ),
            query=format_canonical_query(
                parse_query(destination.query), service=service
            ),
            headers=format_canonical_headers(
                request.fields, destination=destination, signed_headers=signed_headers
            ),
            signed_headers=";".join(signed_headers),
            payload_hash=compute_payload_hash(
                request, service=service, sign_query=sign_query
            ),
        )

    def build(self) -> str:
        return (
            f"{self.method}\n"
            f"{self.path}\n"
            f"{self.query}\n"
            f"{self.headers}\n"
            f"{self.signed_headers}\n"
            f"{self.payload_hash}"
        )

    def __str__(self) -> str:
        return self.build()
