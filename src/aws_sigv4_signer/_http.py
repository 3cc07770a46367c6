# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Minimal HTTP request model consumed and produced by the signers.

Transport libraries have their own request types; these classes only carry what
SigV4 needs to see and are converted to and from strings and mappings at the edges.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import AsyncIterable, Iterable, Iterator, Mapping
from copy import deepcopy
from dataclasses import dataclass, replace
from typing import TypeAlias
from functools import cached_property
from urllib.parse import quote, urlsplit, urlunparse

from .exceptions import URLParseError, ValidationError

DEFAULT_PORTS: dict[str, int] = {"http": 80, "https": 443}

# Characters HTTP clients send unescaped in a path. Anything else is
# percent-encoded as UTF-8, and existing escapes are left alone.
_PATH_SAFE_CHARS = "/%!$&'()*+,;=:@~[]"

Body: TypeAlias = bytes | bytearray | str | Iterable[bytes] | AsyncIterable[bytes]


class Field:
    """A header name with one or more values.

    Names are case insensitive. The name is kept as given so it can be sent as-is,
    but lookups in :py:class:`Fields` are done on the lowercased name.
    """

    def __init__(self, *, name: str, values: Iterable[str] | None = None):
        self.name = name
        self.values: list[str] = list(values) if values is not None else []

    def add(self, value: str) -> None:
        """Append a value to a field."""
        self.values.append(value)

    def set(self, values: list[str]) -> None:
        """Overwrite existing field values."""
        self.values = values

    def as_string(self, delimiter: str = ",") -> str:
        """Get the values joined by ``delimiter``.

        Zero values produce the empty string and a single value is returned
        unmodified.
        """
        return delimiter.join(self.values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Field):
            return False
        return self.name == other.name and self.values == other.values

    def __repr__(self) -> str:
        return f"Field(name={self.name!r}, values={self.values!r})"


class Fields:
    def __init__(
        self,
        initial: Iterable[Field] | Mapping[str, str] | None = None,
    ):
        """Collection of header entries keyed by lowercased name.

        :param initial: Initial ``Field`` objects, or a plain mapping of header name
            to value. Names must be unique once lowercased.
        :raises ValidationError: If two names are equal once lowercased.
        """
        if isinstance(initial, Mapping):
            initial = [Field(name=k, values=[v]) for k, v in initial.items()]
        self.entries: OrderedDict[str, Field] = OrderedDict()
        for field in initial or ():
            key = self._normalize_field_name(field.name)
            if key in self.entries:
                raise ValidationError(
                    "Field names of the initial list of fields must be unique. "
                    f"{key!r} appears more than once."
                )
            self.entries[key] = field

    def set_field(self, field: Field) -> None:
        """Set or replace the entry for ``field.name``."""
        self.entries[self._normalize_field_name(field.name)] = field

    def get(self, key: str, default: Field | None = None) -> Field | None:
        return self[key] if key in self else default

    def __getitem__(self, name: str) -> Field:
        return self.entries[self._normalize_field_name(name)]

    def __delitem__(self, name: str) -> None:
        del self.entries[self._normalize_field_name(name)]

    def discard(self, name: str) -> None:
        """Remove the entry for ``name`` if there is one."""
        self.entries.pop(self._normalize_field_name(name), None)

    def _normalize_field_name(self, name: str) -> str:
        return name.lower()

    def as_dict(self) -> dict[str, str]:
        """Get a plain ``{name: value}`` mapping suitable for HTTP clients."""
        return {field.name: field.as_string() for field in self}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Fields):
            return False
        return self.entries == other.entries

    def __iter__(self) -> Iterator[Field]:
        yield from self.entries.values()

    def __len__(self) -> int:
        return len(self.entries)

    def __repr__(self) -> str:
        return f"Fields({list(self.entries.values())})"

    def __contains__(self, key: str) -> bool:
        return self._normalize_field_name(key) in self.entries


@dataclass(kw_only=True, frozen=True)
class URI:
    """Target location of an :py:class:`AWSRequest`."""

    scheme: str = "https"
    """For example ``http`` or ``https``."""

    username: str | None = None
    """Username part of the userinfo URI component."""

    password: str | None = None
    """Password part of the userinfo URI component."""

    host: str
    """The lowercase hostname. IPv6 literals keep their brackets."""

    port: int | None = None
    """An explicit port number."""

    path: str | None = None
    """Path component of the URI, as it appears on the wire."""

    query: str | None = None
    """Query component of the URI as string."""

    fragment: str | None = None
    """Part of the URI specification, but never transmitted."""

    @classmethod
    def from_string(cls, url: str) -> URI:
        """Parse an absolute URL.

        Raw characters in the path are percent-encoded as an HTTP client would send
        them. Existing escapes are kept.

        :raises ValidationError: If ``url`` is empty.
        :raises URLParseError: If ``url`` has no scheme or host, or its port or
            IPv6 literal is malformed.
        """
        if not url:
            raise ValidationError("A non-empty URL is required for signing.")
        try:
            parts = urlsplit(url)
            port = parts.port
        except ValueError as e:
            raise URLParseError(f"Unable to parse URL {url!r}: {e}") from e
        if not parts.scheme or not parts.hostname:
            raise URLParseError(f"URL {url!r} must include a scheme and a host.")

        host = parts.hostname
        if ":" in host:
            host = f"[{host}]"
        return cls(
            scheme=parts.scheme.lower(),
            username=parts.username,
            password=parts.password,
            host=host,
            port=port,
            path=quote(parts.path, safe=_PATH_SAFE_CHARS) or None,
            query=parts.query or None,
            fragment=parts.fragment or None,
        )

    @property
    def netloc(self) -> str:
        """Construct netloc string in format ``{username}:{password}@{host}:{port}``

        ``username``, ``password``, and ``port`` are only included if set. ``password``
        is ignored, unless ``username`` is also set.
        """
        return self._netloc

    # cached_property allows assignment even on frozen dataclasses, so it's kept
    # behind a read-only property.
    @cached_property
    def _netloc(self) -> str:
        if self.username is not None:
            password = "" if self.password is None else f":{self.password}"
            userinfo = f"{self.username}{password}@"
        else:
            userinfo = ""
        port = "" if self.port is None else f":{self.port}"
        return f"{userinfo}{self.host}{port}"

    @property
    def host_header(self) -> str:
        """The value of the ``Host`` header an HTTP client sends for this URI.

        Userinfo is never included and the port is omitted when it's the default
        for the scheme.
        """
        if self.port is None or DEFAULT_PORTS.get(self.scheme) == self.port:
            return self.host
        return f"{self.host}:{self.port}"

    def with_query(self, query: str | None) -> URI:
        return replace(self, query=query or None)

    def build(self) -> str:
        """Construct URI string representation.

        Returns a string of the form
        ``{scheme}://{username}:{password}@{host}:{port}{path}?{query}#{fragment}``
        """
        components = (
            self.scheme,
            self.netloc,
            self.path or "",
            "",  # params
            self.query or "",
            self.fragment or "",
        )
        return urlunparse(components)


class AWSRequest:
    def __init__(
        self,
        *,
        destination: URI,
        method: str,
        body: Body | None = None,
        fields: Fields | None = None,
    ):
        self.destination = destination
        self.method = method
        self.body = body
        self.fields = fields if fields is not None else Fields()

    @classmethod
    def from_url(
        cls,
        url: str,
        *,
        method: str | None = None,
        headers: Mapping[str, str] | Fields | None = None,
        body: Body | None = None,
    ) -> AWSRequest:
        """Build a request from a URL string and plain header mapping.

        :param method: The HTTP method. Defaults to ``POST`` when a body is given,
            otherwise ``GET``.
        :raises ValidationError: If ``url`` is empty, or
            ``headers`` repeats a name in different case.
        :raises URLParseError: If ``url`` can't be parsed.
        """
        if method is None:
            method = "POST" if body else "GET"
        fields = headers if isinstance(headers, Fields) else Fields(headers)
        return cls(
            destination=URI.from_string(url),
            method=method,
            body=body,
            fields=deepcopy(fields),
        )

    @property
    def url(self) -> str:
        return self.destination.build()

    def __deepcopy__(self, memo: dict[int, object] | None = None) -> AWSRequest:
        if memo is None:
            memo = {}

        if id(self) in memo:
            return memo[id(self)]  # type: ignore[return-value]

        # the destination is immutable and the body may be an iterator, so
        # only the fields are copied
        new_instance = self.__class__(
            destination=self.destination,
            body=self.body,
            method=self.method,
            fields=deepcopy(self.fields, memo),
        )
        memo[id(self)] = new_instance
        return new_instance

    def __repr__(self) -> str:
        return (
            f"AWSRequest(method={self.method!r}, url={self.url!r}, "
            f"fields={list(self.fields.entries)!r})"
        )
