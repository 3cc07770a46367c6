# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0


class SigningError(Exception):
    """Top-level exception to capture signing-related errors."""


class ValidationError(SigningError, ValueError):
    """A request, identity, or signing property can't be used to produce a
    signature."""


class URLParseError(ValidationError):
    """The request URL couldn't be parsed into a scheme, host, and path."""


class DecodeError(SigningError, ValueError):
    """A percent-encoded value is malformed or doesn't decode to valid UTF-8."""
