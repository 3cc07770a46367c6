# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""AWS SigV4 Signer computes AWS Signature Version 4 signatures for HTTP requests,
either as an ``Authorization`` header or as a presigned URL, for use with HTTP tools
such as AioHTTP, HTTPX, Requests, urllib3, etc."""

from __future__ import annotations

from ._http import URI, AWSRequest, Field, Fields
from ._identity import AWSCredentialIdentity
from .canonical import CanonicalRequest
from .client import AWSClient
from .exceptions import DecodeError, SigningError, URLParseError, ValidationError
from .inference import infer_service_region
from .keys import SigningKeyCache, derive_signing_key
from .signers import (
    AsyncSigV4Signer,
    SigningMode,
    SigV4Signer,
    SigV4SigningProperties,
)

__license__ = "Apache-2.0"
__version__ = "0.1.0"

__all__ = (
    "URI",
    "AWSClient",
    "AWSCredentialIdentity",
    "AWSRequest",
    "AsyncSigV4Signer",
    "CanonicalRequest",
    "DecodeError",
    "Field",
    "Fields",
    "SigV4Signer",
    "SigV4SigningProperties",
    "SigningError",
    "SigningKeyCache",
    "SigningMode",
    "URLParseError",
    "ValidationError",
    "derive_signing_key",
    "infer_service_region",
)
