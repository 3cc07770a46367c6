# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import datetime
import logging
from copy import deepcopy
from enum import Enum
from hashlib import sha256
from typing import Final, TypedDict
from urllib.parse import quote, urlencode

from ._http import AWSRequest, Field
from ._identity import validate_identity
from .canonical import (
    CONTENT_SHA256_HEADER,
    UNSIGNED_PAYLOAD,
    CanonicalRequest,
    parse_query,
    signed_header_names,
)
from .inference import infer_service_region
from .interfaces.identity import AWSCredentialsIdentity
from .keys import SigningKeyCache, hmac_sha256

logger: Final = logging.getLogger(__name__)

SIGV4_TIMESTAMP_FORMAT: Final = "%Y%m%dT%H%M%SZ"
SIGNING_ALGORITHM: Final = "AWS4-HMAC-SHA256"
DEFAULT_REGION: Final = "us-east-1"
DEFAULT_PRESIGN_EXPIRES: Final = 86400
IOT_DEVICE_GATEWAY: Final = "iotdevicegateway"


class SigV4SigningProperties(TypedDict, total=False):
    """Options controlling how a request is signed. Every key is optional."""

    service: str
    """Signing service name. Inferred from the URL when missing."""

    region: str
    """Signing region. Inferred from the URL when missing, falling back to
    ``us-east-1``."""

    date: str
    """Signing timestamp formatted as ``YYYYMMDDTHHMMSSZ``. Defaults to now, in
    UTC."""

    sign_query: bool
    """Presign the URL instead of adding an ``Authorization`` header."""

    append_session_token: bool
    """Add the session token after signing instead of signing it. Defaults to
    ``True`` only for the IoT device gateway."""

    all_headers: bool
    """Sign headers that are normally left out of the signature."""

    single_encode: bool
    """Don't encode the canonical path a second time."""

    expires: int
    """``X-Amz-Expires`` for presigned URLs. S3 presigned URLs default to one
    day."""


class SigningMode(Enum):
    """Where the signature is placed on the signed request."""

    HEADER = "header"
    """An ``Authorization`` header. The URL isn't modified."""

    QUERY = "query"
    """``X-Amz-*`` query parameters. The headers aren't modified."""


class SigV4Signer:
    """Applies the AWS Signature Version 4 algorithm to a single request.

    All options are resolved, and the fields taking part in the signature are
    applied to a private copy of the request, when the signer is constructed. Each
    call to :py:meth:`sign` then returns a new signed request, leaving the
    original untouched.

    Timestamps aren't refreshed, so a new signer is needed for every attempt at
    sending a request.
    """

    def __init__(
        self,
        *,
        request: AWSRequest,
        identity: AWSCredentialsIdentity,
        signing_properties: SigV4SigningProperties | None = None,
        cache: SigningKeyCache | None = None,
    ) -> None:
        """
        :param request: The request to sign.
        :param identity: A set of credentials representing an AWS Identity or role
            capacity.
        :param signing_properties: Options controlling the signature.
        :param cache: Signing keys to reuse. Share one between signers to skip key
            derivation for requests with the same date, region, and service.
        :raises ValidationError: If the identity is missing its access key ID or
            secret key, or is expired.
        """
        validate_identity(identity=identity)
        properties = signing_properties or SigV4SigningProperties()

        self._identity = identity
        self._cache = cache if cache is not None else SigningKeyCache()
        self._request = deepcopy(request)

        service = properties.get("service", "")
        region = properties.get("region", "")
        if not service or not region:
            inferred_service, inferred_region = infer_service_region(
                self._request.destination, self._request.fields
            )
            service = service or inferred_service
            region = region or inferred_region
        self.service: str = service
        self.region: str = region or DEFAULT_REGION
        self.datetime: str = properties.get("date") or _now()
        self.mode = (
            SigningMode.QUERY if properties.get("sign_query") else SigningMode.HEADER
        )
        self.append_session_token: bool = properties.get(
            "append_session_token", self.service == IOT_DEVICE_GATEWAY
        )
        self.all_headers: bool = properties.get("all_headers", False)
        self.single_encode: bool = properties.get("single_encode", False)
        # Scope format: <YYYYMMDD>/<AWS Region>/<AWS Service>/aws4_request
        self.credential_scope: str = (
            f"{self.datetime[:8]}/{self.region}/{self.service}/aws4_request"
        )

        self._apply_required_fields(expires=properties.get("expires"))

    @property
    def request(self) -> AWSRequest:
        """The request as it will be canonicalized, before a signature is added."""
        return self._request

    def _apply_required_fields(self, *, expires: int | None) -> None:
        request = self._request
        # The transport derives Host from the URL.
        request.fields.discard("Host")
        signed_token = (
            None if self.append_session_token else self._identity.session_token
        )

        if self.mode is SigningMode.HEADER:
            request.fields.set_field(Field(name="X-Amz-Date", values=[self.datetime]))
            if signed_token:
                request.fields.set_field(
                    Field(name="X-Amz-Security-Token", values=[signed_token])
                )
            if self.service == "s3" and CONTENT_SHA256_HEADER not in request.fields:
                request.fields.set_field(
                    Field(name=CONTENT_SHA256_HEADER, values=[UNSIGNED_PAYLOAD])
                )
            return

        params = parse_query(request.destination.query)
        _set_param(params, "X-Amz-Date", self.datetime)
        if signed_token:
            _set_param(params, "X-Amz-Security-Token", signed_token)
        if expires is not None:
            _set_param(params, "X-Amz-Expires", str(expires))
        elif self.service == "s3" and not _has_param(params, "X-Amz-Expires"):
            _set_param(params, "X-Amz-Expires", str(DEFAULT_PRESIGN_EXPIRES))
        signed_headers = signed_header_names(
            request.fields, all_headers=self.all_headers
        )
        _set_param(params, "X-Amz-Algorithm", SIGNING_ALGORITHM)
        _set_param(
            params,
            "X-Amz-Credential",
            f"{self._identity.access_key_id}/{self.credential_scope}",
        )
        _set_param(params, "X-Amz-SignedHeaders", ";".join(signed_headers))
        request.destination = request.destination.with_query(_encode_query(params))

    def canonical_request(self) -> CanonicalRequest:
        """The canonical request is a standardized string laying out the components used
        in the SigV4 signing algorithm. This is useful to quickly compare inputs to find
        signature mismatches and unintended variances.
        """
        return CanonicalRequest.from_request(
            self._request,
            service=self.service,
            sign_query=self.mode is SigningMode.QUERY,
            all_headers=self.all_headers,
            single_encode=self.single_encode,
        )

    def string_to_sign(self, canonical_request: CanonicalRequest | None = None) -> str:
        """The string to sign concatenates the formal identifier of the signing
        algorithm, the signing DateTime, the scope of the credentials, and a hash of
        the canonical request.

        The SigV4 specification defines the string to sign as:
            Algorithm \\n
            RequestDateTime \\n
            CredentialScope  \\n
            HashedCanonicalRequest
        """
        if canonical_request is None:
            canonical_request = self.canonical_request()
        return (
            f"{SIGNING_ALGORITHM}\n"
            f"{self.datetime}\n"
            f"{self.credential_scope}\n"
            f"{sha256(canonical_request.build().encode()).hexdigest()}"
        )

    def signature(self, canonical_request: CanonicalRequest | None = None) -> str:
        """Sign the string to sign with the key scoped to this signer's date,
        region, and service."""
        string_to_sign = self.string_to_sign(canonical_request)
        logger.debug("String to sign: %r", string_to_sign)
        signing_key = self._cache.get_signing_key(
            secret_key=self._identity.secret_access_key,
            date=self.datetime[:8],
            region=self.region,
            service=self.service,
        )
        return hmac_sha256(key=signing_key, value=string_to_sign).hex()

    def authorization(self) -> str:
        """The value of the ``Authorization`` header for this request."""
        canonical_request = self.canonical_request()
        return self.generate_authorization_field(
            signed_headers=canonical_request.signed_headers,
            signature=self.signature(canonical_request),
        ).as_string()

    def generate_authorization_field(
        self, *, signed_headers: str, signature: str
    ) -> Field:
        """Generate the `Authorization` field.

        :param signed_headers:
            The semicolon-separated field names used in signing.
        :param signature:
            Final hash of the SigV4 signing algorithm generated from the
            canonical request and string to sign.
        """
        credential = f"{self._identity.access_key_id}/{self.credential_scope}"
        auth_str = (
            f"{SIGNING_ALGORITHM} Credential={credential}, "
            f"SignedHeaders={signed_headers}, Signature={signature}"
        )
        return Field(name="Authorization", values=[auth_str])

    def sign(self) -> AWSRequest:
        """Generate and apply a SigV4 signature to a copy of the request."""
        canonical_request = self.canonical_request()
        signature = self.signature(canonical_request)
        logger.debug(
            "Signing %s request in %s mode with scope %s and signed headers %s.",
            canonical_request.method,
            self.mode.value,
            self.credential_scope,
            canonical_request.signed_headers,
        )

        signed_request = deepcopy(self._request)
        if self.mode is SigningMode.QUERY:
            params = [("X-Amz-Signature", signature)]
            token = self._identity.session_token
            if token and self.append_session_token:
                params.append(("X-Amz-Security-Token", token))
            destination = signed_request.destination
            query = _encode_query(params)
            if destination.query:
                query = f"{destination.query}&{query}"
            signed_request.destination = destination.with_query(query)
        else:
            signed_request.fields.set_field(
                self.generate_authorization_field(
                    signed_headers=canonical_request.signed_headers,
                    signature=signature,
                )
            )
        return signed_request


class AsyncSigV4Signer:
    """Asynchronous interface to :py:class:`SigV4Signer` for async HTTP clients.

    Signing never waits on I/O; these coroutines complete without suspending.
    """

    def __init__(
        self,
        *,
        request: AWSRequest,
        identity: AWSCredentialsIdentity,
        signing_properties: SigV4SigningProperties | None = None,
        cache: SigningKeyCache | None = None,
    ) -> None:
        self._signer = SigV4Signer(
            request=request,
            identity=identity,
            signing_properties=signing_properties,
            cache=cache,
        )

    @property
    def service(self) -> str:
        return self._signer.service

    @property
    def region(self) -> str:
        return self._signer.region

    @property
    def datetime(self) -> str:
        return self._signer.datetime

    @property
    def mode(self) -> SigningMode:
        return self._signer.mode

    async def canonical_request(self) -> CanonicalRequest:
        return self._signer.canonical_request()

    async def string_to_sign(self) -> str:
        return self._signer.string_to_sign()

    async def signature(self) -> str:
        return self._signer.signature()

    async def authorization(self) -> str:
        return self._signer.authorization()

    async def sign(self) -> AWSRequest:
        """Generate and apply a SigV4 signature to a copy of the request."""
        return self._signer.sign()


def _now() -> str:
    return datetime.datetime.now(datetime.UTC).strftime(SIGV4_TIMESTAMP_FORMAT)


def _has_param(params: list[tuple[str, str]], key: str) -> bool:
    return any(k == key for k, _ in params)


def _set_param(params: list[tuple[str, str]], key: str, value: str) -> None:
    """Replace the first ``key`` parameter in place and drop any others, or append
    it if missing."""
    replaced = False
    kept: list[tuple[str, str]] = []
    for k, v in params:
        if k != key:
            kept.append((k, v))
        elif not replaced:
            kept.append((key, value))
            replaced = True
    if not replaced:
        kept.append((key, value))
    params[:] = kept


def _encode_query(params: list[tuple[str, str]]) -> str:
    return urlencode(params, quote_via=quote)
