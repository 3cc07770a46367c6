# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
from collections.abc import Mapping

from ._http import AWSRequest, Body, Fields
from ._identity import AWSCredentialIdentity, validate_identity
from .keys import SigningKeyCache
from .signers import SigV4Signer, SigV4SigningProperties


class AWSClient:
    """Signs requests on behalf of one set of credentials.

    The client holds default signing properties and a signing key cache that is
    shared by every signer it creates. It never sends requests; pass the result of
    :py:meth:`sign` to an HTTP client.
    """

    def __init__(
        self,
        *,
        access_key_id: str,
        secret_access_key: str,
        session_token: str | None = None,
        service: str | None = None,
        region: str | None = None,
        cache: SigningKeyCache | None = None,
        signing_properties: SigV4SigningProperties | None = None,
    ) -> None:
        """
        :param access_key_id: The AWS access key ID.
        :param secret_access_key: The AWS secret access key.
        :param session_token: Session token for temporary credentials.
        :param service: Default signing service. Inferred per request when unset.
        :param region: Default signing region. Inferred per request when unset.
        :param cache: Signing key cache to seed or share. A new one is created when
            unset.
        :param signing_properties: Other default signing properties, such as
            ``sign_query``.
        :raises ValidationError: If the access key ID or secret key is empty.
        """
        self._identity = AWSCredentialIdentity(
            access_key_id=access_key_id,
            secret_access_key=secret_access_key,
            session_token=session_token,
        )
        validate_identity(self._identity)

        self._defaults = SigV4SigningProperties(**(signing_properties or {}))
        if service:
            self._defaults["service"] = service
        if region:
            self._defaults["region"] = region
        self.cache = cache if cache is not None else SigningKeyCache()

    def signer(
        self,
        url: str,
        *,
        method: str | None = None,
        headers: Mapping[str, str] | Fields | None = None,
        body: Body | None = None,
        signing_properties: SigV4SigningProperties | None = None,
    ) -> SigV4Signer:
        """Create a signer for a request.

        :param url: The absolute request URL.
        :param method: The HTTP method. Defaults to ``POST`` when a body is given,
            otherwise ``GET``.
        :param headers: Request headers.
        :param body: The request body.
        :param signing_properties: Overrides for the client's default properties.
        :raises ValidationError: If ``url`` is empty.
        :raises URLParseError: If ``url`` can't be parsed.
        """
        request = AWSRequest.from_url(url, method=method, headers=headers, body=body)
        properties = SigV4SigningProperties(
            **{**self._defaults, **(signing_properties or {})}
        )
        return SigV4Signer(
            request=request,
            identity=self._identity,
            signing_properties=properties,
            cache=self.cache,
        )

    def sign(
        self,
        url: str,
        *,
        method: str | None = None,
        headers: Mapping[str, str] | Fields | None = None,
        body: Body | None = None,
        signing_properties: SigV4SigningProperties | None = None,
    ) -> AWSRequest:
        """Sign a request with the client's credentials and defaults.

        See :py:meth:`signer` for the parameters.
        """
        return self.signer(
            url,
            method=method,
            headers=headers,
            body=body,
            signing_properties=signing_properties,
        ).sign()

    async def sign_async(
        self,
        url: str,
        *,
        method: str | None = None,
        headers: Mapping[str, str] | Fields | None = None,
        body: Body | None = None,
        signing_properties: SigV4SigningProperties | None = None,
    ) -> AWSRequest:
        """Coroutine version of :py:meth:`sign` for async HTTP clients."""
        return self.sign(
            url,
            method=method,
            headers=headers,
            body=body,
            signing_properties=signing_properties,
        )
