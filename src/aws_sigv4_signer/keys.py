# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import hmac
import logging
from collections.abc import Mapping
from hashlib import sha256
from typing import Final, TypeAlias

logger: Final = logging.getLogger(__name__)

CacheKey: TypeAlias = tuple[str, str, str, str]
"""``(secret_access_key, date, region, service)``"""


def hmac_sha256(key: bytes, value: str) -> bytes:
    return hmac.new(key=key, msg=value.encode(), digestmod=sha256).digest()


def derive_signing_key(
    *, secret_key: str, date: str, region: str, service: str
) -> bytes:
    """Derive the key used to sign requests for one day, region, and service.

    :param secret_key: The secret access key.
    :param date: The ``YYYYMMDD`` date of the credential scope.
    :param region: The signing region.
    :param service: The signing service name.
    """
    # DateKey              = HMAC-SHA256("AWS4"+"<SecretAccessKey>", "<YYYYMMDD>")
    # DateRegionKey        = HMAC-SHA256(<DateKey>, "<aws-region>")
    # DateRegionServiceKey = HMAC-SHA256(<DateRegionKey>, "<aws-service>")
    # SigningKey           = HMAC-SHA256(<DateRegionServiceKey>, "aws4_request")
    k_date = hmac_sha256(key=f"AWS4{secret_key}".encode(), value=date)
    k_region = hmac_sha256(key=k_date, value=region)
    k_service = hmac_sha256(key=k_region, value=service)
    return hmac_sha256(key=k_service, value="aws4_request")


class SigningKeyCache:
    """Memoizes derived signing keys.

    Entries never expire; call :py:meth:`clear` or use a new cache after rotating
    secrets. There is no internal locking, so a cache shared between threads must
    be guarded by the caller.
    """

    def __init__(self, initial: Mapping[CacheKey, bytes] | None = None) -> None:
        """
        :param initial: Precomputed signing keys to seed the cache with.
        """
        self._keys: dict[CacheKey, bytes] = dict(initial or {})

    def get_signing_key(
        self, *, secret_key: str, date: str, region: str, service: str
    ) -> bytes:
        """Return the cached signing key for the scope, deriving and storing it on
        a miss."""
        cache_key = (secret_key, date, region, service)
        if (signing_key := self._keys.get(cache_key)) is not None:
            logger.debug("Signing key cache hit for %s/%s/%s.", date, region, service)
            return signing_key

        logger.debug("Signing key cache miss for %s/%s/%s.", date, region, service)
        signing_key = derive_signing_key(
            secret_key=secret_key, date=date, region=region, service=service
        )
        self._keys[cache_key] = signing_key
        return signing_key

    def __getitem__(self, key: CacheKey) -> bytes:
        return self._keys[key]

    def __setitem__(self, key: CacheKey, value: bytes) -> None:
        self._keys[key] = value

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)

    def clear(self) -> None:
        self._keys.clear()

    def __repr__(self) -> str:
        # Keys contain secrets.
        return f"SigningKeyCache(entries={len(self._keys)})"
