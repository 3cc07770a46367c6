# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

from dataclasses import dataclass
from datetime import datetime

from .exceptions import ValidationError
from .interfaces.identity import AWSCredentialsIdentity


@dataclass(kw_only=True, frozen=True)
class AWSCredentialIdentity(AWSCredentialsIdentity):
    access_key_id: str
    secret_access_key: str
    session_token: str | None = None
    expiration: datetime | None = None

    def __repr__(self) -> str:
        return (
            f"AWSCredentialIdentity(access_key_id={self.access_key_id!r}, "
            f"expiration={self.expiration!r})"
        )


def validate_identity(identity: AWSCredentialsIdentity) -> None:
    """Check that ``identity`` can be used to sign a request.

    :raises ValidationError: If ``identity`` isn't an identity, is missing its
        access key ID or secret key, or is expired.
    """
    if not isinstance(identity, AWSCredentialsIdentity):  # pyright: ignore
        raise ValidationError(
            "Received unexpected value for identity parameter. Expected "
            f"AWSCredentialIdentity but received {type(identity)}."
        )
    if not identity.access_key_id:
        raise ValidationError("access_key_id is a required option.")
    if not identity.secret_access_key:
        raise ValidationError("secret_access_key is a required option.")
    if identity.is_expired:
        raise ValidationError(
            f"Provided identity expired at {identity.expiration}. Please "
            "refresh the credentials or update the expiration parameter."
        )
