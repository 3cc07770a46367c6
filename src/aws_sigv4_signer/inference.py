# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
"""Best-effort detection of the signing service and region from a request URL.

Detection runs in two stages, each an ordered tuple of rules where the first rule
that applies wins:

1. :data:`HOST_RULES` recognize endpoints outside ``amazonaws.com`` from the
   hostname alone. If none applies, the two labels in front of ``amazonaws.com``
   become the candidate service and region.
2. :data:`ADJUSTMENT_RULES` fix up those candidates for endpoints whose hostname
   doesn't spell out the signing name directly.

Hosts that aren't recognized produce empty strings, in which case the service and
region must be passed to the signer explicitly.
"""

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass, replace
from typing import Final, TypeAlias

from ._http import URI, Fields

logger: Final = logging.getLogger(__name__)

ServiceRegion: TypeAlias = tuple[str, str]

_LAMBDA_URL_RE = re.compile(r"^[^.]{1,63}\.lambda-url\.[^.]{1,63}\.on\.aws$")
_BACKBLAZE_RE = re.compile(r"^(?:[^.]{1,63}\.)?s3\.([^.]{1,63})\.backblazeb2\.com$")
_AMAZONAWS_RE = re.compile(
    r"([^.]{1,63})\.(?:([^.]{0,63})\.)?amazonaws\.com(?:\.cn)?$"
)
_ENDS_WITH_DIGIT_RE = re.compile(r"-\d$")

# Hostname labels that differ from the name used in the credential scope.
HOST_SERVICES: Final[dict[str, str]] = {
    "appstream2": "appstream",
    "cloudhsmv2": "cloudhsm",
    "email": "ses",
    "marketplace": "aws-marketplace",
    "mobile": "AWSMobileHubService",
    "pinpoint": "mobiletargeting",
    "queue": "sqs",
    "git-codecommit": "codecommit",
    "mturk-requester-sandbox": "mturk-requester",
    "personalize-runtime": "personalize",
}


def lambda_function_url(hostname: str) -> ServiceRegion | None:
    """``<id>.lambda-url.<region>.on.aws`` function URLs.

    The first hostname label is used as the region. Other ``.on.aws`` hosts
    produce empty strings.
    """
    if not hostname.endswith(".on.aws"):
        return None
    if _LAMBDA_URL_RE.match(hostname):
        return "lambda", hostname.split(".", 1)[0]
    return "", ""


def cloudflare_r2(hostname: str) -> ServiceRegion | None:
    """Cloudflare R2 always signs as S3 in the ``auto`` region."""
    if hostname.endswith(".r2.cloudflarestorage.com"):
        return "s3", "auto"
    return None


def backblaze_b2(hostname: str) -> ServiceRegion | None:
    """Backblaze B2's S3-compatible API, ``[<bucket>.]s3.<region>.backblazeb2.com``."""
    if not hostname.endswith(".backblazeb2.com"):
        return None
    if match := _BACKBLAZE_RE.match(hostname):
        return "s3", match.group(1)
    return "", ""


HOST_RULES: Final[tuple[Callable[[str], ServiceRegion | None], ...]] = (
    lambda_function_url,
    cloudflare_r2,
    backblaze_b2,
)


@dataclass(frozen=True, kw_only=True)
class HostLabels:
    """Candidate service and region parsed from an ``amazonaws.com`` hostname."""

    service: str
    region: str | None
    """``None`` when the hostname has no label between the service and the
    domain."""

    hostname: str
    path: str
    target: str
    """The ``X-Amz-Target`` header, or the empty string."""


def parse_amazonaws_host(hostname: str) -> tuple[str, str | None]:
    """Split ``[...].<service>.[<region>.]amazonaws.com[.cn]`` into its labels.

    A ``dualstack.`` label is ignored.
    """
    match = _AMAZONAWS_RE.search(hostname.replace("dualstack.", "", 1))
    if match is None:
        return "", None
    return match.group(1), match.group(2)


def normalize_region_label(labels: HostLabels) -> HostLabels | None:
    """GovCloud and the global S3 endpoints use a placeholder region label."""
    if labels.region == "us-gov":
        return replace(labels, region="us-gov-west-1")
    if labels.region in ("s3", "s3-accelerate"):
        return replace(labels, service="s3", region="us-east-1")
    return None


def split_iot_service(labels: HostLabels) -> HostLabels | None:
    """IoT endpoints share the ``iot`` label but sign with different names."""
    if labels.service != "iot":
        return None
    if labels.hostname.startswith("iot."):
        service = "execute-api"
    elif labels.hostname.startswith("data.jobs.iot."):
        service = "iot-jobs-data"
    elif labels.path == "/mqtt":
        service = "iotdevicegateway"
    else:
        service = "iotdata"
    return replace(labels, service=service)


def split_autoscaling_service(labels: HostLabels) -> HostLabels | None:
    """Application Auto Scaling and Auto Scaling Plans share the ``autoscaling``
    host and are told apart by the ``X-Amz-Target`` prefix."""
    if labels.service != "autoscaling":
        return None
    target_prefix = labels.target.split(".", 1)[0]
    if target_prefix == "AnyScaleFrontendService":
        return replace(labels, service="application-autoscaling")
    if target_prefix == "AnyScaleScalingPlannerFrontendService":
        return replace(labels, service="autoscaling-plans")
    return labels


def recover_s3_region(labels: HostLabels) -> HostLabels | None:
    """Legacy ``s3-<region>.amazonaws.com`` endpoints put the region in the service
    label."""
    if labels.region is not None or not labels.service.startswith("s3-"):
        return None
    region = labels.service[3:].removeprefix("fips-").removeprefix("external-1")
    return replace(labels, service="s3", region=region)


def strip_fips_suffix(labels: HostLabels) -> HostLabels | None:
    if not labels.service.endswith("-fips"):
        return None
    return replace(labels, service=labels.service[: -len("-fips")])


def swap_region_service(labels: HostLabels) -> HostLabels | None:
    """Some endpoints are ``<region>.<service>.amazonaws.com`` rather than
    ``<service>.<region>.amazonaws.com``."""
    if (
        labels.region
        and _ENDS_WITH_DIGIT_RE.search(labels.service)
        and not _ENDS_WITH_DIGIT_RE.search(labels.region)
    ):
        return replace(labels, service=labels.region, region=labels.service)
    return None


ADJUSTMENT_RULES: Final[tuple[Callable[[HostLabels], HostLabels | None], ...]] = (
    normalize_region_label,
    split_iot_service,
    split_autoscaling_service,
    recover_s3_region,
    strip_fips_suffix,
    swap_region_service,
)


def infer_service_region(uri: URI, fields: Fields) -> ServiceRegion:
    """Guess the signing service and region for a request.

    :param uri: The request destination.
    :param fields: The request headers. Only ``X-Amz-Target`` is consulted.
    :returns: A ``(service, region)`` pair. Either may be the empty string when the
        hostname isn't recognized.
    """
    hostname = uri.host
    for host_rule in HOST_RULES:
        if (result := host_rule(hostname)) is not None:
            logger.debug(
                "Inferred service %r and region %r from %s using %s.",
                *result,
                hostname,
                host_rule.__name__,
            )
            return result

    service, region = parse_amazonaws_host(hostname)
    target = fields.get("X-Amz-Target")
    labels = HostLabels(
        service=service,
        region=region,
        hostname=hostname,
        path=uri.path or "/",
        target=target.as_string() if target is not None else "",
    )
    for adjustment in ADJUSTMENT_RULES:
        if (adjusted := adjustment(labels)) is not None:
            labels = adjusted
            break

    result = HOST_SERVICES.get(labels.service, labels.service), labels.region or ""
    logger.debug(
        "Inferred service %r and region %r from %s.", result[0], result[1], hostname
    )
    return result
