# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest
from aws_sigv4_signer import URI, Fields, infer_service_region
from aws_sigv4_signer.inference import (
    HostLabels,
    backblaze_b2,
    cloudflare_r2,
    lambda_function_url,
    normalize_region_label,
    parse_amazonaws_host,
    recover_s3_region,
    split_autoscaling_service,
    split_iot_service,
    strip_fips_suffix,
    swap_region_service,
)


def _labels(
    service: str,
    region: str | None,
    hostname: str = "",
    path: str = "/",
    target: str = "",
) -> HostLabels:
    return HostLabels(
        service=service, region=region, hostname=hostname, path=path, target=target
    )


@pytest.mark.parametrize(
    "url,expected",
    [
        ("https://abcd123.lambda-url.us-east-1.on.aws/", ("lambda", "abcd123")),
        ("https://example.on.aws/", ("", "")),
        ("https://bucket.s3.us-west-2.amazonaws.com/key", ("s3", "us-west-2")),
        ("https://my-bucket.r2.cloudflarestorage.com/obj", ("s3", "auto")),
        ("https://s3.us-west-004.backblazeb2.com/b", ("s3", "us-west-004")),
        ("https://bucket.s3.eu-central-003.backblazeb2.com/", ("s3", "eu-central-003")),
        ("https://f000.backblazeb2.com/file/b/k", ("", "")),
        ("https://dynamodb.us-east-1.amazonaws.com/", ("dynamodb", "us-east-1")),
        ("https://ec2.cn-north-1.amazonaws.com.cn/", ("ec2", "cn-north-1")),
        ("https://ec2.us-gov.amazonaws.com/", ("ec2", "us-gov-west-1")),
        ("https://examplebucket.s3.amazonaws.com/test.txt", ("s3", "us-east-1")),
        ("https://bucket.s3-accelerate.amazonaws.com/", ("s3", "us-east-1")),
        ("https://bucket.s3.dualstack.eu-west-1.amazonaws.com/", ("s3", "eu-west-1")),
        ("https://s3.dualstack.us-west-2.amazonaws.com/", ("s3", "us-west-2")),
        ("https://s3-us-west-2.amazonaws.com/bucket", ("s3", "us-west-2")),
        ("https://s3-fips-us-gov-west-1.amazonaws.com/", ("s3", "us-gov-west-1")),
        ("https://s3-external-1.amazonaws.com/", ("s3", "")),
        ("https://s3-fips-external-1.amazonaws.com/", ("s3", "")),
        ("https://sqs-fips.us-east-1.amazonaws.com/", ("sqs", "us-east-1")),
        ("https://queue.amazonaws.com/", ("sqs", "")),
        ("https://email.us-west-2.amazonaws.com/", ("ses", "us-west-2")),
        ("https://iot.us-east-1.amazonaws.com/things", ("execute-api", "us-east-1")),
        (
            "https://data.jobs.iot.us-east-1.amazonaws.com/things/t/jobs",
            ("iot-jobs-data", "us-east-1"),
        ),
        (
            "https://abc123-ats.iot.us-east-1.amazonaws.com/mqtt",
            ("iotdevicegateway", "us-east-1"),
        ),
        (
            "https://abc123-ats.iot.us-east-1.amazonaws.com/topics/t",
            ("iotdata", "us-east-1"),
        ),
        (
            "https://us-east-1.elasticmapreduce.amazonaws.com/",
            ("elasticmapreduce", "us-east-1"),
        ),
        ("https://example.com/", ("", "")),
        ("http://[::1]:8080/", ("", "")),
    ],
)
def test_infer_service_region(url: str, expected: tuple[str, str]) -> None:
    assert infer_service_region(URI.from_string(url), Fields()) == expected


@pytest.mark.parametrize(
    "target,expected_service",
    [
        ("AnyScaleFrontendService.RegisterScalableTarget", "application-autoscaling"),
        ("AnyScaleScalingPlannerFrontendService.CreateScalingPlan", "autoscaling-plans"),
        ("Unrelated.Operation", "autoscaling"),
    ],
)
def test_infer_autoscaling_from_target_header(
    target: str, expected_service: str
) -> None:
    uri = URI.from_string("https://autoscaling.us-east-1.amazonaws.com/")
    fields = Fields({"x-amz-target": target})
    assert infer_service_region(uri, fields) == (expected_service, "us-east-1")


def test_infer_autoscaling_without_target_header() -> None:
    uri = URI.from_string("https://autoscaling.us-east-1.amazonaws.com/")
    assert infer_service_region(uri, Fields()) == ("autoscaling", "us-east-1")


def test_infer_is_deterministic() -> None:
    uri = URI.from_string("https://bucket.s3.us-west-2.amazonaws.com/key")
    results = {infer_service_region(uri, Fields()) for _ in range(3)}
    assert results == {("s3", "us-west-2")}


def test_lambda_function_url_rule() -> None:
    assert lambda_function_url("x.lambda-url.eu-west-1.on.aws") == ("lambda", "x")
    assert lambda_function_url("not.a.lambda.on.aws") == ("", "")
    assert lambda_function_url("lambda.us-east-1.amazonaws.com") is None


def test_storage_provider_rules() -> None:
    assert cloudflare_r2("acct.r2.cloudflarestorage.com") == ("s3", "auto")
    assert cloudflare_r2("s3.amazonaws.com") is None
    assert backblaze_b2("s3.us-east-005.backblazeb2.com") == ("s3", "us-east-005")
    assert backblaze_b2("s3.amazonaws.com") is None


@pytest.mark.parametrize(
    "hostname,expected",
    [
        ("sts.amazonaws.com", ("sts", None)),
        ("sts.us-west-2.amazonaws.com", ("sts", "us-west-2")),
        ("bucket.s3.dualstack.us-east-1.amazonaws.com", ("s3", "us-east-1")),
        ("example.com", ("", None)),
    ],
)
def test_parse_amazonaws_host(
    hostname: str, expected: tuple[str, str | None]
) -> None:
    assert parse_amazonaws_host(hostname) == expected


def test_normalize_region_label() -> None:
    assert normalize_region_label(_labels("ec2", "us-gov")) == _labels(
        "ec2", "us-gov-west-1"
    )
    assert normalize_region_label(_labels("bucket", "s3")) == _labels(
        "s3", "us-east-1"
    )
    assert normalize_region_label(_labels("ec2", "us-east-1")) is None


def test_split_iot_service() -> None:
    assert split_iot_service(_labels("sqs", "us-east-1")) is None
    labels = _labels("iot", "us-east-1", hostname="x.iot.us-east-1.amazonaws.com")
    assert split_iot_service(labels) == _labels(
        "iotdata", "us-east-1", hostname="x.iot.us-east-1.amazonaws.com"
    )


def test_split_autoscaling_service_claims_unmatched_targets() -> None:
    labels = _labels("autoscaling", "us-east-1", target="Other.Op")
    assert split_autoscaling_service(labels) is labels


def test_recover_s3_region() -> None:
    assert recover_s3_region(_labels("s3-eu-west-1", None)) == _labels(
        "s3", "eu-west-1"
    )
    assert recover_s3_region(_labels("s3-eu-west-1", "x")) is None
    assert recover_s3_region(_labels("s3-fips-external-1", None)) == _labels(
        "s3", ""
    )
    assert recover_s3_region(_labels("sqs", None)) is None


def test_strip_fips_suffix() -> None:
    assert strip_fips_suffix(_labels("kms-fips", "us-east-1")) == _labels(
        "kms", "us-east-1"
    )
    assert strip_fips_suffix(_labels("kms", "us-east-1")) is None


def test_swap_region_service() -> None:
    assert swap_region_service(_labels("eu-west-1", "sdb")) == _labels(
        "sdb", "eu-west-1"
    )
    assert swap_region_service(_labels("sdb", "eu-west-1")) is None
    assert swap_region_service(_labels("s3-1", None)) is None
