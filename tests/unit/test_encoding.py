# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0

import pytest
from aws_sigv4_signer import DecodeError
from aws_sigv4_signer.encoding import decode, encode, encode_rfc3986, uri_encode


@pytest.mark.parametrize(
    "value,expected",
    [
        ("", ""),
        ("abcXYZ019", "abcXYZ019"),
        ("-_.~", "-_.~"),
        ("hello world", "hello%20world"),
        ("a/b", "a%2Fb"),
        ("a+b=c&d", "a%2Bb%3Dc%26d"),
        ("a!b'c(d)e*f", "a%21b%27c%28d%29e%2Af"),
        ("\x00\x1f\x7f", "%00%1F%7F"),
        ("ü", "%C3%BC"),
        ("日本", "%E6%97%A5%E6%9C%AC"),
        ("%20", "%2520"),
    ],
)
def test_encode(value: str, expected: str) -> None:
    assert encode(value) == expected


def test_uri_encode_leaves_safe_characters() -> None:
    assert uri_encode("/a b/c", safe="/") == "/a%20b/c"
    assert uri_encode("/a b/c") == "%2Fa%20b%2Fc"


def test_encode_rfc3986_escapes_sub_delimiters() -> None:
    assert encode_rfc3986("!'()*") == "%21%27%28%29%2A"
    assert encode_rfc3986("already%20encoded") == "already%20encoded"
    assert encode_rfc3986("tab\there") == "tab%09here"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("", ""),
        ("plain", "plain"),
        ("a%20b", "a b"),
        ("%C3%bc", "ü"),
        ("a+b", "a+b"),
        ("%2F%2f", "//"),
    ],
)
def test_decode(value: str, expected: str) -> None:
    assert decode(value) == expected


@pytest.mark.parametrize("value", ["%", "abc%2", "%zz", "%C3", "%ff", "%E6%97"])
def test_decode_rejects_malformed_input(value: str) -> None:
    with pytest.raises(DecodeError):
        decode(value)


def test_decode_error_is_value_error() -> None:
    with pytest.raises(ValueError):
        decode("%zz")


@pytest.mark.parametrize(
    "value",
    [
        "The quick brown fox",
        "~!@#$%^&*()_+`-={}|[]\\:\";'<>?,./",
        "naïve café",
        "emoji 🎉 and 日本語",
        "%41 is not decoded twice",
    ],
)
def test_decode_reverses_encode(value: str) -> None:
    assert decode(encode(value)) == value
