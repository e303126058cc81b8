"""Tests for Authorization header parsing."""

import hashlib

import pytest

from exotel_mcp.auth.credentials import (
    DEFAULT_TOKEN,
    NO_CREDENTIAL,
    AuthScheme,
    mask_secret,
    md5_hex,
    parse_auth_header,
)


def test_bearer_json_header_populates_every_field():
    header = (
        'Bearer {"token":"abc123","from_number":"08000000000","caller_id":"0800",'
        '"api_domain":"https://api.in.exotel.com","account_sid":"ACC1",'
        '"exotel_portal_url":"https://my.in.exotel.com"}'
    )

    result = parse_auth_header(header)

    assert result.ok
    bundle = result.bundle
    assert bundle.token == "abc123"
    assert bundle.token_md5 == hashlib.md5(b"abc123").hexdigest()
    assert bundle.from_number == "08000000000"
    assert bundle.caller_id == "0800"
    assert bundle.api_domain == "https://api.in.exotel.com"
    assert bundle.account_sid == "ACC1"
    assert bundle.exotel_portal_url == "https://my.in.exotel.com"
    assert bundle.auth_type is AuthScheme.BEARER
    assert bundle.authorization == "Bearer abc123"


def test_single_quoted_basic_header_is_accepted():
    result = parse_auth_header("Basic {'token':'t1','account_sid':'ACC2'}")

    assert result.ok
    assert result.bundle.token == "t1"
    assert result.bundle.account_sid == "ACC2"
    assert result.bundle.auth_type is AuthScheme.BASIC


def test_missing_braces_are_added():
    result = parse_auth_header('"token":"t2","from_number":"0999"')

    assert result.bundle.token == "t2"
    assert result.bundle.from_number == "0999"
    assert result.bundle.auth_type is AuthScheme.BASIC


def test_missing_fields_take_defaults():
    bundle = parse_auth_header('{"token":"only"}').bundle

    assert bundle.from_number == "default_from"
    assert bundle.caller_id == "default_caller"
    assert bundle.api_domain == "https://api.exotel.com"
    assert bundle.account_sid == "default_account"
    assert bundle.exotel_portal_url == "https://my.exotel.com"


def test_missing_token_uses_stable_default_token():
    first = parse_auth_header('{"account_sid":"ACC"}').bundle
    second = parse_auth_header('{"account_sid":"ACC"}').bundle

    assert first.token == DEFAULT_TOKEN
    assert first.token_md5 == second.token_md5


def test_scheme_comes_from_prefix_not_payload():
    bundle = parse_auth_header('Bearer {"token":"x","auth_type":"Basic"}').bundle

    assert bundle.auth_type is AuthScheme.BEARER


def test_extra_fields_are_kept_and_scalars_rendered_as_text():
    bundle = parse_auth_header('{"token":"x","region":"in","retries":3,"beta":true}').bundle

    assert bundle.extra == {"region": "in", "retries": "3", "beta": "true"}
    with pytest.raises(TypeError):
        bundle.extra["region"] = "us"


def test_unparseable_bearer_header_becomes_raw_token():
    result = parse_auth_header("Bearer notjson-token")

    assert result.ok
    assert result.bundle.token == "Bearer notjson-token"
    assert result.bundle.auth_type is AuthScheme.BEARER
    assert result.bundle.account_sid == "default_account"


def test_unparseable_unprefixed_header_keeps_whole_string():
    result = parse_auth_header("  plain-token  ")

    assert result.bundle.token == "plain-token"
    assert result.bundle.auth_type is AuthScheme.BASIC


def test_deeply_nested_header_falls_back_to_raw_token():
    header = 'Bearer {"a":' + "[" * 5000 + "]" * 5000 + "}"

    result = parse_auth_header(header)

    assert result.ok
    assert result.bundle.token == header
    assert result.bundle.auth_type is AuthScheme.BEARER


def test_single_quoted_unprefixed_header_end_to_end():
    header = (
        "{'token':'abc123','from_number':'08000000000','account_sid':'ACC1',"
        "'api_domain':'https://api.vendor.test'}"
    )

    first = parse_auth_header(header).bundle
    second = parse_auth_header(header).bundle

    assert first.token == "abc123"
    assert first.from_number == "08000000000"
    assert first.account_sid == "ACC1"
    assert first.api_domain == "https://api.vendor.test"
    assert first.auth_type is AuthScheme.BASIC
    assert first.token_md5 == hashlib.md5(b"abc123").hexdigest()
    assert second.token_md5 == first.token_md5


@pytest.mark.parametrize("header", [None, "", "   ", NO_CREDENTIAL])
def test_missing_header_reports_error_with_synthetic_token(header):
    result = parse_auth_header(header)

    assert not result.ok
    assert "Authorization header is required" in str(result.error)
    assert result.bundle.token.startswith(f"{DEFAULT_TOKEN}_")


def test_json_array_payload_falls_back_to_raw_token():
    result = parse_auth_header("[1, 2]")

    assert result.ok
    assert result.bundle.token == "[1, 2]"


def test_md5_hex_of_none_uses_placeholder():
    assert md5_hex(None) == hashlib.md5(b"default_input").hexdigest()


def test_mask_secret():
    assert mask_secret(None) == "[NULL]"
    assert mask_secret("  ") == "[EMPTY]"
    assert mask_secret("short") == "***"
    assert mask_secret("abcdef123456wxyz") == "abcdef***wxyz"


def test_account_url():
    bundle = parse_auth_header('{"token":"x","account_sid":"ACC9"}').bundle

    assert bundle.account_url("Sms/send.json") == "https://api.exotel.com/v1/Accounts/ACC9/Sms/send.json"
