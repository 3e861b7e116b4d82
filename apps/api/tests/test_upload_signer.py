import base64
import json

import pytest

from app.exceptions import MalformedCredentialScopeError, MalformedSigningRequestError
from app.services.upload_signer import sign_upload_request
from app.services.upload_signing import (
    derive_v4_signing_key,
    hash_canonical_request,
    sign_legacy,
    sign_v4,
)

_CANONICAL_REQUEST = (
    "POST\n/a.png\nuploads=\nhost:uploads.s3.amazonaws.com\n"
    "x-amz-date:20240101T000000Z\n\nhost;x-amz-date\nUNSIGNED-PAYLOAD"
)


def _rest_v4_block(canonical_request: str = _CANONICAL_REQUEST, amz_date_line: str = "20240101T000000Z") -> str:
    return f"AWS4-HMAC-SHA256\n{amz_date_line}\n20240101/us-east-1/s3/aws4_request\n{canonical_request}"


def test_policy_scenario_returns_base64_policy_and_legacy_signature(signer_config):
    policy_text = '{"conditions":[{"bucket":"uploads"},["content-length-range",0,5242880]]}'

    result = sign_upload_request(policy_text, config=signer_config)

    assert result.invalid is False
    assert base64.b64decode(result.policy).decode() == policy_text
    assert result.signature == sign_legacy(result.policy, "test-client-secret")


def test_policy_with_wrong_bucket_is_not_signed(signer_config):
    policy_text = '{"conditions":[{"bucket":"elsewhere"},["content-length-range",0,5242880]]}'

    result = sign_upload_request(policy_text, config=signer_config)

    assert result.invalid is True
    assert result.signature is None
    assert result.policy is None


def test_policy_v4_derives_key_from_credential_condition(signer_config):
    policy = {
        "conditions": [
            {"bucket": "uploads"},
            ["content-length-range", "0", "5242880"],
            {"x-amz-credential": "AKIDEXAMPLE/20240101/eu-central-1/s3/aws4_request"},
            {"x-amz-algorithm": "AWS4-HMAC-SHA256"},
        ]
    }
    policy_text = json.dumps(policy)

    result = sign_upload_request(policy_text.encode(), config=signer_config, v4_requested=True)

    expected_key = derive_v4_signing_key("20240101", "eu-central-1", "test-client-secret")
    assert result.signature == sign_v4(result.policy, expected_key)


def test_policy_v4_without_credential_is_malformed(signer_config):
    policy_text = '{"conditions":[{"bucket":"uploads"},["content-length-range",0,5242880]]}'

    with pytest.raises(MalformedCredentialScopeError):
        sign_upload_request(policy_text, config=signer_config, v4_requested=True)


def test_rest_v2_signs_raw_headers(signer_config):
    headers = "POST\n\n\n\nx-amz-date:Mon, 01 Jan 2024 00:00:00 GMT\n/uploads/a.png?uploads"

    result = sign_upload_request(json.dumps({"headers": headers}), config=signer_config)

    assert result.policy is None
    assert result.signature == sign_legacy(headers, "test-client-secret")


def test_rest_v2_for_other_bucket_is_invalid(signer_config):
    headers = "POST\n\n\n\n/other/a.png?uploads"

    result = sign_upload_request(json.dumps({"headers": headers}), config=signer_config)

    assert result.invalid is True


def test_rest_v4_signs_hashed_canonical_request(signer_config):
    result = sign_upload_request(json.dumps({"headers": _rest_v4_block()}), config=signer_config, v4_requested=True)

    string_to_sign = (
        "AWS4-HMAC-SHA256\n20240101T000000Z\n20240101/us-east-1/s3/aws4_request\n"
        + hash_canonical_request(_CANONICAL_REQUEST)
    )
    expected_key = derive_v4_signing_key("20240101", "us-east-1", "test-client-secret")
    assert result.signature == sign_v4(string_to_sign, expected_key)


def test_rest_v4_flag_may_come_from_body(signer_config):
    body = json.dumps({"headers": _rest_v4_block(), "v4": True})

    from_body = sign_upload_request(body, config=signer_config)
    from_query = sign_upload_request(json.dumps({"headers": _rest_v4_block()}), config=signer_config, v4_requested=True)

    assert from_body.signature == from_query.signature


def test_rest_v4_signature_tracks_canonical_request_only(signer_config):
    baseline = sign_upload_request(json.dumps({"headers": _rest_v4_block()}), config=signer_config, v4_requested=True)
    changed_request = sign_upload_request(
        json.dumps({"headers": _rest_v4_block(_CANONICAL_REQUEST.replace("/a.png", "/b.png"))}),
        config=signer_config,
        v4_requested=True,
    )
    padded_header = sign_upload_request(
        json.dumps({"headers": _rest_v4_block(amz_date_line="20240101T000000Z  ")}),
        config=signer_config,
        v4_requested=True,
    )

    assert changed_request.signature != baseline.signature
    assert padded_header.signature == baseline.signature


def test_rest_v4_with_malformed_scope_is_rejected(signer_config):
    headers = (
        "AWS4-HMAC-SHA256\n20240101T000000Z\n20240101/us-east-1/aws4_request\n"
        "POST\n/a.png\n\nhost:uploads.s3.amazonaws.com\n\nhost\nUNSIGNED-PAYLOAD"
    )

    with pytest.raises(MalformedCredentialScopeError):
        sign_upload_request(json.dumps({"headers": headers}), config=signer_config, v4_requested=True)


@pytest.mark.parametrize("body", ["{not json", "[1, 2, 3]", '{"headers": 42}', b"\xff\xfe"])
def test_malformed_bodies_raise(signer_config, body):
    with pytest.raises(MalformedSigningRequestError):
        sign_upload_request(body, config=signer_config)


def test_signing_result_never_contains_client_secret(signer_config):
    policy_text = '{"conditions":[{"bucket":"uploads"},["content-length-range",0,5242880]]}'

    result = sign_upload_request(policy_text, config=signer_config)

    assert "test-client-secret" not in repr(result)
    assert "test-client-secret" not in repr(signer_config)


def test_null_headers_field_is_treated_as_policy(signer_config):
    policy_text = '{"headers":null,"conditions":[{"bucket":"uploads"},["content-length-range",0,5242880]]}'

    result = sign_upload_request(policy_text, config=signer_config)

    assert base64.b64decode(result.policy).decode() == policy_text
    assert result.signature == sign_legacy(result.policy, "test-client-secret")
