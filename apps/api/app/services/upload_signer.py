from __future__ import annotations

import base64
import json
from dataclasses import dataclass

from app.config import UploadSignerConfig
from app.exceptions import MalformedCredentialScopeError, MalformedSigningRequestError
from app.logging_config import get_logger
from app.services.upload_signing import (
    build_v4_rest_string_to_sign,
    derive_v4_signing_key,
    parse_credential_scope,
    sign_legacy,
    sign_v4,
)
from app.services.upload_validation import (
    decode_conditions,
    find_credential,
    is_policy_valid,
    is_valid_rest_request,
)

logger = get_logger(__name__)


@dataclass(frozen=True)
class SigningResult:
    signature: str | None = None
    policy: str | None = None
    invalid: bool = False


INVALID = SigningResult(invalid=True)


def _parse_body(raw_body: str | bytes) -> dict:
    if isinstance(raw_body, bytes):
        try:
            raw_body = raw_body.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise MalformedSigningRequestError("Signing request body must be UTF-8") from exc
    try:
        body = json.loads(raw_body)
    except json.JSONDecodeError as exc:
        raise MalformedSigningRequestError(f"Signing request body is not valid JSON: {exc.msg}") from exc
    if not isinstance(body, dict):
        raise MalformedSigningRequestError("Signing request body must be a JSON object")
    return body


def sign_policy(policy_text: str, policy: dict, *, use_v4: bool, config: UploadSignerConfig) -> SigningResult:
    if not is_policy_valid(policy, config):
        logger.warning("upload_policy_rejected", version=4 if use_v4 else 2)
        return INVALID

    encoded_policy = base64.b64encode(policy_text.encode("utf-8")).decode("ascii")
    if use_v4:
        credential = find_credential(decode_conditions(policy) or [])
        if credential is None:
            raise MalformedCredentialScopeError("Policy has no x-amz-credential condition")
        scope = parse_credential_scope(credential, with_access_key=True)
        signing_key = derive_v4_signing_key(scope.date, scope.region, config.client_private_key)
        signature = sign_v4(encoded_policy, signing_key)
    else:
        signature = sign_legacy(encoded_policy, config.client_private_key)

    logger.info("upload_policy_signed", version=4 if use_v4 else 2)
    return SigningResult(signature=signature, policy=encoded_policy)


def sign_rest_request(headers: str, *, use_v4: bool, config: UploadSignerConfig) -> SigningResult:
    version = 4 if use_v4 else 2
    if not is_valid_rest_request(headers, version, config):
        logger.warning("upload_rest_request_rejected", version=version)
        return INVALID

    if use_v4:
        scope, string_to_sign = build_v4_rest_string_to_sign(headers)
        signing_key = derive_v4_signing_key(scope.date, scope.region, config.client_private_key)
        signature = sign_v4(string_to_sign, signing_key)
    else:
        signature = sign_legacy(headers, config.client_private_key)

    logger.info("upload_rest_request_signed", version=version)
    return SigningResult(signature=signature)


def sign_upload_request(
    raw_body: str | bytes,
    *,
    config: UploadSignerConfig,
    v4_requested: bool = False,
) -> SigningResult:
    """Route a signing request to the policy or REST signer.

    A body with a `headers` field is a chunked/multipart REST request;
    anything else is the policy document itself. The `v4` flag comes from
    the query string or, for REST requests, from the body.
    """
    body = _parse_body(raw_body)

    if body.get("headers") is not None:
        headers = body["headers"]
        if not isinstance(headers, str):
            raise MalformedSigningRequestError("'headers' must be a string")
        use_v4 = v4_requested or "v4" in body
        return sign_rest_request(headers, use_v4=use_v4, config=config)

    policy_text = raw_body.decode("utf-8") if isinstance(raw_body, bytes) else raw_body
    return sign_policy(policy_text, body, use_v4=v4_requested, config=config)
