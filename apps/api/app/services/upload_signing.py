"""HMAC signing primitives for browser-to-S3 uploads.

Two schemes are supported:

* legacy (signature version 2): base64 of HMAC-SHA1 over the string-to-sign.
* version 4: HMAC-SHA256 with a key derived from the credential scope,
  rendered as lowercase hex.
"""

from __future__ import annotations

import base64
import hashlib
import hmac
from dataclasses import dataclass

from app.exceptions import MalformedCredentialScopeError

V4_SERVICE = "s3"
V4_TERMINATOR = "aws4_request"


@dataclass(frozen=True)
class CredentialScope:
    date: str
    region: str
    service: str = V4_SERVICE
    terminator: str = V4_TERMINATOR

    def __str__(self) -> str:
        return f"{self.date}/{self.region}/{self.service}/{self.terminator}"


def _hmac_sha256(key: bytes, message: str) -> bytes:
    return hmac.new(key, message.encode("utf-8"), hashlib.sha256).digest()


def sign_legacy(string_to_sign: str, client_private_key: str) -> str:
    digest = hmac.new(
        client_private_key.encode("utf-8"),
        string_to_sign.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def derive_v4_signing_key(
    date: str,
    region: str,
    client_private_key: str,
    service: str = V4_SERVICE,
) -> bytes:
    date_key = _hmac_sha256(f"AWS4{client_private_key}".encode("utf-8"), date)
    date_region_key = _hmac_sha256(date_key, region)
    date_region_service_key = _hmac_sha256(date_region_key, service)
    return _hmac_sha256(date_region_service_key, V4_TERMINATOR)


def sign_v4(string_to_sign: str, signing_key: bytes) -> str:
    return hmac.new(signing_key, string_to_sign.encode("utf-8"), hashlib.sha256).hexdigest()


def hash_canonical_request(canonical_request: str) -> str:
    return hashlib.sha256(canonical_request.encode("utf-8")).hexdigest()


def parse_credential_scope(value: str, *, with_access_key: bool = False) -> CredentialScope:
    """Parse `[<access-key>/]<date>/<region>/s3/aws4_request`.

    Policy documents carry the full `x-amz-credential` value (access key
    first); REST strings-to-sign carry the bare scope.
    """
    if not isinstance(value, str):
        raise MalformedCredentialScopeError("Credential scope must be a string")

    segments = value.strip().split("/")
    expected_count = 5 if with_access_key else 4
    if len(segments) != expected_count:
        raise MalformedCredentialScopeError(
            f"Credential scope must have {expected_count} '/'-separated segments, got {len(segments)}"
        )
    if with_access_key:
        if not segments[0]:
            raise MalformedCredentialScopeError("Credential scope is missing the access key")
        segments = segments[1:]

    date, region, service, terminator = segments
    if len(date) != 8 or not date.isdigit():
        raise MalformedCredentialScopeError("Credential scope date must be in YYYYMMDD form")
    if not region:
        raise MalformedCredentialScopeError("Credential scope region is empty")
    if service != V4_SERVICE:
        raise MalformedCredentialScopeError(f"Credential scope service must be '{V4_SERVICE}'")
    if terminator != V4_TERMINATOR:
        raise MalformedCredentialScopeError(f"Credential scope must end with '{V4_TERMINATOR}'")
    return CredentialScope(date=date, region=region)


def build_v4_rest_string_to_sign(raw_string_to_sign: str) -> tuple[CredentialScope, str]:
    """Replace the canonical request in a REST string-to-sign with its SHA-256 hash.

    The uploader sends `algorithm\\namz-date\\nscope\\ncanonical-request`; the
    signed form keeps the first three lines and swaps the canonical request
    for its hex digest.
    """
    parts = raw_string_to_sign.split("\n", 3)
    if len(parts) != 4:
        raise MalformedCredentialScopeError(
            "REST string-to-sign must contain algorithm, date, scope and canonical request lines"
        )
    algorithm, amz_date, raw_scope, canonical_request = parts
    algorithm = algorithm.strip()
    amz_date = amz_date.strip()
    if not algorithm or not amz_date:
        raise MalformedCredentialScopeError("REST string-to-sign has empty algorithm or date line")
    if not canonical_request:
        raise MalformedCredentialScopeError("REST string-to-sign has no canonical request")

    scope = parse_credential_scope(raw_scope)
    string_to_sign = "\n".join(
        [algorithm, amz_date, str(scope), hash_canonical_request(canonical_request)]
    )
    return scope, string_to_sign
