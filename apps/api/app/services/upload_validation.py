from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any, Union

from app.config import UploadSignerConfig


@dataclass(frozen=True)
class BucketCondition:
    value: Any


@dataclass(frozen=True)
class ContentLengthRange:
    min_size: int | None
    max_size: int | None


@dataclass(frozen=True)
class CredentialCondition:
    value: Any


@dataclass(frozen=True)
class OtherCondition:
    raw: Any


Condition = Union[BucketCondition, ContentLengthRange, CredentialCondition, OtherCondition]


def coerce_size(value: object) -> int | None:
    """Strict size coercion: ints and base-10 digit strings only."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value >= 0 else None
    if isinstance(value, str) and value.isascii() and value.isdigit():
        return int(value)
    return None


def _decode_condition(raw: object) -> Condition:
    if isinstance(raw, dict):
        if "bucket" in raw:
            return BucketCondition(raw["bucket"])
        if "x-amz-credential" in raw:
            return CredentialCondition(raw["x-amz-credential"])
        return OtherCondition(raw)

    if isinstance(raw, list) and len(raw) == 3:
        head = raw[0]
        if head == "content-length-range":
            return ContentLengthRange(coerce_size(raw[1]), coerce_size(raw[2]))
        if head == "eq" and raw[1] == "$bucket":
            return BucketCondition(raw[2])
        if head == "eq" and raw[1] == "$x-amz-credential":
            return CredentialCondition(raw[2])
    return OtherCondition(raw)


def decode_conditions(policy: object) -> list[Condition] | None:
    """Tag every element of the policy's `conditions`; None when there is no condition list."""
    if not isinstance(policy, dict):
        return None
    raw_conditions = policy.get("conditions")
    if not isinstance(raw_conditions, list):
        return None
    return [_decode_condition(item) for item in raw_conditions]


def find_credential(conditions: list[Condition]) -> Any:
    credential = None
    for condition in conditions:
        if isinstance(condition, CredentialCondition):
            credential = condition.value
    return credential


def is_policy_valid(policy: object, config: UploadSignerConfig) -> bool:
    conditions = decode_conditions(policy)
    if conditions is None:
        return False

    buckets = [c.value for c in conditions if isinstance(c, BucketCondition)]
    if not buckets or any(bucket != config.expected_bucket_name for bucket in buckets):
        return False

    if config.expected_max_size is None:
        return True

    max_sizes = [c.max_size for c in conditions if isinstance(c, ContentLengthRange)]
    if not max_sizes:
        return False
    return all(size == config.expected_max_size for size in max_sizes)


def is_valid_rest_request(headers: str, version: int, config: UploadSignerConfig) -> bool:
    if version == 4:
        if not config.expected_host_name:
            return False
        pattern = rf"^host:{re.escape(config.expected_host_name)}$"
        return re.search(pattern, headers, flags=re.MULTILINE) is not None

    if not config.expected_bucket_name:
        return False
    pattern = rf"/{re.escape(config.expected_bucket_name)}/.+"
    return re.search(pattern, headers) is not None
