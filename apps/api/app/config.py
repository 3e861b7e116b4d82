import os
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv

from app.exceptions import UploadSignerConfigError

_ENV_PATH = Path(__file__).resolve().parents[1] / ".env"
load_dotenv(_ENV_PATH, override=False)

_DEFAULT_TEMP_LINK_TTL_SEC = 15 * 60


def _get_env(name: str) -> str | None:
    value = os.getenv(name)
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


def _parse_non_negative_int(name: str, raw: str | None) -> int | None:
    if raw is None:
        return None
    if not (raw.isascii() and raw.isdigit()):
        raise UploadSignerConfigError(f"{name} must be a non-negative integer")
    return int(raw)


def get_client_secret_key() -> str | None:
    return _get_env("AWS_CLIENT_SECRET_KEY")


def get_server_public_key() -> str | None:
    return _get_env("AWS_SERVER_PUBLIC_KEY")


def get_server_private_key() -> str | None:
    return _get_env("AWS_SERVER_PRIVATE_KEY")


def get_s3_bucket_name() -> str | None:
    return _get_env("S3_BUCKET_NAME")


def get_s3_host_name() -> str | None:
    return _get_env("S3_HOST_NAME")


def get_s3_max_file_size() -> int | None:
    return _parse_non_negative_int("S3_MAX_FILE_SIZE", _get_env("S3_MAX_FILE_SIZE"))


def get_s3_bucket_region() -> str:
    return _get_env("S3_BUCKET_REGION") or "us-east-1"


def get_s3_bucket_version() -> str:
    return _get_env("S3_BUCKET_VERSION") or "2006-03-01"


def get_s3_endpoint_url() -> str | None:
    return _get_env("S3_ENDPOINT_URL")


def get_s3_temp_link_ttl_sec() -> int:
    ttl = _parse_non_negative_int("S3_TEMP_LINK_TTL_SEC", _get_env("S3_TEMP_LINK_TTL_SEC"))
    if ttl is None:
        return _DEFAULT_TEMP_LINK_TTL_SEC
    if ttl == 0:
        raise UploadSignerConfigError("S3_TEMP_LINK_TTL_SEC must be greater than zero")
    return ttl


def get_cors_allow_origins() -> list[str]:
    raw = _get_env("CORS_ALLOW_ORIGINS") or "http://localhost:3000"
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


def get_log_level() -> str:
    return (_get_env("LOG_LEVEL") or "INFO").upper()


def get_log_json() -> bool:
    return (_get_env("LOG_JSON") or "false").lower() in {"1", "true", "yes"}


@dataclass(frozen=True)
class UploadSignerConfig:
    """Process-wide signing configuration, built once and never mutated."""

    client_private_key: str = field(repr=False)
    expected_bucket_name: str
    expected_host_name: str | None = None
    expected_max_size: int | None = None
    expected_bucket_region: str = "us-east-1"
    expected_bucket_version: str = "2006-03-01"
    server_public_key: str | None = field(default=None, repr=False)
    server_private_key: str | None = field(default=None, repr=False)
    endpoint_url: str | None = None
    temp_link_ttl_sec: int = _DEFAULT_TEMP_LINK_TTL_SEC


def load_upload_signer_config() -> UploadSignerConfig:
    client_private_key = get_client_secret_key()
    if not client_private_key:
        raise UploadSignerConfigError("AWS_CLIENT_SECRET_KEY is not set")
    bucket_name = get_s3_bucket_name()
    if not bucket_name:
        raise UploadSignerConfigError("S3_BUCKET_NAME is not set")

    return UploadSignerConfig(
        client_private_key=client_private_key,
        expected_bucket_name=bucket_name,
        expected_host_name=get_s3_host_name(),
        expected_max_size=get_s3_max_file_size(),
        expected_bucket_region=get_s3_bucket_region(),
        expected_bucket_version=get_s3_bucket_version(),
        server_public_key=get_server_public_key(),
        server_private_key=get_server_private_key(),
        endpoint_url=get_s3_endpoint_url(),
        temp_link_ttl_sec=get_s3_temp_link_ttl_sec(),
    )


@lru_cache(maxsize=1)
def get_upload_signer_config() -> UploadSignerConfig:
    """FastAPI dependency: the config is loaded on first use and then reused."""
    return load_upload_signer_config()
