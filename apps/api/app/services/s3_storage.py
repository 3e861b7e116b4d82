from __future__ import annotations

from typing import Protocol

import boto3
from botocore.client import BaseClient
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from app.config import UploadSignerConfig
from app.exceptions import StorageServiceError, UploadSignerConfigError
from app.logging_config import get_logger

logger = get_logger(__name__)

# One attempt only: a retried DELETE or HEAD must never be issued behind the caller's back.
_S3_CLIENT_CONFIG = Config(
    connect_timeout=5,
    read_timeout=10,
    retries={"total_max_attempts": 1, "mode": "standard"},
)


class UploadStorage(Protocol):
    def head_object_size(self, bucket: str, key: str) -> int: ...

    def delete_object(self, bucket: str, key: str) -> None: ...

    def presign_get(self, bucket: str, key: str, ttl: int) -> str: ...


def create_s3_client(config: UploadSignerConfig) -> BaseClient:
    if not config.server_public_key or not config.server_private_key:
        raise UploadSignerConfigError(
            "S3 credentials missing: set AWS_SERVER_PUBLIC_KEY and AWS_SERVER_PRIVATE_KEY"
        )

    # Clients are built on request threads, so each one gets its own session.
    session = boto3.session.Session()
    return session.client(
        "s3",
        region_name=config.expected_bucket_region,
        api_version=config.expected_bucket_version,
        aws_access_key_id=config.server_public_key,
        aws_secret_access_key=config.server_private_key,
        endpoint_url=config.endpoint_url,
        config=_S3_CLIENT_CONFIG,
    )


def get_object_size(*, client: BaseClient, bucket: str, key: str) -> int:
    response = client.head_object(Bucket=bucket, Key=key)
    return int(response["ContentLength"])


def delete_object(*, client: BaseClient, bucket: str, key: str) -> None:
    client.delete_object(Bucket=bucket, Key=key)


def generate_presigned_get_url(
    *,
    client: BaseClient,
    bucket: str,
    key: str,
    expires_in: int = 900,
) -> str:
    return client.generate_presigned_url(
        "get_object",
        Params={
            "Bucket": bucket,
            "Key": key,
        },
        ExpiresIn=expires_in,
        HttpMethod="GET",
    )


class S3UploadStorage:
    """`UploadStorage` backed by a boto3 S3 client; botocore failures become StorageServiceError."""

    def __init__(self, client: BaseClient) -> None:
        self._client = client

    @classmethod
    def from_config(cls, config: UploadSignerConfig) -> S3UploadStorage:
        return cls(create_s3_client(config))

    def head_object_size(self, bucket: str, key: str) -> int:
        try:
            return get_object_size(client=self._client, bucket=bucket, key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.error("s3_head_object_failed", bucket=bucket, key=key, error=str(exc))
            raise StorageServiceError(f"Failed to read size of {bucket}/{key}") from exc

    def delete_object(self, bucket: str, key: str) -> None:
        try:
            delete_object(client=self._client, bucket=bucket, key=key)
        except (BotoCoreError, ClientError) as exc:
            logger.error("s3_delete_object_failed", bucket=bucket, key=key, error=str(exc))
            raise StorageServiceError(f"Failed to delete {bucket}/{key}") from exc

    def presign_get(self, bucket: str, key: str, ttl: int) -> str:
        try:
            return generate_presigned_get_url(client=self._client, bucket=bucket, key=key, expires_in=ttl)
        except (BotoCoreError, ClientError) as exc:
            logger.error("s3_presign_failed", bucket=bucket, key=key, error=str(exc))
            raise StorageServiceError(f"Failed to create a temporary link for {bucket}/{key}") from exc
