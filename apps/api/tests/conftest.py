import pytest

from app.config import UploadSignerConfig
from app.exceptions import StorageServiceError


@pytest.fixture
def signer_config() -> UploadSignerConfig:
    return UploadSignerConfig(
        client_private_key="test-client-secret",
        expected_bucket_name="uploads",
        expected_host_name="uploads.s3.amazonaws.com",
        expected_max_size=5242880,
        server_public_key="server-access-key",
        server_private_key="server-secret-key",
    )


class FakeUploadStorage:
    def __init__(self, sizes: dict[tuple[str, str], int] | None = None, fail_on: set[str] | None = None) -> None:
        self.sizes = dict(sizes or {})
        self.fail_on = set(fail_on or ())
        self.calls: list[tuple] = []

    def head_object_size(self, bucket: str, key: str) -> int:
        self.calls.append(("head", bucket, key))
        self._maybe_fail("head")
        return self.sizes[(bucket, key)]

    def delete_object(self, bucket: str, key: str) -> None:
        self.calls.append(("delete", bucket, key))
        self._maybe_fail("delete")
        self.sizes.pop((bucket, key), None)

    def presign_get(self, bucket: str, key: str, ttl: int) -> str:
        self.calls.append(("presign", bucket, key, ttl))
        self._maybe_fail("presign")
        return f"https://{bucket}.s3.amazonaws.com/{key}?X-Amz-Expires={ttl}"

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise StorageServiceError(f"{operation} failed")


@pytest.fixture
def fake_storage() -> FakeUploadStorage:
    return FakeUploadStorage()
