from __future__ import annotations

from dataclasses import dataclass
from pathlib import PurePosixPath

from app.config import UploadSignerConfig
from app.exceptions import UploadTooLargeError
from app.logging_config import get_logger
from app.services.s3_storage import UploadStorage

logger = get_logger(__name__)

VIEWABLE_IMAGE_EXTENSIONS = frozenset({"jpeg", "jpg", "gif", "png", "svg"})


@dataclass(frozen=True)
class VerifiedUpload:
    temp_link: str
    thumbnail_url: str | None = None


def is_viewable_image(filename: str | None) -> bool:
    """Extension-only guess at whether every supported browser renders the file inline."""
    if not filename:
        return False
    extension = PurePosixPath(filename.replace("\\", "/")).suffix.lstrip(".").lower()
    return extension in VIEWABLE_IMAGE_EXTENSIONS


def should_include_thumbnail(filename: str | None, is_browser_preview_capable: bool) -> bool:
    return not is_browser_preview_capable and is_viewable_image(filename)


def verify_uploaded_file(
    *,
    storage: UploadStorage,
    config: UploadSignerConfig,
    bucket: str,
    key: str,
    filename: str | None,
    is_browser_preview_capable: bool,
) -> VerifiedUpload:
    """Re-check a finished upload against the size limit and hand back a temporary link.

    Oversize objects are deleted before UploadTooLargeError is raised. A failing
    delete propagates as StorageServiceError instead.
    """
    max_size = config.expected_max_size
    if max_size is not None:
        size = storage.head_object_size(bucket, key)
        if size > max_size:
            storage.delete_object(bucket, key)
            logger.warning("oversize_upload_deleted", bucket=bucket, key=key, size=size, max_size=max_size)
            raise UploadTooLargeError(bucket=bucket, key=key, size=size, max_size=max_size)

    link = storage.presign_get(bucket, key, config.temp_link_ttl_sec)
    thumbnail_url = link if should_include_thumbnail(filename, is_browser_preview_capable) else None
    return VerifiedUpload(temp_link=link, thumbnail_url=thumbnail_url)


def delete_uploaded_file(*, storage: UploadStorage, bucket: str, key: str) -> None:
    storage.delete_object(bucket, key)
    logger.info("upload_deleted", bucket=bucket, key=key)
