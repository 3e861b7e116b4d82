"""Upload signer exceptions."""


class UploadSignerError(Exception):
    """Base upload signer exception."""


class UploadSignerConfigError(UploadSignerError):
    """Required signer configuration is missing or malformed."""


class MalformedSigningRequestError(UploadSignerError):
    """The signing request body cannot be interpreted."""


class MalformedCredentialScopeError(MalformedSigningRequestError):
    """A v4 credential scope does not have the `<date>/<region>/s3/aws4_request` shape."""


class StorageServiceError(UploadSignerError):
    """The object storage service failed or could not be reached."""


class UploadTooLargeError(UploadSignerError):
    """The stored object exceeded the size limit and has been deleted."""

    def __init__(self, *, bucket: str, key: str, size: int, max_size: int) -> None:
        super().__init__(f"Object {bucket}/{key} is {size} bytes, limit is {max_size}")
        self.bucket = bucket
        self.key = key
        self.size = size
        self.max_size = max_size
