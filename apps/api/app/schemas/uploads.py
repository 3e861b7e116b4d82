from pydantic import BaseModel, ConfigDict, Field


class UploadSuccessNotification(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    bucket: str = Field(min_length=1)
    key: str = Field(min_length=1)
    name: str | None = None
    is_browser_preview_capable: bool = Field(default=False, alias="isBrowserPreviewCapable")


class UploadDeleteRequest(BaseModel):
    bucket: str = Field(min_length=1)
    key: str = Field(min_length=1)


class PolicySignatureResponse(BaseModel):
    policy: str
    signature: str


class RestSignatureResponse(BaseModel):
    signature: str


class InvalidSigningResponse(BaseModel):
    invalid: bool = True


class UploadSuccessResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    temp_link: str = Field(alias="tempLink")
    thumbnail_url: str | None = Field(default=None, alias="thumbnailUrl")


class UploadErrorResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    error: str
    prevent_retry: bool = Field(default=True, alias="preventRetry")
