from collections.abc import Callable, Mapping

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from starlette.concurrency import run_in_threadpool

from app.config import UploadSignerConfig, get_upload_signer_config
from app.exceptions import MalformedSigningRequestError, StorageServiceError, UploadTooLargeError
from app.logging_config import get_logger
from app.schemas.uploads import (
    InvalidSigningResponse,
    PolicySignatureResponse,
    RestSignatureResponse,
    UploadDeleteRequest,
    UploadErrorResponse,
    UploadSuccessNotification,
    UploadSuccessResponse,
)
from app.services.s3_storage import S3UploadStorage, UploadStorage
from app.services.upload_signer import SigningResult, sign_upload_request
from app.services.upload_verifier import delete_uploaded_file, verify_uploaded_file

logger = get_logger(__name__)

router = APIRouter(prefix="/s3", tags=["uploads"])

_FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

StorageProvider = Callable[[], UploadStorage]

_DELETE_RESPONSES: dict = {
    403: {"description": "Delete targets a bucket this service does not manage"},
    502: {"description": "Object storage request failed"},
}


def get_upload_storage_provider(
    config: UploadSignerConfig = Depends(get_upload_signer_config),
) -> StorageProvider:
    """Signing requests never touch S3, so the client is only built when a handler asks for it."""
    return lambda: S3UploadStorage.from_config(config)


def _is_form_request(request: Request) -> bool:
    content_type = request.headers.get("content-type", "").lower()
    return content_type.startswith(_FORM_CONTENT_TYPES)


def _to_signing_response(result: SigningResult) -> dict:
    if result.invalid:
        return InvalidSigningResponse().model_dump()
    if result.policy is not None:
        return PolicySignatureResponse(policy=result.policy, signature=result.signature).model_dump()
    return RestSignatureResponse(signature=result.signature).model_dump()


async def _read_fields(request: Request) -> dict:
    fields: dict = dict(request.query_params)
    if _is_form_request(request):
        form = await request.form()
        fields.update({name: value for name, value in form.items() if isinstance(value, str)})
    elif request.method != "DELETE":
        body = await request.body()
        if body.strip():
            try:
                payload = await request.json()
            except ValueError:
                payload = None
            if isinstance(payload, dict):
                fields.update(payload)
    return fields


def _parse_model(model, fields: Mapping):
    try:
        return model.model_validate(dict(fields))
    except ValidationError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid request fields: {', '.join(str(err['loc'][-1]) for err in exc.errors())}",
        ) from exc


async def _verify_upload(
    fields: Mapping,
    config: UploadSignerConfig,
    storage_provider: StorageProvider,
) -> JSONResponse:
    notification = _parse_model(UploadSuccessNotification, fields)
    try:
        verified = await run_in_threadpool(
            lambda: verify_uploaded_file(
                storage=storage_provider(),
                config=config,
                bucket=notification.bucket,
                key=notification.key,
                filename=notification.name,
                is_browser_preview_capable=notification.is_browser_preview_capable,
            )
        )
    except UploadTooLargeError:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=UploadErrorResponse(error="File is too big!").model_dump(by_alias=True),
        )
    except StorageServiceError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc

    response = UploadSuccessResponse(temp_link=verified.temp_link, thumbnail_url=verified.thumbnail_url)
    return JSONResponse(content=response.model_dump(by_alias=True, exclude_none=True))


async def _delete_upload(
    fields: Mapping,
    config: UploadSignerConfig,
    storage_provider: StorageProvider,
) -> JSONResponse:
    target = _parse_model(UploadDeleteRequest, fields)
    if target.bucket != config.expected_bucket_name:
        logger.warning("upload_delete_rejected", bucket=target.bucket, key=target.key)
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Bucket is not managed by this service")

    try:
        await run_in_threadpool(
            lambda: delete_uploaded_file(storage=storage_provider(), bucket=target.bucket, key=target.key)
        )
    except StorageServiceError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return JSONResponse(content={})


@router.post(
    "/endpoint",
    responses={
        200: {"description": "Signature, `{\"invalid\": true}`, or a temporary link for a finished upload"},
        400: {"description": "Malformed signing request or notification"},
        403: {"description": "Delete targets a bucket this service does not manage"},
        500: {"model": UploadErrorResponse, "description": "Uploaded file exceeded the size limit and was deleted"},
        502: {"description": "Object storage request failed"},
    },
)
async def handle_upload_endpoint(
    request: Request,
    config: UploadSignerConfig = Depends(get_upload_signer_config),
    storage_provider: StorageProvider = Depends(get_upload_storage_provider),
) -> JSONResponse:
    fields = await _read_fields(request)
    if str(fields.get("_method", "")).upper() == "DELETE":
        return await _delete_upload(fields, config, storage_provider)
    if "success" in fields:
        return await _verify_upload(fields, config, storage_provider)
    if _is_form_request(request):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Form requests must be upload-success or delete notifications",
        )

    body = await request.body()
    try:
        result = sign_upload_request(body, config=config, v4_requested="v4" in request.query_params)
    except MalformedSigningRequestError as exc:
        logger.warning("signing_request_malformed", error=str(exc))
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return JSONResponse(content=_to_signing_response(result))


@router.delete("/endpoint", responses=_DELETE_RESPONSES)
@router.delete("/endpoint/{file_uuid}", responses=_DELETE_RESPONSES)
async def delete_upload_endpoint(
    request: Request,
    file_uuid: str | None = None,
    config: UploadSignerConfig = Depends(get_upload_signer_config),
    storage_provider: StorageProvider = Depends(get_upload_storage_provider),
) -> JSONResponse:
    del file_uuid
    fields = await _read_fields(request)
    return await _delete_upload(fields, config, storage_provider)
