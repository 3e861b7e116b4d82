from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.config import get_cors_allow_origins
from app.exceptions import UploadSignerConfigError
from app.logging_config import configure_logging, get_logger
from app.routers import uploads_router

configure_logging()
logger = get_logger(__name__)

app = FastAPI(
    title="S3 Upload Signer API",
    description="Signs browser-to-S3 upload policies and REST requests, then verifies finished uploads",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_allow_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(uploads_router)


@app.exception_handler(UploadSignerConfigError)
async def handle_config_error(request: Request, exc: UploadSignerConfigError) -> JSONResponse:
    logger.error("upload_signer_misconfigured", path=request.url.path, error=str(exc))
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Upload signer is not configured"},
    )


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "s3-upload-signer"}
