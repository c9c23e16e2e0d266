import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from .core.config import LOG_LEVEL
from .core.exceptions import UploadServiceError, ValidationError
from .db.database import init_db
from .routers import uploads
from .schemas.upload import ErrorResponse

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("Upload record store ready")
    yield


app = FastAPI(
    title="File Uploads Service",
    description="Presigned S3 uploads with tracked upload metadata",
    version="1.0.0",
    lifespan=lifespan,
)


def error_response(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(
        ErrorResponse(error=error, message=message).model_dump(),
        status_code=status_code,
    )


@app.exception_handler(UploadServiceError)
async def upload_service_error_handler(request: Request, exc: UploadServiceError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_error_handler(request: Request, exc: RequestValidationError):
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'][1:]) or 'body'}: {error['msg']}"
        for error in exc.errors()
    )
    return error_response(ValidationError.status_code, ValidationError.code, details or "invalid request")


# Include routers
app.include_router(uploads.router, prefix="/api/v1", tags=["Uploads"])


@app.get("/")
async def root():
    return {
        "message": "File Uploads Service",
        "version": "1.0.0",
    }
