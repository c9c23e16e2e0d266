from fastapi import APIRouter, Depends, status

from file_uploads.dependencies import get_current_user_id, get_lifecycle_manager, get_validator
from file_uploads.schemas.upload import (
    ErrorResponse,
    ExpireResponse,
    UploadMetadata,
    UploadRequest,
    UploadResponse,
)
from file_uploads.service.upload_service import UploadLifecycleManager
from file_uploads.service.validation import UploadValidator

router = APIRouter()

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    404: {"model": ErrorResponse},
    409: {"model": ErrorResponse},
    503: {"model": ErrorResponse},
}


@router.post("/uploads", status_code=status.HTTP_201_CREATED, response_model=UploadResponse, responses=ERROR_RESPONSES)
async def create_upload(
    request: UploadRequest,
    user_id: str = Depends(get_current_user_id),
    validator: UploadValidator = Depends(get_validator),
    manager: UploadLifecycleManager = Depends(get_lifecycle_manager),
):
    """
    Request a direct upload

    This endpoint:
    1. Validates file name, size and content type
    2. Registers a PENDING upload record
    3. Returns a presigned PUT URL valid for the upload TTL
    """
    validated = validator.validate(request)
    _, grant = await manager.create_upload(validated, user_id)
    return UploadResponse.from_grant(grant)


@router.post("/uploads/expire", response_model=ExpireResponse, responses=ERROR_RESPONSES)
async def expire_uploads(manager: UploadLifecycleManager = Depends(get_lifecycle_manager)):
    """Reject every pending upload whose grant has lapsed"""
    return ExpireResponse(expired=await manager.expire_stale_pending())


@router.get("/uploads/{file_id}", response_model=UploadMetadata, responses=ERROR_RESPONSES)
async def get_upload(file_id: str, manager: UploadLifecycleManager = Depends(get_lifecycle_manager)):
    return await manager.get_upload(file_id)


@router.post("/uploads/{file_id}/grant", response_model=UploadResponse, responses=ERROR_RESPONSES)
async def reissue_grant(file_id: str, manager: UploadLifecycleManager = Depends(get_lifecycle_manager)):
    """
    Issue a fresh upload URL for a pending upload

    The new URL expires with the original record; the record is not touched.
    """
    grant = await manager.reissue_grant(file_id)
    return UploadResponse.from_grant(grant)


@router.post("/uploads/{file_id}/confirm", response_model=UploadMetadata, responses=ERROR_RESPONSES)
async def confirm_upload(file_id: str, manager: UploadLifecycleManager = Depends(get_lifecycle_manager)):
    """
    Mark a pending upload as UPLOADED

    The object must already exist in the bucket.
    """
    return await manager.confirm_upload(file_id, verify_object=True)


# Health Check
@router.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy", "service": "File Uploads Service"}
