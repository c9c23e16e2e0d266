from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from file_uploads.db.models import UploadStatusEnum


class UploadRequest(BaseModel):
    """JSON body sent by clients to POST /uploads."""

    model_config = ConfigDict(populate_by_name=True)

    # Missing fields fall back to zero values so the validator reports them.
    file_name: str = Field("", alias="fileName", examples=["report.pdf"])
    file_size_bytes: int = Field(0, alias="fileSizeBytes", strict=True, examples=[524288])
    content_type: str = Field("", alias="contentType", examples=["application/pdf"])


class ValidatedUploadRequest(BaseModel):
    """An upload request that passed the upload policy checks."""

    model_config = ConfigDict(frozen=True)

    file_name: str
    file_size_bytes: int
    content_type: str


class UploadMetadata(BaseModel):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    file_id: str = Field(..., alias="fileId")
    user_id: str = Field(..., alias="userId")
    file_name: str = Field(..., alias="fileName")
    file_size_bytes: int = Field(..., alias="fileSizeBytes")
    storage_key: str = Field(..., alias="storageKey")
    status: UploadStatusEnum
    content_type: str = Field(..., alias="contentType")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")
    expires_at: datetime = Field(..., alias="expiresAt")


class UploadGrant(BaseModel):
    model_config = ConfigDict(frozen=True)

    file_id: str
    upload_url: str
    expires_in: int


class UploadResponse(BaseModel):
    """Returned on a successful upload request or grant reissue."""

    model_config = ConfigDict(populate_by_name=True)

    file_id: str = Field(..., alias="fileId", examples=["0b0f7a3c-2f0e-4d8f-9a55-1f4b7a2f0c11"])
    upload_url: str = Field(..., alias="uploadUrl")
    expires_in: int = Field(..., alias="expiresIn", examples=[300])

    @classmethod
    def from_grant(cls, grant: UploadGrant) -> "UploadResponse":
        return cls(file_id=grant.file_id, upload_url=grant.upload_url, expires_in=grant.expires_in)


class ExpireResponse(BaseModel):
    expired: int


class ErrorResponse(BaseModel):
    """Returned for any failed API request."""

    error: str = Field(..., examples=["VALIDATION_ERROR"])
    message: str = Field(..., examples=["file size exceeds 1 MB limit"])
