from functools import lru_cache

from fastapi import Request

from file_uploads.core.exceptions import AuthenticationError
from file_uploads.db.db_utils import UploadRecordStore
from file_uploads.service.s3_utils import S3BlobStore
from file_uploads.service.upload_service import UploadLifecycleManager
from file_uploads.service.validation import UploadValidator

USER_ID_HEADER = "X-User-Id"


@lru_cache(maxsize=1)
def build_lifecycle_manager() -> UploadLifecycleManager:
    return UploadLifecycleManager(UploadRecordStore(), S3BlobStore())


def get_lifecycle_manager() -> UploadLifecycleManager:
    return build_lifecycle_manager()


def get_validator() -> UploadValidator:
    return UploadValidator()


def get_current_user_id(request: Request) -> str:
    """Caller identity as resolved by the gateway in front of this service."""
    user_id = request.headers.get(USER_ID_HEADER, "").strip()
    if not user_id:
        raise AuthenticationError(f"{USER_ID_HEADER} header missing")
    return user_id
