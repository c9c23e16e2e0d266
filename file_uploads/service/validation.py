from typing import Iterable, Optional

from file_uploads.core.config import ALLOWED_CONTENT_TYPES, MAX_FILE_SIZE_BYTES
from file_uploads.core.exceptions import (
    EmptyFile,
    FileTooLarge,
    MissingFileName,
    UnsupportedContentType,
)
from file_uploads.schemas.upload import UploadRequest, ValidatedUploadRequest


def _format_size(size_bytes: int) -> str:
    if size_bytes % (1024 * 1024) == 0:
        return f"{size_bytes // (1024 * 1024)} MB"
    if size_bytes % 1024 == 0:
        return f"{size_bytes // 1024} KB"
    return f"{size_bytes} bytes"


class UploadValidator:
    """Checks an upload request against the upload policy.

    Rules run in order and the first failure is raised; nothing else happens.
    """

    def __init__(
        self,
        max_file_size_bytes: int = MAX_FILE_SIZE_BYTES,
        allowed_content_types: Optional[Iterable[str]] = None,
    ):
        if allowed_content_types is None:
            allowed_content_types = ALLOWED_CONTENT_TYPES
        self.max_file_size_bytes = max_file_size_bytes
        self.allowed_content_types = tuple(allowed_content_types)

    def validate(self, request: UploadRequest) -> ValidatedUploadRequest:
        if not request.file_name:
            raise MissingFileName("fileName is required")

        if request.content_type not in self.allowed_content_types:
            allowed = ", ".join(self.allowed_content_types)
            raise UnsupportedContentType(
                f"content type '{request.content_type}' is not supported; expected {allowed}"
            )

        if request.file_size_bytes <= 0:
            raise EmptyFile("file size must be greater than zero")

        if request.file_size_bytes > self.max_file_size_bytes:
            raise FileTooLarge(
                f"file size exceeds {_format_size(self.max_file_size_bytes)} limit"
            )

        return ValidatedUploadRequest(
            file_name=request.file_name,
            file_size_bytes=request.file_size_bytes,
            content_type=request.content_type,
        )
