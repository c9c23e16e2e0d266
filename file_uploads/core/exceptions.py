"""Typed failures raised by the upload lifecycle.

Every error carries a stable machine-readable ``code`` and the HTTP status
the request boundary answers with.
"""


class UploadServiceError(Exception):
    code = "INTERNAL_ERROR"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(UploadServiceError):
    """The client sent an upload request outside the accepted policy."""

    code = "VALIDATION_ERROR"
    status_code = 400


class MissingFileName(ValidationError):
    pass


class EmptyFile(ValidationError):
    pass


class FileTooLarge(ValidationError):
    pass


class UnsupportedContentType(ValidationError):
    pass


class NotFoundError(UploadServiceError):
    code = "NOT_FOUND"
    status_code = 404


class InvalidStateError(UploadServiceError):
    """A transition was attempted from a state that does not allow it."""

    code = "INVALID_STATE"
    status_code = 409


class StorageError(UploadServiceError):
    """The record store or blob store failed; the call is safe to retry."""

    code = "STORAGE_ERROR"
    status_code = 503


class AuthenticationError(UploadServiceError):
    code = "UNAUTHORIZED"
    status_code = 401
