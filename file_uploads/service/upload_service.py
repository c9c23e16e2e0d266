import logging
import uuid
from datetime import datetime, timedelta, timezone
from pathlib import PurePosixPath
from typing import Callable, Optional, Tuple

from file_uploads.core.config import PRESIGNED_URL_TTL_SECONDS, S3_UPLOAD_FOLDER
from file_uploads.core.exceptions import InvalidStateError, NotFoundError
from file_uploads.db.db_utils import as_utc
from file_uploads.db.models import UploadStatusEnum
from file_uploads.schemas.upload import UploadGrant, UploadMetadata, ValidatedUploadRequest

logger = logging.getLogger(__name__)

# Direct-to-storage upload lifecycle:
# - create_upload: PENDING record + presigned PUT URL
# - confirm_upload: PENDING -> UPLOADED (S3 event or client callback)
# - expire_stale_pending: PENDING -> REJECTED once the grant has lapsed
# - record store TTL removes rows physically; nothing here depends on when


def utc_now() -> datetime:
    """Current UTC time at whole-second precision, matching what the record store keeps."""
    return datetime.now(timezone.utc).replace(microsecond=0)


def generate_file_id() -> str:
    return str(uuid.uuid4())


def build_storage_key(user_id: str, file_id: str, file_name: str, prefix: str = S3_UPLOAD_FOLDER) -> str:
    """
    Derive the object key for an upload.

    Format: {prefix}{user_id}/{file_id}/{file_name}
    The file id segment keeps repeated uploads of one name apart.
    """
    safe_name = PurePosixPath(file_name.replace("\\", "/")).name or file_id
    return f"{prefix}{user_id}/{file_id}/{safe_name}"


class UploadLifecycleManager:
    def __init__(
        self,
        record_store,
        blob_store,
        ttl_seconds: int = PRESIGNED_URL_TTL_SECONDS,
        key_prefix: str = S3_UPLOAD_FOLDER,
        clock: Callable[[], datetime] = utc_now,
        id_factory: Callable[[], str] = generate_file_id,
    ):
        self.record_store = record_store
        self.blob_store = blob_store
        self.ttl_seconds = ttl_seconds
        self.key_prefix = key_prefix
        self.clock = clock
        self.id_factory = id_factory

    async def create_upload(
        self, request: ValidatedUploadRequest, user_id: str
    ) -> Tuple[UploadMetadata, UploadGrant]:
        """Register a PENDING upload and hand out a grant to write it.

        The grant is signed before the record is written, so a failure in
        either collaborator leaves nothing behind.
        """
        now = self.clock()
        file_id = self.id_factory()
        metadata = UploadMetadata(
            file_id=file_id,
            user_id=user_id,
            file_name=request.file_name,
            file_size_bytes=request.file_size_bytes,
            storage_key=build_storage_key(user_id, file_id, request.file_name, self.key_prefix),
            status=UploadStatusEnum.PENDING,
            content_type=request.content_type,
            created_at=now,
            updated_at=now,
            expires_at=now + timedelta(seconds=self.ttl_seconds),
        )

        upload_url = await self.blob_store.issue_upload_grant(
            metadata.storage_key, self.ttl_seconds, metadata.content_type
        )
        await self.record_store.put(metadata)

        logger.info("Created upload %s for user %s at %s", file_id, user_id, metadata.storage_key)
        grant = UploadGrant(file_id=file_id, upload_url=upload_url, expires_in=self.ttl_seconds)
        return metadata, grant

    async def get_upload(self, file_id: str) -> UploadMetadata:
        metadata = await self.record_store.get(file_id)
        if metadata is None:
            raise NotFoundError(f"upload {file_id} not found")
        return metadata

    async def reissue_grant(self, file_id: str) -> UploadGrant:
        """Sign a fresh URL for a PENDING upload, limited to the record's remaining lifetime."""
        metadata = await self.get_upload(file_id)
        self._require_pending(metadata)

        remaining = int((metadata.expires_at - self.clock()).total_seconds())
        if remaining <= 0:
            raise InvalidStateError(f"upload {file_id} has expired")

        upload_url = await self.blob_store.issue_upload_grant(
            metadata.storage_key, remaining, metadata.content_type
        )
        return UploadGrant(file_id=file_id, upload_url=upload_url, expires_in=remaining)

    async def confirm_upload(self, file_id: str, verify_object: bool = False) -> UploadMetadata:
        metadata = await self.get_upload(file_id)
        self._require_pending(metadata)

        now = self.clock()
        # Past expiry the upload belongs to the sweep, even if it has not run yet.
        if now >= metadata.expires_at:
            logger.warning("Rejected confirmation of expired upload %s", file_id)
            raise InvalidStateError(f"upload {file_id} has expired")

        if verify_object and not await self.blob_store.exists(metadata.storage_key):
            raise NotFoundError(f"no object uploaded for {file_id}")

        updated = await self.record_store.conditional_update_status(
            file_id, UploadStatusEnum.PENDING, UploadStatusEnum.UPLOADED, now
        )
        if not updated:
            logger.warning("Lost confirmation race for upload %s", file_id)
            raise InvalidStateError(f"upload {file_id} is no longer pending")

        logger.info("Upload %s confirmed", file_id)
        return metadata.model_copy(update={"status": UploadStatusEnum.UPLOADED, "updated_at": now})

    async def expire_stale_pending(self, now: Optional[datetime] = None) -> int:
        """Reject every PENDING upload whose expiry is at or before ``now``.

        Records another sweep or a confirmation already moved are skipped, so
        overlapping or repeated runs count each record once.
        """
        now = self.clock() if now is None else as_utc(now)

        stale = await self.record_store.scan_by_status_and_expiry(UploadStatusEnum.PENDING, now)
        expired = 0
        for metadata in stale:
            if await self.record_store.conditional_update_status(
                metadata.file_id, UploadStatusEnum.PENDING, UploadStatusEnum.REJECTED, now
            ):
                expired += 1
                logger.info("Upload %s expired", metadata.file_id)

        if stale:
            logger.info("Expired %d of %d stale pending uploads", expired, len(stale))
        return expired

    @staticmethod
    def _require_pending(metadata: UploadMetadata) -> None:
        if metadata.status != UploadStatusEnum.PENDING:
            logger.warning(
                "Rejected transition of upload %s in state %s", metadata.file_id, metadata.status.value
            )
            raise InvalidStateError(
                f"upload {metadata.file_id} is {metadata.status.value}, expected PENDING"
            )
