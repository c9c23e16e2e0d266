import logging
from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.future import select

from file_uploads.core.exceptions import StorageError
from file_uploads.db.database import AsyncSessionLocal
from file_uploads.db.models import FileUploadRecord, UploadStatusEnum
from file_uploads.schemas.upload import UploadMetadata

logger = logging.getLogger(__name__)

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_timestamp(value: datetime) -> str:
    return as_utc(value).strftime(TIMESTAMP_FORMAT)


def parse_timestamp(value: str) -> datetime:
    return datetime.strptime(value, TIMESTAMP_FORMAT).replace(tzinfo=timezone.utc)


def to_epoch(value: datetime) -> int:
    return int(as_utc(value).timestamp())


def record_from_metadata(metadata: UploadMetadata) -> FileUploadRecord:
    return FileUploadRecord(
        file_id=metadata.file_id,
        user_id=metadata.user_id,
        file_name=metadata.file_name,
        file_size_bytes=metadata.file_size_bytes,
        storage_key=metadata.storage_key,
        status=metadata.status,
        content_type=metadata.content_type,
        created_at=format_timestamp(metadata.created_at),
        updated_at=format_timestamp(metadata.updated_at),
        ttl=to_epoch(metadata.expires_at),
    )


def metadata_from_record(record: FileUploadRecord) -> UploadMetadata:
    return UploadMetadata(
        file_id=record.file_id,
        user_id=record.user_id,
        file_name=record.file_name,
        file_size_bytes=record.file_size_bytes,
        storage_key=record.storage_key,
        status=UploadStatusEnum(record.status),
        content_type=record.content_type,
        created_at=parse_timestamp(record.created_at),
        updated_at=parse_timestamp(record.updated_at),
        expires_at=datetime.fromtimestamp(record.ttl, tz=timezone.utc),
    )


class UploadRecordStore:
    """Key-value access to upload metadata, keyed by file id.

    Status changes go through :meth:`conditional_update_status` only, so two
    writers racing on the same record can never both win.
    """

    def __init__(self, session_factory=AsyncSessionLocal):
        self.session_factory = session_factory

    async def put(self, metadata: UploadMetadata) -> None:
        async with self.session_factory() as db:
            try:
                db.add(record_from_metadata(metadata))
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error("Failed to store upload %s: %s", metadata.file_id, e)
                raise StorageError(f"Database insert failed: {str(e)}") from e

    async def get(self, file_id: str) -> Optional[UploadMetadata]:
        async with self.session_factory() as db:
            try:
                result = await db.execute(
                    select(FileUploadRecord).where(FileUploadRecord.file_id == file_id)
                )
                record = result.scalar_one_or_none()
            except SQLAlchemyError as e:
                logger.error("Failed to load upload %s: %s", file_id, e)
                raise StorageError(f"Database read failed: {str(e)}") from e
            return metadata_from_record(record) if record else None

    async def conditional_update_status(
        self,
        file_id: str,
        expected_status: UploadStatusEnum,
        new_status: UploadStatusEnum,
        updated_at: datetime,
    ) -> bool:
        """Set ``new_status`` only if the record currently has ``expected_status``.

        Returns False when the record is missing or its status no longer matches.
        """
        async with self.session_factory() as db:
            try:
                result = await db.execute(
                    update(FileUploadRecord)
                    .where(
                        FileUploadRecord.file_id == file_id,
                        FileUploadRecord.status == expected_status,
                    )
                    .values(status=new_status, updated_at=format_timestamp(updated_at))
                )
                await db.commit()
            except SQLAlchemyError as e:
                await db.rollback()
                logger.error("Status update failed for upload %s: %s", file_id, e)
                raise StorageError(f"Status update failed: {str(e)}") from e
            return result.rowcount == 1

    async def scan_by_status_and_expiry(
        self, status: UploadStatusEnum, before: datetime
    ) -> List[UploadMetadata]:
        """Records in ``status`` whose expiry is at or before ``before``."""
        async with self.session_factory() as db:
            try:
                result = await db.execute(
                    select(FileUploadRecord)
                    .where(
                        FileUploadRecord.status == status,
                        FileUploadRecord.ttl <= to_epoch(before),
                    )
                    .order_by(FileUploadRecord.ttl)
                )
                records = result.scalars().all()
            except SQLAlchemyError as e:
                logger.error("Scan for %s uploads failed: %s", status.value, e)
                raise StorageError(f"Database scan failed: {str(e)}") from e
            return [metadata_from_record(record) for record in records]
