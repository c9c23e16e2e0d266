# file_uploads/db/models.py

from sqlalchemy import Column, String, Enum, BigInteger
from .database import Base
import enum

class UploadStatusEnum(str, enum.Enum):
    PENDING = "PENDING"
    UPLOADED = "UPLOADED"
    REJECTED = "REJECTED"

class FileUploadRecord(Base):
    __tablename__ = "file_uploads"

    file_id = Column(String(36), primary_key=True)
    user_id = Column(String(255), nullable=False, index=True)
    file_name = Column(String(1024), nullable=False)
    file_size_bytes = Column(BigInteger, nullable=False)
    storage_key = Column(String(2048), nullable=False, unique=True)
    status = Column(Enum(UploadStatusEnum), nullable=False, default=UploadStatusEnum.PENDING, index=True)
    content_type = Column(String(255), nullable=False)
    # RFC 3339 UTC strings
    created_at = Column(String(20), nullable=False)
    updated_at = Column(String(20), nullable=False)
    # epoch seconds; the record is eligible for removal after this instant
    ttl = Column(BigInteger, nullable=False, index=True)
