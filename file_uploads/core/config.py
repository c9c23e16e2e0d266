import os
from dotenv import load_dotenv

load_dotenv()

# AWS S3 configuration
AWS_S3_BUCKET = os.getenv("AWS_S3_BUCKET", "file-uploads")
AWS_ACCESS_KEY_ID = os.getenv("AWS_ACCESS_KEY_ID")
AWS_SECRET_ACCESS_KEY = os.getenv("AWS_SECRET_ACCESS_KEY")
S3_UPLOAD_FOLDER = os.getenv("S3_UPLOAD_FOLDER", "uploads/")
AWS_REGION = os.getenv("AWS_REGION", "eu-north-1")

# Record store
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./file_uploads.db")
SQL_ECHO = os.getenv("SQL_ECHO", "false").lower() in ("1", "true", "yes")

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").strip().upper()

# Upload policy
MAX_FILE_SIZE_BYTES = int(os.getenv("MAX_FILE_SIZE_BYTES", "1048576"))  # 1 MB
ALLOWED_CONTENT_TYPES = tuple(
    content_type.strip()
    for content_type in os.getenv("ALLOWED_CONTENT_TYPES", "application/pdf").split(",")
    if content_type.strip()
)
PRESIGNED_URL_TTL_SECONDS = int(os.getenv("PRESIGNED_URL_TTL_SECONDS", "300"))  # 5 minutes
