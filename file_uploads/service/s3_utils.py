import asyncio
import logging

import boto3
from botocore.config import Config
from botocore.exceptions import BotoCoreError, ClientError

from ..core.config import (
    AWS_ACCESS_KEY_ID,
    AWS_REGION,
    AWS_S3_BUCKET,
    AWS_SECRET_ACCESS_KEY,
)
from ..core.exceptions import StorageError

logger = logging.getLogger(__name__)


def create_s3_client():
    return boto3.client(
        "s3",
        region_name=AWS_REGION,
        aws_access_key_id=AWS_ACCESS_KEY_ID,
        aws_secret_access_key=AWS_SECRET_ACCESS_KEY,
        config=Config(signature_version="s3v4"),
    )


class S3BlobStore:
    """Presigned direct uploads into a single S3 bucket."""

    def __init__(self, client=None, bucket: str = AWS_S3_BUCKET):
        self.client = client if client is not None else create_s3_client()
        self.bucket = bucket

    def _presign_put(self, key: str, ttl_seconds: int, content_type: str) -> str:
        return self.client.generate_presigned_url(
            "put_object",
            Params={
                "Bucket": self.bucket,
                "Key": key,
                "ContentType": content_type,
            },
            ExpiresIn=ttl_seconds,
        )

    async def issue_upload_grant(self, key: str, ttl_seconds: int, content_type: str) -> str:
        """
        Generate a presigned PUT URL for ``key``.

        The client must send the same Content-Type header when uploading,
        otherwise S3 rejects the signature.
        """
        try:
            return await asyncio.to_thread(self._presign_put, key, ttl_seconds, content_type)
        except (BotoCoreError, ClientError) as e:
            logger.error("Presigned upload URL generation failed for %s: %s", key, e)
            raise StorageError(f"Presigned upload URL generation failed: {str(e)}") from e

    async def exists(self, key: str) -> bool:
        try:
            await asyncio.to_thread(self.client.head_object, Bucket=self.bucket, Key=key)
            return True
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code")
            if error_code in ("404", "NoSuchKey", "NotFound"):
                return False
            logger.error("Failed to get S3 metadata for %s: %s", key, e)
            raise StorageError(f"Failed to get S3 metadata: {str(e)}") from e
        except BotoCoreError as e:
            logger.error("Failed to get S3 metadata for %s: %s", key, e)
            raise StorageError(f"Failed to get S3 metadata: {str(e)}") from e
