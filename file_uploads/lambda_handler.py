import asyncio
import json
import logging
from urllib.parse import unquote_plus

from .core.config import LOG_LEVEL, S3_UPLOAD_FOLDER
from .core.exceptions import InvalidStateError, NotFoundError, StorageError
from .db.database import engine
from .dependencies import build_lifecycle_manager

logging.getLogger().setLevel(getattr(logging, LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)


def lambda_handler(event, context):
    """
    AWS Lambda function handler for S3 upload events

    Triggered when an object is created under the upload prefix. Each object
    confirms the matching PENDING upload record. Records that are unknown or
    already resolved are skipped; a storage failure answers 500 so the
    trigger retries.
    """
    object_keys = [
        unquote_plus(record['s3']['object']['key'])
        for record in event.get('Records', [])
    ]
    results = asyncio.run(confirm_objects(object_keys))
    failed = any(result['status'] == 'failed' for result in results)

    return {
        'statusCode': 500 if failed else 200,
        'body': json.dumps({'results': results})
    }


def sweep_handler(event, context):
    """
    Scheduled Lambda handler that rejects pending uploads past their expiry
    """
    try:
        expired = asyncio.run(expire_uploads())
    except StorageError as e:
        logger.error("Expiry sweep failed: %s", e.message)
        return {
            'statusCode': 500,
            'body': json.dumps({'error': e.code, 'message': e.message})
        }

    return {
        'statusCode': 200,
        'body': json.dumps({'expired': expired})
    }


async def confirm_objects(object_keys):
    manager = build_lifecycle_manager()
    results = []
    try:
        for object_key in object_keys:
            file_id = extract_file_id_from_key(object_key)
            if not file_id:
                logger.warning("Could not extract file_id from key: %s", object_key)
                results.append({'key': object_key, 'status': 'ignored'})
                continue

            try:
                metadata = await manager.confirm_upload(file_id)
                results.append({'key': object_key, 'file_id': file_id, 'status': metadata.status.value})
            except (NotFoundError, InvalidStateError) as e:
                logger.warning("Skipping confirmation for %s: %s", object_key, e.message)
                results.append({'key': object_key, 'file_id': file_id, 'status': 'skipped', 'reason': e.code})
            except StorageError as e:
                logger.error("Confirmation failed for %s: %s", object_key, e.message)
                results.append({'key': object_key, 'file_id': file_id, 'status': 'failed', 'reason': e.code})
    finally:
        # pooled connections belong to this invocation's event loop
        await engine.dispose()
    return results


async def expire_uploads():
    manager = build_lifecycle_manager()
    try:
        return await manager.expire_stale_pending()
    finally:
        await engine.dispose()


def extract_file_id_from_key(object_key, prefix=S3_UPLOAD_FOLDER):
    """
    Extract file_id from S3 object key
    Expected format: {prefix}{user_id}/{file_id}/{filename}
    The user id may itself contain slashes; the file name never does.
    """
    if not object_key.startswith(prefix):
        return None

    parts = object_key[len(prefix):].split('/')
    if len(parts) < 3 or not all(parts):
        return None
    return parts[-2]
