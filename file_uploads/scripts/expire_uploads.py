import asyncio
import logging

from file_uploads.core.config import LOG_LEVEL
from file_uploads.db.database import init_db
from file_uploads.lambda_handler import expire_uploads

logger = logging.getLogger(__name__)


async def expire_stale_uploads() -> int:
    await init_db()
    return await expire_uploads()


def expire_uploads_main():
    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    logger.info("Starting expiry sweep...")
    expired = asyncio.run(expire_stale_uploads())
    logger.info("Finished expiry sweep, %d uploads rejected.", expired)


if __name__ == "__main__":
    expire_uploads_main()
