"""
Prisma database client for the application.

Usage:
    from app.db.prisma_client import prisma

    rows = await prisma.flashcard.find_many(where={"userId": user_id})

Connected and disconnected in the FastAPI lifespan (main.py). Services
reach the database through :mod:`app.db.generation_store` instead of
importing this module directly.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable

from prisma import Prisma

logger = logging.getLogger(__name__)

prisma = Prisma()

_MAX_CONNECT_RETRIES = 3
_RETRY_DELAY_SECONDS = 2.0


def get_prisma() -> Prisma:
    return prisma


async def connect_with_retry(
    client: Any,
    attempts: int = _MAX_CONNECT_RETRIES,
    delay: float = _RETRY_DELAY_SECONDS,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> None:
    """Connect *client*, waiting ``delay * attempt`` between failed tries.

    Raises:
        RuntimeError: Every attempt failed; the last error is chained.
    """
    if client.is_connected():
        logger.debug("Prisma client already connected")
        return

    last_exc = None
    for attempt in range(1, attempts + 1):
        try:
            await client.connect()
            logger.info("Prisma client connected to database")
            return
        except Exception as e:
            last_exc = e
            if attempt < attempts:
                wait = delay * attempt
                logger.warning(
                    "DB connect attempt %d/%d failed: %s, retrying in %.1fs",
                    attempt, attempts, e, wait,
                )
                await sleep(wait)

    logger.error("Failed to connect Prisma client after %d attempts: %s", attempts, last_exc)
    raise RuntimeError(f"Could not connect to database after {attempts} attempts") from last_exc


async def connect_db() -> None:
    await connect_with_retry(prisma)


async def disconnect_db() -> None:
    """Disconnect the Prisma client. Safe to call when already disconnected."""
    if not prisma.is_connected():
        return
    await prisma.disconnect()
    logger.info("Prisma client disconnected from database")
