import argparse
import asyncio
import logging

from core.database import engine
from models.base import Base
from models.user import User  # noqa: F401
from models.idea import Idea  # noqa: F401
from models.swipe import Swipe  # noqa: F401
from models.request import IdeaRequest  # noqa: F401
from models.match import Match  # noqa: F401
from models.message import Message  # noqa: F401

log = logging.getLogger(__name__)
logging.basicConfig(level=logging.INFO)


async def async_reset_database(drop: bool = True):
    if drop:
        log.info("Dropping all tables...")
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.drop_all, checkfirst=True)

    log.info("Creating tables: %s", ", ".join(sorted(Base.metadata.tables)))
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all, checkfirst=True)

    await engine.dispose()
    log.info("Database schema is ready.")


def reset_database(drop: bool = True):
    asyncio.run(async_reset_database(drop=drop))


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Recreate the match service schema")
    parser.add_argument("--keep", action="store_true", help="only create missing tables")
    args = parser.parse_args()
    reset_database(drop=not args.keep)
