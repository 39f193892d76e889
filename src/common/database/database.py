# src/common/database/database.py

import logging
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from src.common.config import settings

logger = logging.getLogger(__name__)

engine = create_async_engine(settings.DATABASE_URL, echo=settings.DEBUG, pool_pre_ping=True)

# Session factory shared by request handlers, seeders and the search fan-out
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)

async def connect_to_db():
    async with engine.connect() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("Connected to database (%s)", engine.dialect.name)

async def close_db_connection():
    await engine.dispose()
    logger.info("Database connection closed")
