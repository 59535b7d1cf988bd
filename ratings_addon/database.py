import logging
from collections import defaultdict
from datetime import datetime, timezone

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from . import config
from .models import Base, TitleRating

logger = logging.getLogger(__name__)

engine = create_async_engine(config.database_url(), pool_size=5, max_overflow=10, pool_pre_ping=True)
async_session = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


async def init_db():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Ratings database ready")


async def close_db():
    await engine.dispose()


async def get_ratings_for_ids(session: AsyncSession, ids: list[str]) -> dict[str, dict[str, str]]:
    wanted = sorted({i for i in ids if i})
    if not wanted:
        return {}
    result = await session.execute(
        select(TitleRating.imdb_id, TitleRating.provider, TitleRating.score).where(
            TitleRating.imdb_id.in_(wanted)
        )
    )
    grouped: dict[str, dict[str, str]] = defaultdict(dict)
    for imdb_id, provider, score in result.all():
        if score:
            grouped[imdb_id][provider] = score
    return dict(grouped)


async def upsert_ratings(session: AsyncSession, imdb_id: str, ratings: dict[str, str]) -> None:
    if not ratings:
        return
    now = datetime.now(timezone.utc)
    rows = [
        {"imdb_id": imdb_id, "provider": provider, "score": score, "updated_at": now}
        for provider, score in ratings.items()
    ]
    stmt = insert(TitleRating).values(rows)
    stmt = stmt.on_conflict_do_update(
        index_elements=[TitleRating.imdb_id, TitleRating.provider],
        set_={"score": stmt.excluded.score, "updated_at": stmt.excluded.updated_at},
    )
    await session.execute(stmt)
    await session.commit()


async def lookup_ratings(ids: list[str]) -> dict[str, dict[str, str]]:
    async with async_session() as session:
        return await get_ratings_for_ids(session, ids)
