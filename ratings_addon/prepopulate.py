"""
Fill the ``title_ratings`` table that catalog pages read from.

Every IMDb id goes through the same cache-then-OMDb resolution the addon
uses for single titles, and whatever comes back is upserted.

    ratings-prepopulate --type movie tt0111161 tt0068646
    ratings-prepopulate --type series --file ids.txt
"""

import argparse
import asyncio
import logging
from pathlib import Path

from dotenv import load_dotenv

from . import cinemeta, config, database, omdb
from .cache import MemoryStore, RatingCache, SharedStore
from .pipeline import MetadataLookup
from .ratings import RatingResolver

logger = logging.getLogger(__name__)


async def prepopulate(
    title_ids: list[str],
    media_type: str,
    resolver: RatingResolver,
    session_factory=None,
    get_metadata: MetadataLookup = cinemeta.get_metadata,
) -> int:
    """Resolve and store ratings for each id. Returns the number of titles written."""
    session_factory = session_factory or database.async_session
    stored = 0
    async with session_factory() as session:
        for title_id in dict.fromkeys(i.strip() for i in title_ids if i.strip()):
            meta = await get_metadata(title_id, media_type)
            if not meta.name:
                logger.warning("No metadata for %s, skipping", title_id)
                continue
            ratings = await resolver.resolve(title_id, meta.name, meta.release_year())
            if not ratings:
                logger.warning("No ratings found for %s (%s)", title_id, meta.name)
                continue
            await database.upsert_ratings(session, title_id, ratings)
            logger.info("Stored %d ratings for %s", len(ratings), title_id)
            stored += 1
    return stored


def read_ids(ids: list[str], path: Path | None) -> list[str]:
    collected = list(ids)
    if path is not None:
        for line in path.read_text(encoding="utf-8").splitlines():
            line = line.split("#", 1)[0].strip()
            if line:
                collected.append(line)
    return collected


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Pre-populate the ratings table for catalog pages.")
    parser.add_argument("ids", nargs="*", help="IMDb ids such as tt0111161")
    parser.add_argument(
        "--type",
        dest="media_type",
        default="movie",
        choices=["movie", "series"],
        help="Metadata type used to look up titles",
    )
    parser.add_argument("--file", type=Path, default=None, help="File with one IMDb id per line")
    return parser.parse_args(argv)


async def _run(title_ids: list[str], media_type: str) -> int:
    url = config.redis_url()
    cache = RatingCache(MemoryStore(), SharedStore(url) if url else None)
    try:
        await database.init_db()
        return await prepopulate(title_ids, media_type, RatingResolver(cache))
    finally:
        if cache.shared is not None:
            await cache.shared.close()
        await omdb.close_client()
        await cinemeta.close_client()
        await database.close_db()


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    logging.basicConfig(
        level=config.log_level(),
        format="%(levelname)s | %(asctime)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    args = parse_args(argv)
    title_ids = read_ids(args.ids, args.file)
    if not title_ids:
        logger.error("No IMDb ids given")
        return 2
    stored = asyncio.run(_run(title_ids, args.media_type))
    logger.info("Pre-populated %d of %d titles", stored, len(title_ids))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
