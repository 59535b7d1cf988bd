"""
Single-title and catalog-page rating pipelines.

Both entry points always hand back metadata records: upstream failures
leave fields as they were rather than raising to the addon routes.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable, Iterable

from . import cinemeta
from .cinemeta import MetaRecord
from .outcome import attempt
from .posters import PosterAnnotationCoordinator
from .ratings import RatingResolver, filter_ratings

logger = logging.getLogger(__name__)

MetadataLookup = Callable[[str, str], Awaitable[MetaRecord]]
RatingsLookup = Callable[[list[str]], Awaitable[dict[str, dict[str, str]]]]


def apply_ratings(meta: MetaRecord, ratings: dict[str, str], providers: Iterable[str]) -> dict[str, str]:
    filtered, fragment = filter_ratings(ratings, providers)
    meta.description = (meta.description or "") + fragment
    return filtered


class RatingPipeline:
    def __init__(
        self,
        resolver: RatingResolver,
        posters: PosterAnnotationCoordinator,
        *,
        get_metadata: MetadataLookup = cinemeta.get_metadata,
        ratings_lookup: RatingsLookup | None = None,
    ) -> None:
        self.resolver = resolver
        self.posters = posters
        self.get_metadata = get_metadata
        self.ratings_lookup = ratings_lookup

    async def get_rated_metadata(self, title_id: str, media_type: str, providers: Iterable[str]) -> MetaRecord:
        meta = MetaRecord()
        try:
            meta = await self.get_metadata(title_id, media_type)
            if not meta.name:
                logger.info("No metadata for %s/%s, skipping ratings", media_type, title_id)
                return meta

            ratings = await self.resolver.resolve(title_id, meta.name, meta.release_year())
            logger.info("Ratings for %s: %s", title_id, ratings)
            filtered = apply_ratings(meta, ratings, providers)
            await self.posters.annotate(meta, filtered)
        except Exception:
            logger.exception("Error fetching ratings for %s", title_id)
        return meta

    async def _rate_item(self, meta: MetaRecord, ratings: dict[str, str] | None, providers: set[str]) -> MetaRecord:
        if not ratings:
            return meta
        filtered = apply_ratings(meta, ratings, providers)
        await self.posters.annotate(meta, filtered)
        return meta

    async def get_rated_batch(self, metas: list[MetaRecord], providers: Iterable[str]) -> list[MetaRecord]:
        if not metas or self.ratings_lookup is None:
            return list(metas)

        wanted = set(providers)
        ids = [meta.id for meta in metas if meta.id]
        found = await attempt(self.ratings_lookup(ids))
        if not found.ok:
            logger.error("Stored ratings lookup failed for %d titles: %s", len(ids), found.error)
            return list(metas)

        stored = found.value or {}
        rated = await asyncio.gather(
            *(self._rate_item(meta, stored.get(meta.id or ""), wanted) for meta in metas)
        )
        return list(rated)
