import logging
from collections.abc import Awaitable, Callable, Iterable

from . import omdb
from .cache import RatingCache
from .scores import provider_label

logger = logging.getLogger(__name__)

ALL_PROVIDERS = "all"

RatingFetcher = Callable[[str, str], Awaitable[dict[str, str]]]


def parse_providers(raw: str | None) -> set[str]:
    tokens = {token.strip().lower() for token in str(raw or "").split(",")}
    tokens.discard("")
    return tokens or {ALL_PROVIDERS}


class RatingResolver:
    """Cache-first rating lookup with write-through on a miss."""

    def __init__(self, cache: RatingCache, fetcher: RatingFetcher = omdb.fetch_ratings) -> None:
        self.cache = cache
        self.fetcher = fetcher

    async def resolve(self, title_id: str, title: str, year: str = "") -> dict[str, str]:
        ratings = await self.cache.get(title_id)
        # A partial hit is served as-is; missing providers are not back-filled.
        if ratings:
            return ratings

        logger.info("Ratings for %s not found in cache, fetching from OMDb", title_id)
        ratings = await self.fetcher(title, year)
        if ratings:
            await self.cache.put(title_id, ratings)
        return ratings


def filter_ratings(ratings: dict[str, str], providers: Iterable[str]) -> tuple[dict[str, str], str]:
    wanted = set(providers)
    filtered: dict[str, str] = {}
    fragment = ""
    for provider, value in ratings.items():
        if ALL_PROVIDERS in wanted or provider in wanted:
            filtered[provider] = value
            fragment += f"({provider_label(provider)}: {value}) "
    return filtered, fragment
