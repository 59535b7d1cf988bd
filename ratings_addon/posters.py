import base64
import logging
from collections.abc import Awaitable, Callable

import httpx

from .cinemeta import MetaRecord
from .outcome import Outcome, attempt

logger = logging.getLogger(__name__)

PosterAnnotator = Callable[[str, dict[str, str]], Awaitable[str]]

_client: httpx.AsyncClient | None = None


async def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=15, follow_redirects=True)
    return _client


async def close_client() -> None:
    global _client
    if _client:
        await _client.aclose()
        _client = None


async def fetch_poster_base64(url: str) -> str:
    client = await _get_client()
    resp = await client.get(url)
    resp.raise_for_status()
    return base64.b64encode(resp.content).decode("ascii")


class PosterAnnotationCoordinator:
    def __init__(
        self,
        annotator: PosterAnnotator,
        fetch_poster: Callable[[str], Awaitable[str]] = fetch_poster_base64,
    ) -> None:
        self.annotator = annotator
        self.fetch_poster = fetch_poster

    async def _render(self, poster_url: str, ratings: dict[str, str]) -> str:
        encoded = await self.fetch_poster(poster_url)
        return await self.annotator(encoded, ratings)

    async def annotate(self, meta: MetaRecord, ratings: dict[str, str]) -> Outcome[MetaRecord]:
        if not ratings or not meta.poster:
            return Outcome.success(meta)
        rendered = await attempt(self._render(meta.poster, ratings))
        if not rendered.ok:
            logger.error("Poster annotation failed for %s: %s", meta.id, rendered.error)
            return Outcome.failure(rendered.error)
        meta.poster = rendered.value
        return Outcome.success(meta)
