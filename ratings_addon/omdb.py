import logging

import httpx
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from . import config
from .scores import IMDB, METACRITIC, UNAVAILABLE, format_source_key, normalize_score

logger = logging.getLogger(__name__)

OMDB_URL = "https://www.omdbapi.com/"
OMDB_TIMEOUT_SECONDS = 5
ROTTEN_TOMATOES_SOURCE = "Rotten Tomatoes"

_client: httpx.AsyncClient | None = None


class OmdbRating(BaseModel):
    model_config = ConfigDict(extra="ignore")

    source: str = Field("", alias="Source")
    value: str = Field("", alias="Value")


class OmdbPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    response: str = Field("False", alias="Response")
    imdb_rating: str | None = Field(None, alias="imdbRating")
    metascore: str | None = Field(None, alias="Metascore")
    ratings: list[OmdbRating] = Field(default_factory=list, alias="Ratings")
    error: str | None = Field(None, alias="Error")

    @property
    def succeeded(self) -> bool:
        return self.response.strip().lower() == "true"

    def source_value(self, source: str) -> str | None:
        for rating in self.ratings:
            if rating.source == source:
                return rating.value
        return None


async def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=OMDB_TIMEOUT_SECONDS)
    return _client


async def close_client() -> None:
    global _client
    if _client:
        await _client.aclose()
        _client = None


def _put_score(ratings: dict[str, str], provider: str, raw: str | None) -> None:
    if raw is None or raw.strip() == UNAVAILABLE:
        return
    score = normalize_score(raw.strip())
    if score:
        ratings[provider] = score


def ratings_from_payload(payload: OmdbPayload) -> dict[str, str]:
    ratings: dict[str, str] = {}
    if not payload.succeeded:
        return ratings
    _put_score(ratings, IMDB, payload.imdb_rating)
    _put_score(ratings, METACRITIC, payload.metascore)
    rotten = payload.source_value(ROTTEN_TOMATOES_SOURCE)
    _put_score(ratings, format_source_key(ROTTEN_TOMATOES_SOURCE), rotten)
    return ratings


async def fetch_ratings(title: str, year: str = "") -> dict[str, str]:
    api_key = config.omdb_api_key()
    if not api_key:
        logger.error("Cannot fetch ratings: OMDB_API_KEY environment variable is not set")
        return {}
    if not title:
        return {}

    params = {"apikey": api_key, "t": title}
    if year:
        params["y"] = str(year)

    logger.info("Fetching ratings from OMDb for: %s %s", title, year)
    client = await _get_client()
    try:
        resp = await client.get(OMDB_URL, params=params)
    except httpx.HTTPError as exc:
        logger.error("Error fetching ratings from OMDb: %s", exc)
        return {}
    if resp.status_code != 200:
        logger.warning("OMDb returned HTTP %s for %s", resp.status_code, title)
        return {}
    try:
        payload = OmdbPayload.model_validate(resp.json())
    except (ValueError, ValidationError) as exc:
        logger.error("Malformed OMDb response for %s: %s", title, exc)
        return {}

    if not payload.succeeded:
        logger.info("OMDb has no match for %s %s: %s", title, year, payload.error)
    return ratings_from_payload(payload)
