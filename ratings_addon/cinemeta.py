import logging

import httpx
from pydantic import BaseModel, ConfigDict

from . import config

logger = logging.getLogger(__name__)

_client: httpx.AsyncClient | None = None


class MetaRecord(BaseModel):
    """Addon metadata record. Fields we do not use are carried through untouched."""

    model_config = ConfigDict(extra="allow")

    id: str | None = None
    type: str | None = None
    name: str | None = None
    description: str | None = None
    poster: str | None = None
    year: str | int | None = None

    def release_year(self) -> str:
        # Series come back as ranges like "2008-2013"; only the first year matters.
        text = str(self.year or "").strip()
        head = text[:4]
        return head if head.isdigit() else ""

    def to_response(self) -> dict:
        return self.model_dump(exclude_none=True)


async def _get_client() -> httpx.AsyncClient:
    global _client
    if _client is None:
        _client = httpx.AsyncClient(timeout=10, follow_redirects=True)
    return _client


async def close_client() -> None:
    global _client
    if _client:
        await _client.aclose()
        _client = None


async def _get(path: str) -> dict:
    client = await _get_client()
    resp = await client.get(f"{config.cinemeta_base_url()}{path}")
    resp.raise_for_status()
    return resp.json()


async def get_metadata(title_id: str, media_type: str) -> MetaRecord:
    try:
        data = await _get(f"/meta/{media_type}/{title_id}.json")
        return MetaRecord.model_validate(data.get("meta") or {})
    except Exception as exc:
        logger.error("Error fetching metadata for %s/%s: %s", media_type, title_id, exc)
        return MetaRecord()


async def get_catalog(media_type: str, catalog_id: str, extra: str | None = None) -> list[MetaRecord]:
    path = f"/catalog/{media_type}/{catalog_id}"
    if extra:
        path = f"{path}/{extra}"
    try:
        data = await _get(f"{path}.json")
        return [MetaRecord.model_validate(item) for item in data.get("metas") or []]
    except Exception as exc:
        logger.error("Error fetching catalog %s/%s: %s", media_type, catalog_id, exc)
        return []
