from __future__ import annotations

import asyncio
import base64
from unittest.mock import AsyncMock

import httpx
import pytest

from ratings_addon import posters
from ratings_addon.cinemeta import MetaRecord
from ratings_addon.posters import PosterAnnotationCoordinator


def _run_async(coro):
    """Helper to run async code in sync tests."""
    return asyncio.run(coro)


def _meta(**overrides) -> MetaRecord:
    data = {"id": "tt1", "type": "movie", "name": "Title", "poster": "https://img.test/p.jpg"}
    data.update(overrides)
    return MetaRecord(**data)


def test_annotate_replaces_poster() -> None:
    annotator = AsyncMock(return_value="data:image/jpeg;base64,NEW")
    fetch = AsyncMock(return_value="T0xE")
    coordinator = PosterAnnotationCoordinator(annotator, fetch_poster=fetch)
    meta = _meta()

    outcome = _run_async(coordinator.annotate(meta, {"imdb": "8"}))

    assert outcome.ok
    assert meta.poster == "data:image/jpeg;base64,NEW"
    fetch.assert_awaited_once_with("https://img.test/p.jpg")
    annotator.assert_awaited_once_with("T0xE", {"imdb": "8"})


@pytest.mark.parametrize(("ratings", "poster"), [({}, "https://img.test/p.jpg"), ({"imdb": "8"}, None)])
def test_annotate_is_noop_without_ratings_or_poster(ratings, poster) -> None:
    annotator = AsyncMock()
    fetch = AsyncMock()
    coordinator = PosterAnnotationCoordinator(annotator, fetch_poster=fetch)
    meta = _meta(poster=poster)

    outcome = _run_async(coordinator.annotate(meta, ratings))

    assert outcome.ok
    assert meta.poster == poster
    fetch.assert_not_awaited()
    annotator.assert_not_awaited()


def test_annotation_failure_keeps_original_poster() -> None:
    annotator = AsyncMock(side_effect=RuntimeError("renderer crashed"))
    coordinator = PosterAnnotationCoordinator(annotator, fetch_poster=AsyncMock(return_value="T0xE"))
    meta = _meta()

    outcome = _run_async(coordinator.annotate(meta, {"imdb": "8"}))

    assert not outcome.ok
    assert "renderer crashed" in outcome.error
    assert meta.poster == "https://img.test/p.jpg"


def test_fetch_poster_base64(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://img.test/p.jpg"
        return httpx.Response(200, content=b"\x89PNGbytes")

    async def _test():
        monkeypatch.setattr(posters, "_client", httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        try:
            return await posters.fetch_poster_base64("https://img.test/p.jpg")
        finally:
            await posters.close_client()

    assert base64.b64decode(_run_async(_test())) == b"\x89PNGbytes"


def test_fetch_poster_raises_on_http_error(monkeypatch: pytest.MonkeyPatch) -> None:
    async def _test():
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(404)))
        monkeypatch.setattr(posters, "_client", client)
        try:
            await posters.fetch_poster_base64("https://img.test/missing.jpg")
        finally:
            await posters.close_client()

    with pytest.raises(httpx.HTTPStatusError):
        _run_async(_test())
