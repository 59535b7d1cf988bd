from __future__ import annotations

import asyncio

import httpx
import pytest

from ratings_addon import cinemeta
from ratings_addon.cinemeta import MetaRecord


def _run_async(coro):
    """Helper to run async code in sync tests."""
    return asyncio.run(coro)


def _call(monkeypatch: pytest.MonkeyPatch, handler, coro_factory):
    async def _test():
        monkeypatch.setattr(cinemeta, "_client", httpx.AsyncClient(transport=httpx.MockTransport(handler)))
        try:
            return await coro_factory()
        finally:
            await cinemeta.close_client()

    return _run_async(_test())


@pytest.fixture(autouse=True)
def _base_url(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("CINEMETA_BASE_URL", "https://meta.test/")


def test_get_metadata(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert str(request.url) == "https://meta.test/meta/movie/tt0111161.json"
        return httpx.Response(
            200,
            json={"meta": {"id": "tt0111161", "type": "movie", "name": "The Shawshank Redemption", "year": "1994", "imdbRating": "9.3"}},
        )

    meta = _call(monkeypatch, handler, lambda: cinemeta.get_metadata("tt0111161", "movie"))
    assert meta.name == "The Shawshank Redemption"
    assert meta.release_year() == "1994"
    assert meta.to_response()["imdbRating"] == "9.3"


def test_get_metadata_failure_returns_empty_record(monkeypatch: pytest.MonkeyPatch) -> None:
    meta = _call(monkeypatch, lambda request: httpx.Response(500), lambda: cinemeta.get_metadata("tt1", "movie"))
    assert meta == MetaRecord()


def test_get_catalog_with_extra(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/catalog/series/top/skip=100.json"
        return httpx.Response(200, json={"metas": [{"id": "tt1", "name": "One"}, {"id": "tt2", "name": "Two"}]})

    metas = _call(monkeypatch, handler, lambda: cinemeta.get_catalog("series", "top", "skip=100"))
    assert [item.id for item in metas] == ["tt1", "tt2"]


def test_get_catalog_failure_returns_empty(monkeypatch: pytest.MonkeyPatch) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    assert _call(monkeypatch, handler, lambda: cinemeta.get_catalog("movie", "top")) == []


@pytest.mark.parametrize(("year", "expected"), [("1994", "1994"), ("2008–2013", "2008"), (2010, "2010"), (None, ""), ("TBA", "")])
def test_release_year(year, expected) -> None:
    assert MetaRecord(year=year).release_year() == expected
