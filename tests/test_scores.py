from __future__ import annotations

import pytest

from ratings_addon.scores import format_source_key, normalize_score, provider_label


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("91%", "91"),
        ("8.1/10", "8.1"),
        ("72 %", "72"),
        ("N/A", ""),
        ("74/100", "74"),
        ("9.3", "9.3"),
        ("", ""),
        (None, ""),
    ],
)
def test_normalize_score(raw, expected) -> None:
    assert normalize_score(raw) == expected


@pytest.mark.parametrize("raw", ["91%", "8.1/10", "72 %", "N/A", " 7.5 ", "abc", "1.2.3", "100/100 %"])
def test_normalize_score_is_idempotent(raw) -> None:
    once = normalize_score(raw)
    assert normalize_score(once) == once


def test_normalized_score_has_no_units() -> None:
    for raw in ("91%", "8.1/10", "72 %", "4.5 / 5"):
        value = normalize_score(raw)
        assert "%" not in value
        assert "/" not in value
        assert " " not in value


def test_format_source_key() -> None:
    assert format_source_key("Rotten Tomatoes") == "rotten_tomatoes"
    assert format_source_key("Internet Movie Database") == "internet_movie_database"
    assert format_source_key("  Meta--critic!! ") == "meta_critic"


def test_provider_label_replaces_every_underscore() -> None:
    assert provider_label("rotten_tomatoes") == "rotten tomatoes"
    assert provider_label("metacritic_user_score") == "metacritic user score"
