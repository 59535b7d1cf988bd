import re

IMDB = "imdb"
METACRITIC = "metacritic"
ROTTEN_TOMATOES = "rotten_tomatoes"
RATING_PROVIDERS = (IMDB, METACRITIC, ROTTEN_TOMATOES)

UNAVAILABLE = "N/A"


def normalize_score(raw: str | None) -> str:
    """Reduce a provider score such as ``"8.1/10"`` or ``"91%"`` to its bare number."""
    text = str(raw or "")
    text = text.split("/")[0]
    text = text.split(" ")[0]
    text = text.split("%")[0]
    return re.sub(r"[^0-9.]", "", text)


def format_source_key(source: str | None) -> str:
    key = re.sub(r"[^a-z0-9]", "_", str(source or "").lower())
    key = re.sub(r"_+", "_", key)
    return key.strip("_")


def provider_label(provider: str) -> str:
    return provider.replace("_", " ")
