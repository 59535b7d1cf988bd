import logging
from contextlib import asynccontextmanager

from dotenv import load_dotenv
load_dotenv()

from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from . import badges, cinemeta, config, database, omdb, posters
from .cache import MemoryStore, RatingCache, SharedStore
from .pipeline import RatingPipeline
from .posters import PosterAnnotationCoordinator
from .ratings import ALL_PROVIDERS, RatingResolver, parse_providers

logging.basicConfig(
    level=config.log_level(),
    format="%(levelname)s | %(asctime)s | %(name)s | %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)

ADDON_ID = "org.ratings.posters"
ADDON_VERSION = "1.0.0"

limiter = Limiter(key_func=get_remote_address)


def build_pipeline(ratings_lookup=None) -> RatingPipeline:
    url = config.redis_url()
    cache = RatingCache(MemoryStore(), SharedStore(url) if url else None)
    return RatingPipeline(
        RatingResolver(cache),
        PosterAnnotationCoordinator(badges.annotate_poster),
        ratings_lookup=ratings_lookup,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    if not config.omdb_api_key():
        logger.warning("OMDB_API_KEY is not set; live rating lookups are disabled")

    ratings_lookup = None
    if config.ratings_db_enabled():
        try:
            await database.init_db()
            ratings_lookup = database.lookup_ratings
        except Exception:
            logger.exception("Ratings database unavailable; catalog posters will not be annotated")

    app.state.pipeline = build_pipeline(ratings_lookup)
    yield
    shared = app.state.pipeline.resolver.cache.shared
    if shared is not None:
        await shared.close()
    await omdb.close_client()
    await cinemeta.close_client()
    await posters.close_client()
    await database.close_db()


app = FastAPI(lifespan=lifespan)
app.state.limiter = limiter


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    return JSONResponse(status_code=429, content={"detail": "Too many requests. Please try again later."})


@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


# Addon clients call from arbitrary origins, so CORS defaults to "*".
app.add_middleware(
    CORSMiddleware,
    allow_origins=config.cors_origins(),
    allow_methods=["GET"],
    allow_headers=["*"],
)


def get_pipeline(request: Request) -> RatingPipeline:
    return request.app.state.pipeline


def build_manifest(providers: str = ALL_PROVIDERS) -> dict:
    selected = ", ".join(sorted(parse_providers(providers)))
    return {
        "id": ADDON_ID,
        "version": ADDON_VERSION,
        "name": "Rated Posters",
        "description": f"Adds ratings ({selected}) to descriptions and poster artwork.",
        "resources": ["catalog", "meta"],
        "types": ["movie", "series"],
        "idPrefixes": ["tt"],
        "catalogs": [
            {"type": "movie", "id": "top", "name": "Top Rated Movies"},
            {"type": "series", "id": "top", "name": "Top Rated Series"},
        ],
    }


@app.get("/manifest.json")
async def manifest():
    return build_manifest()


@app.get("/{providers}/manifest.json")
async def provider_manifest(providers: str):
    return build_manifest(providers)


async def _meta_response(pipeline: RatingPipeline, providers: str, media_type: str, title_id: str) -> dict:
    meta = await pipeline.get_rated_metadata(title_id, media_type, parse_providers(providers))
    return {"meta": meta.to_response()}


@app.get("/meta/{media_type}/{title_id}.json")
@limiter.limit(config.rate_limit())
async def meta(request: Request, media_type: str, title_id: str, pipeline: RatingPipeline = Depends(get_pipeline)):
    return await _meta_response(pipeline, ALL_PROVIDERS, media_type, title_id)


@app.get("/{providers}/meta/{media_type}/{title_id}.json")
@limiter.limit(config.rate_limit())
async def provider_meta(
    request: Request,
    providers: str,
    media_type: str,
    title_id: str,
    pipeline: RatingPipeline = Depends(get_pipeline),
):
    return await _meta_response(pipeline, providers, media_type, title_id)


async def _catalog_response(
    pipeline: RatingPipeline,
    providers: str,
    media_type: str,
    catalog_id: str,
    extra: str | None = None,
) -> dict:
    try:
        metas = await cinemeta.get_catalog(media_type, catalog_id, extra)
        rated = await pipeline.get_rated_batch(metas, parse_providers(providers))
        return {"metas": [item.to_response() for item in rated]}
    except Exception:
        logger.exception("Error building catalog %s/%s", media_type, catalog_id)
        return {"metas": []}


@app.get("/catalog/{media_type}/{catalog_id}.json")
@limiter.limit(config.rate_limit())
async def catalog(request: Request, media_type: str, catalog_id: str, pipeline: RatingPipeline = Depends(get_pipeline)):
    return await _catalog_response(pipeline, ALL_PROVIDERS, media_type, catalog_id)


@app.get("/catalog/{media_type}/{catalog_id}/{extra}.json")
@limiter.limit(config.rate_limit())
async def catalog_extra(
    request: Request,
    media_type: str,
    catalog_id: str,
    extra: str,
    pipeline: RatingPipeline = Depends(get_pipeline),
):
    return await _catalog_response(pipeline, ALL_PROVIDERS, media_type, catalog_id, extra)


@app.get("/{providers}/catalog/{media_type}/{catalog_id}.json")
@limiter.limit(config.rate_limit())
async def provider_catalog(
    request: Request,
    providers: str,
    media_type: str,
    catalog_id: str,
    pipeline: RatingPipeline = Depends(get_pipeline),
):
    return await _catalog_response(pipeline, providers, media_type, catalog_id)


@app.get("/{providers}/catalog/{media_type}/{catalog_id}/{extra}.json")
@limiter.limit(config.rate_limit())
async def provider_catalog_extra(
    request: Request,
    providers: str,
    media_type: str,
    catalog_id: str,
    extra: str,
    pipeline: RatingPipeline = Depends(get_pipeline),
):
    return await _catalog_response(pipeline, providers, media_type, catalog_id, extra)
