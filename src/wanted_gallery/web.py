"""
HTTP surface for the gallery front-end.

Endpoints:
- GET /             : health check
- GET /api/wanted   : the assembled gallery, optionally filtered by
                      poster_classification

Nothing retrievable (page 1 unavailable, fatal upstream error, timeout or
unparseable body) is a 502. Partial results are a 200 with ``partial`` set.
"""
import logging
import logging.config
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import Depends, FastAPI, HTTPException, Query, Request

from http_client import HttpClient, RequestTimeout

from .api import UpstreamParseError, WantedAPI
from .cache import TTLCache
from .config import Settings
from .gallery import WantedGallery
from .pipeline import FirstPageUnavailable
from .schemas import WantedGalleryResponse

logging.config.dictConfig(
    {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "plain": {"format": "%(asctime)s %(levelname)s %(name)s: %(message)s"},
        },
        "handlers": {
            "console": {"class": "logging.StreamHandler", "formatter": "plain"},
        },
        "root": {"level": "INFO", "handlers": ["console"]},
    }
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = Settings.from_env()
    async with HttpClient(
        base_url=settings.base_url,
        timeout=settings.timeout,
        retries=settings.retries,
        initial_delay=settings.initial_delay,
    ) as http:
        app.state.gallery = WantedGallery(
            WantedAPI(http),
            cache=TTLCache(settings.cache_ttl, max_entries=settings.cache_max_entries),
            page_size=settings.page_size,
            batch_size=settings.batch_size,
        )
        yield


app = FastAPI(
    title="Wanted gallery",
    description="Assembles the paginated FBI wanted list into a display-ready image gallery.",
    version="1.0.0",
    lifespan=lifespan,
)


def get_gallery(request: Request) -> WantedGallery:
    return request.app.state.gallery


@app.get("/", summary="Health check")
async def root() -> dict:
    return {"status": "ok"}


@app.get("/api/wanted", response_model=WantedGalleryResponse, summary="All wanted persons with an image")
async def list_wanted(
    poster_classification: Optional[str] = Query(None),
    gallery: WantedGallery = Depends(get_gallery),
) -> WantedGalleryResponse:
    try:
        result = await gallery.get_gallery(poster_classification)
    except FirstPageUnavailable as exc:
        logger.error("Wanted list unavailable: %s", exc)
        raise HTTPException(status_code=502, detail="Rate limited by FBI API. Please try again later.")
    except RequestTimeout:
        logger.error("FBI API timed out")
        raise HTTPException(status_code=502, detail="FBI API request timed out.")
    except httpx.HTTPStatusError as exc:
        logger.error("FBI API error: %s", exc)
        raise HTTPException(status_code=502, detail=f"FBI API error: {exc.response.status_code}")
    except (UpstreamParseError, httpx.HTTPError) as exc:
        logger.error("FBI API unusable: %s", exc)
        raise HTTPException(status_code=502, detail="FBI API returned an unusable response.")

    return WantedGalleryResponse(
        items=list(result.records),
        total=result.total,
        failed_pages=list(result.failed_pages),
        partial=result.partial,
    )
