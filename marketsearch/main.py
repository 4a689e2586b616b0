"""FastAPI application wiring the search service."""
from __future__ import annotations

import asyncio
import logging
from functools import lru_cache
from typing import Optional

from fastapi import Depends, FastAPI, Query, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from .config import settings
from .errors import ProviderError, ValidationError
from .models import ProductsAnswer
from .search_service import SearchService, build_service

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_LEVEL = logging.getLevelName(settings.log_level.upper())

# Replace uvicorn's handlers so pipeline timing lines share one format.
logging.basicConfig(level=LOG_LEVEL, format=LOG_FORMAT, force=True)
for name in ("uvicorn", "uvicorn.error", "uvicorn.access", "elastic_transport"):
    logging.getLogger(name).setLevel(LOG_LEVEL)

logger = logging.getLogger(__name__)
logger.info("Logging configured at %s", settings.log_level.upper())

app = FastAPI(title="Market Search Service")


@lru_cache(maxsize=1)
def get_search_service() -> SearchService:
    return build_service()


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> PlainTextResponse:
    return PlainTextResponse(exc.message, status_code=400)


@app.exception_handler(ProviderError)
async def provider_error_handler(request: Request, exc: ProviderError) -> JSONResponse:
    return JSONResponse({"detail": exc.message}, status_code=502)


@app.get("/health")
async def health(service: SearchService = Depends(get_search_service)) -> dict:
    return {
        "cache": type(service.cache.backend).__name__,
        "provider": getattr(service.provider, "name", type(service.provider).__name__),
        "history": type(service.history).__name__ if service.history is not None else None,
    }


@app.get("/search", response_model=ProductsAnswer)
async def search(
    q: str = Query(..., description="Search term"),
    page: int = Query(..., description="Zero-based page index"),
    page_size: int = Query(..., description="Products per page"),
    login: Optional[str] = Query(None, description="User whose history records this search"),
    low_price: Optional[int] = None,
    high_price: Optional[int] = None,
    price_order: Optional[bool] = Query(None, description="false = ascending, true = descending"),
    name_order: Optional[bool] = Query(None, description="false = ascending, true = descending"),
    rating: Optional[float] = None,
    marketplace: Optional[str] = None,
    service: SearchService = Depends(get_search_service),
) -> ProductsAnswer:
    return await asyncio.to_thread(
        service.get_products_response,
        q,
        login=login,
        low_price=low_price,
        high_price=high_price,
        price_order=price_order,
        name_order=name_order,
        page=page,
        page_size=page_size,
        rating=rating,
        marketplace=marketplace,
    )
