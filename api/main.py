import logging
import time
from functools import lru_cache
from typing import List, Optional

from fastapi import FastAPI, Depends, HTTPException, Request, status, Query
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config.settings import settings
from core.exceptions import ScraperError
from core.scrapers.scraper_factory import ScraperFactory
from core.search.service import SearchService

from .models import ApiResponse, ProductItem, SiteInfo

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
)
logger = logging.getLogger("api")

START_TIME = time.time()

app = FastAPI(
    title=f"{settings.PROJECT_NAME} API",
    description="REST API for searching products on Indonesian e-commerce sites",
    version=settings.PROJECT_VERSION,
)

# Enable CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # In production, replace with specific origins
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    start = time.perf_counter()
    response = await call_next(request)
    logger.info(
        "%s %s -> %d (%.2fs)",
        request.method,
        request.url.path,
        response.status_code,
        time.perf_counter() - start,
    )
    return response


@lru_cache()
def get_search_service() -> SearchService:
    """Shared search service, built on first use so the cache backend is only created when needed."""
    return SearchService()


def error_response(status_code: int, message: str) -> JSONResponse:
    body = ApiResponse(success=False, error=message, count=0)
    return JSONResponse(status_code=status_code, content=body.model_dump(exclude_none=True))


@app.get("/", tags=["General"])
def root():
    """Root endpoint providing API information."""
    return {
        "name": f"{settings.PROJECT_NAME} API",
        "version": settings.PROJECT_VERSION,
        "description": "Search Tokopedia and Blibli and get normalized product listings",
        "endpoints": {
            "GET /": "This information",
            "GET /health": "Service health and uptime",
            "GET /api/sites": "Supported sites",
            "GET /api/scraper/{site}?query=&limit=": "Search a site for products",
        },
    }


@app.get("/health", tags=["General"])
def health():
    return {"status": "ok", "uptime_seconds": round(time.time() - START_TIME, 1)}


@app.get("/api/sites", response_model=List[SiteInfo], tags=["Scraper"])
def list_sites():
    """List the sites that can be searched."""
    result = []
    for site in ScraperFactory.available_sites():
        profile = ScraperFactory.get_profile(site)
        result.append(
            SiteInfo(
                name=profile.name,
                display_name=profile.display_name,
                base_url=profile.base_url,
                search_url=profile.search_url(settings.DEFAULT_QUERY),
                structured_data=profile.data_marker is not None,
            )
        )
    return result


# Plain def: the Playwright sync API cannot run inside the event loop, so
# FastAPI executes this route in its worker thread pool.
@app.get(
    "/api/scraper/{site}",
    response_model=ApiResponse,
    response_model_exclude_none=True,
    tags=["Scraper"],
)
def scrape_site(
    site: str,
    query: Optional[str] = Query(None, description="Search term, defaults to the configured query"),
    limit: int = Query(settings.DEFAULT_LIMIT, ge=0, le=settings.MAX_LIMIT),
    service: SearchService = Depends(get_search_service),
):
    """Search a site and return the products found."""
    try:
        products = service.search(site, query, limit)
    except ValueError as e:
        # Unknown site
        return error_response(status.HTTP_404_NOT_FOUND, str(e))
    except ScraperError as e:
        logger.error("Scrape of %s failed: %s", site, e)
        return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(e))

    return ApiResponse(
        success=True,
        data=[ProductItem(**product.to_dict()) for product in products],
        count=len(products),
    )


# Error handlers
@app.exception_handler(HTTPException)
async def http_exception_handler(_request, exc):
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(_request, exc):
    problems = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'] if part != 'query')}: {error['msg']}"
        for error in exc.errors()
    )
    return error_response(status.HTTP_422_UNPROCESSABLE_ENTITY, f"Invalid request: {problems}")


@app.exception_handler(Exception)
async def general_exception_handler(_request, exc):
    logger.exception("Unhandled error: %s", exc)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, f"Unexpected error: {str(exc)}")


# Run with: uvicorn api.main:app --port 4103
if __name__ == "__main__":
    import uvicorn

    uvicorn.run("api.main:app", host=settings.SERVER_HOST, port=settings.SERVER_PORT)
