"""
Facebook Event Harvester Service
Harvests public events from event IDs, groups, pages and search queries.

Sources:
1. Event IDs - detail pages fetched directly
2. Groups / Pages / Search queries - first page from static HTML, further pages
   by replaying a GraphQL request captured in a headless browser
"""
import os
import logging
import re
import secrets
from datetime import datetime
from typing import Optional

from fastapi import FastAPI, Query, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from cachetools import TTLCache
from pydantic import ValidationError

from . import config
from .harvester import harvest
from .models import HarvestOptions, SeedSet

# Configure logging
logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Facebook Event Harvester",
    version="1.0.0",
    docs_url="/docs" if os.getenv("ENABLE_DOCS", "false").lower() == "true" else None,
)

# CORS - restrict to known origins in production
ALLOWED_ORIGINS = os.getenv("ALLOWED_ORIGINS", "").split(",") if os.getenv("ALLOWED_ORIGINS") else ["*"]
app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_methods=["GET"],
    allow_headers=["*"],
)

# In-memory cache with 1 hour TTL
event_cache = TTLCache(maxsize=100, ttl=3600)

# Simple rate limiting (harvests are expensive, keep the limit low)
RATE_LIMIT = int(os.getenv("RATE_LIMIT", "10"))  # requests per minute
RATE_WINDOW = 60  # seconds
# Per-IP request times; an IP idle for a full window expires from the cache
request_counts = TTLCache(maxsize=10000, ttl=RATE_WINDOW)

SCRAPER_API_KEY = os.getenv("SCRAPER_API_KEY")  # Optional API key for authentication

# Input validation patterns
SOURCE_ID_PATTERN = re.compile(r'^[A-Za-z0-9._\-]{1,100}$')
MAX_QUERY_LENGTH = 100


def check_rate_limit(request: Request):
    """In-memory sliding-window rate limiting per client IP."""
    client_ip = request.client.host if request.client else "unknown"
    now = datetime.now().timestamp()

    recent = [t for t in request_counts.get(client_ip, []) if now - t < RATE_WINDOW]
    if len(recent) >= RATE_LIMIT:
        request_counts[client_ip] = recent
        raise HTTPException(status_code=429, detail="Rate limit exceeded")

    recent.append(now)
    request_counts[client_ip] = recent


def verify_api_key(request: Request):
    """Optional API key verification."""
    if not SCRAPER_API_KEY:
        return  # No API key configured, allow all requests

    api_key = request.headers.get("X-API-Key", "")
    if not secrets.compare_digest(api_key.encode(), SCRAPER_API_KEY.encode()):
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


def validate_source_ids(values: list[str]) -> list[str]:
    """Validate event, group and page identifiers."""
    cleaned = [v.strip() for v in values]
    for value in cleaned:
        if not SOURCE_ID_PATTERN.match(value):
            raise HTTPException(status_code=400, detail="Invalid source identifier")
    return cleaned


def validate_queries(values: list[str]) -> list[str]:
    """Validate search query strings."""
    cleaned = [v.strip() for v in values]
    for value in cleaned:
        if not value or len(value) > MAX_QUERY_LENGTH:
            raise HTTPException(status_code=400, detail="Invalid search query")
    return cleaned


@app.get("/")
async def root():
    return {"service": "Facebook Event Harvester", "status": "running"}


@app.get("/events")
async def get_events(
    request: Request,
    event_id: list[str] = Query(default=[], description="Event IDs to fetch directly"),
    group: list[str] = Query(default=[], description="Group IDs"),
    page: list[str] = Query(default=[], description="Page IDs or vanity names"),
    search_query: list[str] = Query(default=[], description="Event search queries"),
    concurrency: Optional[int] = Query(default=None, ge=1, le=50, description="Parallel tasks"),
    derestrict: Optional[bool] = Query(default=None, description="Do not wait for detail fetches between pages"),
    refresh: bool = Query(default=False, description="Force refresh cache"),
):
    """
    Harvest events from the given sources.
    Returns one deduplicated list of upcoming events.
    """
    # Security checks
    check_rate_limit(request)
    verify_api_key(request)

    # Validate inputs
    seeds = SeedSet(
        event_id=validate_source_ids(event_id),
        group=validate_source_ids(group),
        page=validate_source_ids(page),
        search_query=validate_queries(search_query),
    )
    if seeds.is_empty():
        raise HTTPException(status_code=400, detail="At least one source is required")

    overrides = {"concurrency": concurrency, "derestrict": derestrict}
    try:
        options = HarvestOptions(**{k: v for k, v in overrides.items() if v is not None})
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid options")

    cache_key = f"{seeds.model_dump_json()}:{options.concurrency}:{options.derestrict}"

    # Check cache unless refresh requested
    if not refresh and cache_key in event_cache:
        return {"events": event_cache[cache_key], "cached": True, "total": len(event_cache[cache_key])}

    events = await harvest(seeds, options)
    logger.info(f"Harvested {len(events)} events from {len(seeds.sources())} sources")

    # Cache results
    event_cache[cache_key] = [e.model_dump(mode="json") for e in events]

    return {"events": event_cache[cache_key], "cached": False, "total": len(events)}


@app.get("/health")
async def health():
    """Health check endpoint for Cloud Run."""
    defaults = HarvestOptions()
    return {
        "status": "healthy",
        "concurrency": defaults.concurrency,
        "is_aws": defaults.is_aws,
        "browser_pool_size": defaults.browser_pool_size,
        "headless": config.BROWSER_HEADLESS,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8080)))
