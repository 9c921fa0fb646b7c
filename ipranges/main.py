import html
import logging
import re
from contextlib import asynccontextmanager
from datetime import datetime
from functools import partial

from fastapi import FastAPI, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, JSONResponse, Response
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from ipranges.config import settings
from ipranges.directory import RangeDirectory
from ipranges.errors import MalformedAddress, NotLoaded
from ipranges.fetcher import fetch_ip_ranges
from ipranges.scheduler import RefreshScheduler

logger = logging.getLogger(__name__)

directory = RangeDirectory()
limiter = Limiter(key_func=get_remote_address)

SERVICE_NAME_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")
REGION_PATTERN = re.compile(r"^[A-Za-z0-9-]{1,64}$")
SHUTDOWN_GRACE_SECONDS = 5.0


# --- Security Headers Middleware ---


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "no-referrer"
        response.headers["Content-Security-Policy"] = "default-src 'none'"
        response.headers["Strict-Transport-Security"] = (
            "max-age=31536000; includeSubDomains"
        )
        response.headers["Cache-Control"] = "no-store"
        return response


# --- Lifespan ---


@asynccontextmanager
async def lifespan(app: FastAPI):
    logging.getLogger().setLevel(settings.log_level.upper())
    scheduler = RefreshScheduler(
        directory,
        partial(fetch_ip_ranges, settings.source_url),
        interval_seconds=settings.refresh_interval_minutes * 60,
        timeout_seconds=settings.fetch_timeout_seconds,
    )
    app.state.scheduler = scheduler
    await scheduler.start()
    if not directory.is_loaded():
        logger.warning("Startup refresh failed, serving 503 until the next refresh succeeds")
    yield
    scheduler.stop()
    await scheduler.drain(SHUTDOWN_GRACE_SECONDS)


# --- App ---

app = FastAPI(
    title="AWS IP Ranges",
    lifespan=lifespan,
    docs_url=None,
    redoc_url=None,
    openapi_url=None,
)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
app.add_middleware(SecurityHeadersMiddleware)


@app.exception_handler(NotLoaded)
async def not_loaded_handler(request: Request, exc: NotLoaded) -> JSONResponse:
    return JSONResponse(
        status_code=503,
        content={"detail": "IP ranges data is not yet loaded. Please try again later."},
    )


@app.exception_handler(MalformedAddress)
async def malformed_address_handler(request: Request, exc: MalformedAddress) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


def _isoformat(value: datetime | None) -> str:
    return value.isoformat() if value else ""


def _check_region(region: str | None) -> None:
    if region and not REGION_PATTERN.match(region):
        raise HTTPException(status_code=400, detail="Invalid region")


@app.get("/health")
async def health() -> dict:
    status = directory.status()
    return {
        "status": "ok",
        "loaded": status.loaded,
        "syncToken": status.sync_token,
        "lastUpdated": status.last_updated.isoformat() if status.last_updated else None,
    }


@app.get("/ip-ranges/services")
@limiter.limit("30/minute")
async def services(request: Request) -> dict:
    listing = directory.list_services()
    return {
        "services": listing.names,
        "syncToken": listing.sync_token,
        "lastUpdated": _isoformat(listing.last_updated),
    }


@app.get("/ip-ranges/regions")
@limiter.limit("30/minute")
async def regions(request: Request) -> dict:
    listing = directory.list_regions()
    return {
        "regions": listing.names,
        "syncToken": listing.sync_token,
        "lastUpdated": _isoformat(listing.last_updated),
    }


@app.get("/ip-ranges/search")
@limiter.limit("60/minute")
async def search(request: Request, ip: str = Query(..., max_length=64)) -> dict:
    result = directory.search_by_address(ip)
    return {
        "ip": result.address,
        "found": result.found,
        "matches": [
            {
                "service": record.service,
                "region": record.region,
                "prefix": record.cidr,
                "network_border_group": record.network_border_group,
            }
            for record in result.matches
        ],
    }


@app.get("/ip-ranges")
@limiter.limit("30/minute")
async def all_ranges(request: Request, region: str | None = Query(None)) -> dict:
    _check_region(region)
    catalog = directory.get_all_services(region)
    return {
        "syncToken": catalog.sync_token,
        "lastUpdated": _isoformat(catalog.last_updated),
        "services": {
            name: ranges.as_dict(include_service=False)
            for name, ranges in sorted(catalog.services.items())
        },
    }


@app.get("/ip-ranges/{service}")
@limiter.limit("60/minute")
async def service_ranges(
    request: Request,
    service: str,
    region: str | None = Query(None),
) -> dict:
    _check_region(region)
    if not directory.is_loaded():
        raise NotLoaded()
    ranges = None
    if SERVICE_NAME_PATTERN.match(service):
        ranges = directory.get_service(service, region)
    if ranges is None:
        region_msg = f" in region '{region}'" if region else ""
        raise HTTPException(
            status_code=404,
            detail=(
                f"Service '{service}'{region_msg} not found. "
                "Use GET /ip-ranges/services to see available services."
            ),
        )
    return ranges.as_dict()


@app.get("/", response_class=HTMLResponse)
@limiter.limit("30/minute")
async def index(request: Request) -> HTMLResponse:
    names = directory.list_services().names if directory.is_loaded() else []
    links = "\n".join(
        f'<li><a href="/ip-ranges/{html.escape(name)}">{html.escape(name)}</a></li>'
        for name in names
    )
    return HTMLResponse(f"""<!DOCTYPE html>
<html>
<head><title>AWS IP Ranges</title></head>
<body>
<h1>AWS Services</h1>
<p>{len(names)} services available. Each link returns the IPv4 and IPv6 prefixes of that service as JSON.</p>
<ul>{links}</ul>
</body>
</html>""")
