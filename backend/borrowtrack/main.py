"""
BorrowTrack Backend: borrow/return tracking for tools, materials and PPE (apd).

ARCHITECTURE:
- Hosted relational database: the store of record
- Local cache: JSON mirror of the last known data, served when the database is unreachable
- FastAPI: JSON API for the browser front-end (inventory, borrowing, users, reports, setup)

Every read and write goes to the database first; a failure falls back to the
local cache and the request still succeeds. Only when both fail does the API
answer 503.
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse

from borrowtrack.api.routes import auth, barcodes, borrowing, inventory, reports, setup, users
from borrowtrack.core.config import settings
from borrowtrack.core.exceptions import BusinessError, StoreUnavailableError
from borrowtrack.db.init_db import init_db

logging.basicConfig(
    level=logging.DEBUG if settings.DEBUG else logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup:
    1. Check (and in development create) the database tables
    2. Push records that only exist in the local cache
    """
    logger.info("Initializing database...")
    init_db()
    logger.info("Database initialized")
    yield


app = FastAPI(
    title="BorrowTrack API",
    description="Inventory borrow/return tracker with local cache fallback.",
    version="0.1.0",
    lifespan=lifespan,
)

# SECURITY: Trust only specific hosts
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.ALLOWED_HOSTS)

# SECURITY: Restrict CORS to specific methods and headers (not wildcards)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=[
        "Content-Type",
        "Authorization",
        "Accept",
        "Origin",
    ],
    max_age=600,
    expose_headers=["Content-Type", "Content-Disposition"],
)


# SECURITY: Add security headers middleware
@app.middleware("http")
async def add_security_headers(request, call_next):
    response = await call_next(request)
    response.headers["X-Content-Type-Options"] = "nosniff"
    response.headers["X-Frame-Options"] = "DENY"
    response.headers["X-XSS-Protection"] = "1; mode=block"
    response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
    response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
    return response


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_handler(request: Request, exc: StoreUnavailableError):
    error = BusinessError.service_unavailable(exc)
    return JSONResponse(status_code=error.status_code, content={"detail": error.detail})


app.include_router(auth.router, prefix="/auth", tags=["auth"])
app.include_router(inventory.router, prefix="/inventory", tags=["inventory"])
app.include_router(borrowing.router, prefix="/borrowing", tags=["borrowing"])
app.include_router(users.router, prefix="/users", tags=["users"])
app.include_router(reports.router, prefix="/reports", tags=["reports"])
app.include_router(barcodes.router, prefix="/barcodes", tags=["barcodes"])
app.include_router(setup.router, prefix="/setup", tags=["setup"])


@app.get("/health")
def health():
    return {"status": "ok"}
