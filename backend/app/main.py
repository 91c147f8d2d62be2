from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError

from app.core.config import settings
from app.core.exceptions import AppError, StorageUnavailableError, UnauthorizedError
from app.core.logging import get_logger
from app.db.base import Base
from app.db.session import engine

# Models must be imported before create_all sees their tables
from app.models import College, User, UserCredential, Referral, ReferralStatusChange  # noqa: F401
from app.api.api import api_router

logger = get_logger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create database tables on startup."""
    Base.metadata.create_all(bind=engine)
    logger.info(f"{settings.APP_NAME} started")
    yield


app = FastAPI(
    title=settings.APP_NAME,
    description="College-scoped alumni network: accounts, approval and job referrals",
    version="1.0.0",
    lifespan=lifespan,
)

# Frontend origins come from BACKEND_CORS_ORIGINS
ALLOWED_ORIGINS = [
    origin.strip()
    for origin in settings.BACKEND_CORS_ORIGINS.split(",")
    if origin.strip()
]

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
)


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    """Render domain errors as {"detail": message} with their status code."""
    headers = {}
    if isinstance(exc, UnauthorizedError):
        headers["WWW-Authenticate"] = "Bearer"
    if isinstance(exc, StorageUnavailableError):
        headers["Retry-After"] = "1"

    if exc.status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc.message}")

    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message},
        headers=headers,
    )


@app.exception_handler(OperationalError)
@app.exception_handler(PoolTimeoutError)
async def storage_error_handler(request: Request, exc: Exception):
    """Storage failures that escaped a service call are retryable, not 500s."""
    return await app_error_handler(request, StorageUnavailableError())


@app.get("/", tags=["Root"])
async def root():
    """Root endpoint."""
    return {"message": f"Welcome to {settings.APP_NAME} API"}


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


# Versioned API
app.include_router(api_router, prefix="/api/v1")
