from __future__ import annotations
import math
import uuid
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fwb_gallery.config import settings
from fwb_gallery.errors import GalleryError, ContentionTimeout, PersistenceFailure
from fwb_gallery.logging_setup import configure_logging
from fwb_gallery.routes.system import router as system_router
from fwb_gallery.routes.auth import router as auth_router
from fwb_gallery.routes.submissions import router as submissions_router
from fwb_gallery.routes.reviews import router as reviews_router
from fwb_gallery.routes.gallery import router as gallery_router
import structlog

configure_logging()
log = structlog.get_logger()

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    log.info("startup", env=settings.environment, version=settings.app_version, git_sha=settings.git_sha)
    yield
    # Shutdown
    log.info("shutdown")

app = FastAPI(
    title=f"{settings.app_display_name} API",
    version=settings.app_version,
    lifespan=lifespan,
    description=f"{settings.app_display_name} API for photo contest intake, review and voting"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"] if settings.environment == "dev" else settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(system_router)
app.include_router(auth_router)
app.include_router(submissions_router)
app.include_router(reviews_router)
app.include_router(gallery_router)

@app.exception_handler(GalleryError)
async def gallery_error_handler(request: Request, exc: GalleryError):
    headers = None
    if isinstance(exc, ContentionTimeout):
        headers = {"Retry-After": str(max(1, math.ceil(exc.timeout)))}
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.code},
        headers=headers,
    )

@app.exception_handler(PersistenceFailure)
async def persistence_error_handler(request: Request, exc: PersistenceFailure):
    log.error("persistence_failure", path=request.url.path, error=str(exc))
    return JSONResponse(status_code=500, content={"detail": "Storage error", "error": "persistence_failure"})

@app.middleware("http")
async def add_request_id(request: Request, call_next):
    rid = request.headers.get("x-request-id") or str(uuid.uuid4())
    request.state.request_id = rid
    structlog.contextvars.bind_contextvars(request_id=rid)
    try:
        response: Response = await call_next(request)
    finally:
        structlog.contextvars.clear_contextvars()
    response.headers["X-Request-ID"] = rid
    return response
