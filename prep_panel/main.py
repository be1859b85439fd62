import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .database import configure_engine, init_db
from .errors import PrepPanelError, UpstreamError
from .routers.documents import router as documents_router
from .routers.topics import router as topics_router
from .schemas import UserCreate, UserRead, UserUpdate
from .settings.config import settings
from .users import auth_backend, fastapi_users

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Interview Prep Panel")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ----------------------
# Route Includes
# ----------------------
app.include_router(topics_router)
app.include_router(documents_router)

# Authentication Routes
app.include_router(
    fastapi_users.get_auth_router(auth_backend),
    prefix="/auth/jwt",
    tags=["auth"]
)

app.include_router(
    fastapi_users.get_register_router(UserRead, UserCreate),
    prefix="/auth",
    tags=["auth"]
)

app.include_router(
    fastapi_users.get_users_router(UserRead, UserUpdate),
    prefix="/users",
    tags=["users"]
)


# ----------------------
# Uniform failure bodies
# ----------------------
def _failure(status_code: int, message: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message, **extra})


@app.exception_handler(PrepPanelError)
async def _prep_panel_error_handler(request: Request, exc: PrepPanelError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    extra = {}
    if isinstance(exc, UpstreamError) and exc.upstream_status is not None:
        extra["upstreamStatus"] = exc.upstream_status
    return _failure(exc.status_code, exc.message or type(exc).__name__, **extra)


@app.exception_handler(RequestValidationError)
async def _validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{loc}: {first.get('msg')}" if loc else (first.get("msg") or "Invalid request")
    return _failure(400, message)


@app.exception_handler(Exception)
async def _unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return _failure(500, "Internal server error")


@app.on_event("startup")
async def on_startup():
    # refuse to start without credentials
    settings.check_required()
    configure_engine()
    from . import models  # noqa: F401  Required for SQLAlchemy model detection
    await init_db()
    logger.info("Prep panel started (models: %s / %s)", settings.POWERFUL_MODEL, settings.EFFICIENT_MODEL)


@app.get("/health")
async def health():
    return {"status": "ok"}
