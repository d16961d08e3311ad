"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from . import models
from .auth import router as auth_router
from .config import get_settings
from .database import engine
from .errors import TrustEngineError
from .routers.content import router as content_router
from .routers.moderation import router as moderation_router
from .routers.penalties import router as penalties_router
from .routers.quiz import router as quiz_router
from .routers.users import router as users_router

logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Echo Tree Trust Engine", version="0.1.0")
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(quiz_router)
app.include_router(penalties_router)
app.include_router(moderation_router)
app.include_router(content_router)


@app.exception_handler(TrustEngineError)
async def trust_engine_error_handler(request: Request, exc: TrustEngineError) -> JSONResponse:
    """Translate expected failures into their status codes."""

    return JSONResponse(status_code=exc.status_code, content=exc.payload())


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Hide internal details of anything unexpected."""

    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


@app.on_event("startup")
async def on_startup() -> None:
    """Ensure database tables exist."""

    async with engine.begin() as conn:
        await conn.run_sync(models.Base.metadata.create_all)


@app.get("/health", tags=["system"])
async def healthcheck() -> dict[str, str]:
    """Simple readiness check for uptime monitors."""

    return {"status": "ok"}
