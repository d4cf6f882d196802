"""
FastAPI application entry point
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import SQLAlchemyError

from classchat.core.config import settings
from classchat.core.database import engine, init_db
from classchat.core.exceptions import ClassChatError, UpstreamError, ValidationError
from classchat.core.logging_config import setup_logging
from classchat.middleware import TracingMiddleware, limiter
from classchat.routers import classrooms, health, messages, users, websocket
from classchat.utils import RedisRoomRelay, room_broadcaster

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan events for startup and shutdown"""
    setup_logging()
    logger.info(f"🚀 Starting up {settings.APP_NAME}...")

    init_db()
    Path(settings.UPLOAD_DIR).mkdir(parents=True, exist_ok=True)

    relay = None
    if settings.REDIS_URL:
        relay = RedisRoomRelay(room_broadcaster, settings.REDIS_URL)
        await relay.connect()
    else:
        logger.info("📡 No REDIS_URL set, broadcasting to local connections only")

    yield

    logger.info("🛑 Shutting down...")
    await room_broadcaster.drain()
    if relay is not None:
        await relay.disconnect()
    engine.dispose()
    logger.info("✅ Cleanup complete")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Classroom forums with access-code enrollment and real-time updates",
    lifespan=lifespan,
)

# Rate limiter state
app.state.limiter = limiter


def error_response(exc: ClassChatError, headers=None) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": exc.error, "detail": exc.message},
        headers=headers,
    )


@app.exception_handler(ClassChatError)
async def classchat_error_handler(request: Request, exc: ClassChatError):
    """Render domain errors as {"error", "detail"}"""
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    return error_response(exc)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    """Malformed request bodies are reported like any other bad input"""
    errors = exc.errors()
    field = ".".join(str(part) for part in errors[0]["loc"]) if errors else "request"
    message = errors[0]["msg"] if errors else "Invalid request"
    return error_response(ValidationError(f"{field}: {message}"))


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    """Storage failures that escape the services"""
    logger.exception(f"❌ Database error on {request.method} {request.url.path}")
    return error_response(UpstreamError("Storage is unavailable"))


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    """Handle rate limit exceeded errors"""
    logger.warning(f"⚠️ Rate limit exceeded for {request.url.path}")

    return JSONResponse(
        status_code=429,
        content={
            "error": "rate_limit_exceeded",
            "detail": f"Too many requests: {exc.detail}",
        },
        headers={"Retry-After": "60"},
    )


# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.add_middleware(TracingMiddleware)

# Include routers
app.include_router(users.router)
app.include_router(classrooms.router)
app.include_router(messages.router)
app.include_router(websocket.router)
app.include_router(health.router)

# Uploaded attachments
app.mount(
    settings.UPLOAD_URL_PREFIX,
    StaticFiles(directory=settings.UPLOAD_DIR, check_dir=False),
    name="uploads",
)


@app.get("/")
def read_root():
    """Root endpoint"""
    return {
        "message": f"{settings.APP_NAME} is running",
        "version": settings.APP_VERSION,
        "endpoints": {
            "docs": "/docs",
            "health": "/health",
            "classrooms": "/api/classrooms",
            "messages": "/api/messages",
            "websocket": "/ws",
        }
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "classchat.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        log_level=settings.LOG_LEVEL.lower(),
    )
