from contextlib import asynccontextmanager
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from tandem.config import ENABLE_SCHEDULER, IS_DEVELOPMENT, LOG_LEVEL
from tandem.database import create_db_and_tables
from tandem.errors import ApiError, error_body
from tandem.logging import configure_logging, get_logger, request_context

configure_logging(LOG_LEVEL, json_format=not IS_DEVELOPMENT)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup: Create database tables
    create_db_and_tables()

    scheduler = None
    if ENABLE_SCHEDULER:
        from tandem.scheduler import create_scheduler
        scheduler = create_scheduler()
        scheduler.start()

    logger.info("app_started", scheduler=bool(scheduler))
    yield

    # Shutdown
    if scheduler:
        scheduler.shutdown(wait=False)


# Initialize FastAPI app
app = FastAPI(
    title="Tandem League",
    description="Team distance challenges, leagues and streaks",
    version="1.0.0",
    lifespan=lifespan
)


@app.middleware("http")
async def log_context(request: Request, call_next):
    with request_context(request.method, request.url.path, request.headers.get("X-Request-ID")) as request_id:
        response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    if isinstance(exc, ApiError):
        body = error_body(exc.error, exc.details, **exc.extra)
    else:
        body = error_body(str(exc.detail))
    return JSONResponse(status_code=exc.status_code, content=body, headers=getattr(exc, "headers", None))


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    details = []
    for err in exc.errors():
        location = ".".join(str(part) for part in err.get("loc", ())[1:])
        details.append(f"{location}: {err.get('msg')}" if location else err.get("msg"))

    logger.warning("request_validation_failed", path=request.url.path, details=details)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=error_body("Validation failed", details)
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("unhandled_error", path=request.url.path)
    details = [str(exc)] if IS_DEVELOPMENT else None
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=error_body("Internal server error", details)
    )


# Include routers
from tandem.routers import auth, challenges, matchmaking, leagues, progress, streaks

app.include_router(auth.router, tags=["auth"])
app.include_router(challenges.router)
app.include_router(matchmaking.router)
app.include_router(leagues.router)
app.include_router(progress.router)
app.include_router(streaks.router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("main:app", host="0.0.0.0", port=8000, reload=True)
