import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.trustedhost import TrustedHostMiddleware
from fastapi.responses import JSONResponse
from loguru import logger
from prometheus_client import make_asgi_app

from api.v1.endpoints import screenshot
from core.config import settings
from core.exceptions import ReaderServiceException, ValidationError
from core.logging import setup_logging
from services.browser.session import BrowserSession
from services.reader.pipeline import ReaderPipeline

# Prometheus metrics endpoint
metrics_app = make_asgi_app()


# ------------------------------------------------------------------
# Application lifecycle
# ------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Launch the shared browser before accepting traffic and close it once on
    shutdown.  A launch failure raises ``BrowserFatal`` out of here, which
    makes the server refuse to start.
    """
    setup_logging(settings)
    logger.info("Initializing application...")

    session = BrowserSession.from_settings(settings)
    await session.start()
    app.state.session = session
    app.state.pipeline = ReaderPipeline.from_settings(session, settings)

    try:
        yield
    finally:
        logger.info("Shutting down application...")
        await session.shutdown()


app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Reader-mode screenshots of arbitrary web pages",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_HOSTS,
    allow_credentials=True,
    allow_methods=["GET"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "X-Total-Images", "X-Reader-Mode", "X-Extraction-Strategy"],
)

app.add_middleware(
    TrustedHostMiddleware,
    allowed_hosts=settings.ALLOWED_HOSTS,
)

app.include_router(screenshot.router, tags=["screenshot"])
app.include_router(screenshot.router, prefix="/api/v1", tags=["screenshot"])


@app.middleware("http")
async def add_timing_header(request: Request, call_next):
    start_time = time.perf_counter()
    response = await call_next(request)
    process_time = time.perf_counter() - start_time
    response.headers["X-Process-Time"] = str(process_time)
    return response


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=ValidationError(errors=exc.errors()).to_dict(),
    )


@app.exception_handler(ReaderServiceException)
async def reader_exception_handler(request: Request, exc: ReaderServiceException):
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {request.url.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {request.url.path}: {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=exc.to_dict(),
    )


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled exception: {str(exc)}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": {
                "code": "INTERNAL_SERVER_ERROR",
                "message": "An unexpected error occurred",
                "status": 500,
            }
        },
    )


app.mount("/metrics", metrics_app)


@app.get("/health")
async def health_check(request: Request):
    session = getattr(request.app.state, "session", None)
    connected = bool(session and session.is_connected)
    return {
        "status": "healthy" if connected else "degraded",
        "browser_connected": connected,
        "timestamp": time.time(),
    }


@app.get("/")
async def root():
    return {
        "name": settings.PROJECT_NAME,
        "version": "1.0.0",
        "description": "Reader-mode screenshots of arbitrary web pages",
        "endpoints": ["/screenshot?url=<URL>", "/screenshot/images?url=<URL>"],
        "docs_url": "/docs",
        "health_check": "/health",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.DEBUG,
        workers=settings.WORKERS,
        log_level=settings.LOG_LEVEL.lower(),
    )
