import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_client import make_asgi_app
import structlog

from medcompat.core.config import settings
from medcompat.core.exceptions import InvalidInputError
from medcompat.core.logging import setup_logging
from medcompat.api.router import api_router

# 1. Initialize Logging
setup_logging()
logger = structlog.get_logger()

# 2. Lifecycle (Startup/Shutdown)
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("system_startup", env=settings.ENVIRONMENT)
    yield
    logger.info("system_shutdown")

# 3. Create App
app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.PROJECT_VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan
)

# 4. Middleware: CORS (the dashboard is served from another origin)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)

# 5. Middleware: Observability & Tracing
@app.middleware("http")
async def logging_middleware(request: Request, call_next):
    # Generate correlation ID
    request_id = request.headers.get("X-Request-ID") or "req_" + str(time.time())

    # Bind to logger context
    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(
        request_id=request_id,
        method=request.method,
        path=request.url.path
    )

    start_time = time.perf_counter()
    try:
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        logger.info(
            "http_request_completed",
            status_code=response.status_code,
            duration=process_time
        )
        response.headers["X-Request-ID"] = request_id
        return response
    except Exception as e:
        process_time = time.perf_counter() - start_time
        logger.error(
            "http_request_failed",
            error=str(e),
            duration=process_time
        )
        raise e

# 6. Domain errors -> HTTP
@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    # The dashboard reads 'errors' to highlight the offending patient fields
    logger.warning("evaluation_rejected", reason=exc.message, error_count=len(exc.errors))
    return JSONResponse(
        status_code=422,
        content={
            "detail": {
                "status": "INVALID_INPUT",
                "message": exc.message,
                "errors": exc.errors,
            }
        },
    )

# 7. Mount Routes
app.include_router(api_router, prefix=settings.API_V1_STR)

# 8. Mount Metrics Endpoint (Prometheus)
metrics_app = make_asgi_app()
app.mount("/metrics", metrics_app)

# Health Check
@app.get("/health")
async def health_check():
    return {"status": "ok", "version": settings.PROJECT_VERSION}
