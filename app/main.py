"""
Main FastAPI application for the rank booking backend.
Serves orders, payments (Cashfree), catalog, admin, admin WebSocket feed, health and metrics.
"""
import logging
import time
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.core.config import settings
from app.core.errors import OrderError
from app.core.logging import configure_logging
from app.api.routes import admin, auth, catalog, health, orders, payments, realtime
from app.utils.metrics import router as metrics_router


configure_logging()
logger = logging.getLogger("app")

app = FastAPI(
    title="Rank Booking API",
    description="Orders, payments and admin API",
    version="1.0.0",
)

# CORS
origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
if not origins:
    origins = ["http://localhost:3000", "http://127.0.0.1:3000", settings.frontend_url]
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logging(request: Request, call_next):
    request_id = request.headers.get(settings.request_id_header) or uuid.uuid4().hex
    start = time.time()
    response = await call_next(request)
    response.headers[settings.request_id_header] = request_id
    logger.info(
        "http_request",
        extra={
            "request_id": request_id,
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "latency_ms": round((time.time() - start) * 1000, 1),
        },
    )
    return response


@app.exception_handler(OrderError)
async def order_error_handler(request: Request, exc: OrderError) -> JSONResponse:
    level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        level,
        "request_failed",
        extra={"path": request.url.path, "status_code": exc.status_code, "error": exc.message},
    )
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Body that is not JSON or has a wrongly typed field: 400 like every other input error."""
    errors = exc.errors()
    first = errors[0] if errors else {}
    if first.get("type") == "json_invalid":
        detail = "Invalid JSON body"
    else:
        field = next((str(part) for part in reversed(first.get("loc", ())) if isinstance(part, str)), "body")
        detail = f"Invalid value for {field}"
    logger.info("request_failed", extra={"path": request.url.path, "status_code": 400, "error": detail})
    return JSONResponse(status_code=400, content={"detail": detail})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled_error", extra={"path": request.url.path, "error": str(exc)})
    return JSONResponse(status_code=500, content={"detail": "Server error"})


# Routers
app.include_router(health.router, tags=["health"])
app.include_router(auth.router)
app.include_router(orders.router)
app.include_router(payments.router)
app.include_router(catalog.router)
app.include_router(admin.router)
app.include_router(realtime.router)
app.include_router(metrics_router)
