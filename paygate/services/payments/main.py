"""Public entrypoint for the payment service.

Builds the FastAPI app: request context + metrics, security headers, CORS,
per-IP rate limiting, the payments router, info/health routes and the
fallback 404/500 handlers. Provider, limiter and settings are held on
`app.state` so tests can swap them.
"""

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from time import perf_counter
from uuid import uuid4

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from paygate.common.config import Settings, settings as default_settings
from paygate.common.logging import configure_logging, logger, request_id_ctx
from paygate.common.metrics import (
    http_request_duration_seconds,
    http_requests_total,
    metrics_response,
    rate_limited_requests_total,
)
from paygate.common.ratelimit import FixedWindowRateLimiter
from paygate.common.security import install_security_headers
from paygate.common.startup import log_startup_config, warn_missing_credentials
from paygate.common.tracing import instrument_app, setup_tracing
from paygate.services.payments.provider import PaymentProvider, StripeProvider
from paygate.services.payments.routes import router as payments_router
from paygate.services.payments.schemas import PaymentError
from paygate.services.payments.service import PaymentController, error_response, internal_error_response


API_VERSION = "1.0.0"
PAYMENTS_PREFIX = "/api/payments"
RATE_LIMIT_MESSAGE = "Too many requests from this IP, please try again later."


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def install_rate_limiter(app: FastAPI, limiter: FixedWindowRateLimiter, service_name: str) -> None:
    """Reject requests over the per-client budget with the standard 429 envelope."""

    @app.middleware("http")
    async def rate_limit_middleware(request: Request, call_next):
        decision = limiter.hit(client_key(request))
        headers = {
            "X-RateLimit-Limit": str(decision.limit),
            "X-RateLimit-Remaining": str(decision.remaining),
        }
        if not decision.allowed:
            rate_limited_requests_total.labels(service=service_name).inc()
            logger.warning("rate limit exceeded client=%s path=%s", client_key(request), request.url.path)
            response = error_response(PaymentError(message=RATE_LIMIT_MESSAGE, status_code=429))
            headers["Retry-After"] = str(max(1, int(decision.reset_after_seconds + 0.999)))
        else:
            response = await call_next(request)
        response.headers.update(headers)
        return response


def install_error_boundary(app: FastAPI) -> None:
    """Turn uncaught handler errors into the generic 500 envelope.

    Registered innermost so the response still passes through the CORS,
    security-header and request-id layers.
    """

    @app.middleware("http")
    async def error_boundary_middleware(request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            logger.error("unhandled error path=%s error=%s", request.url.path, exc, exc_info=exc)
            return internal_error_response()


def install_request_context(app: FastAPI, service_name: str) -> None:
    """Bind a request id for log correlation and record request metrics."""

    @app.middleware("http")
    async def request_context_middleware(request: Request, call_next):
        request_id = request.headers.get("x-request-id") or str(uuid4())
        token = request_id_ctx.set(request_id)
        start = perf_counter()
        route = request.url.path
        method = request.method
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
            route_obj = request.scope.get("route")
            if route_obj is not None and getattr(route_obj, "path", None):
                route = route_obj.path
            response.headers["X-Request-ID"] = request_id
            return response
        finally:
            elapsed = max(0.0, perf_counter() - start)
            http_request_duration_seconds.labels(
                service=service_name,
                route=route,
                method=method,
            ).observe(elapsed)
            http_requests_total.labels(
                service=service_name,
                route=route,
                method=method,
                status_code=str(status_code),
            ).inc()
            request_id_ctx.reset(token)


def create_app(
    settings: Settings | None = None,
    provider: PaymentProvider | None = None,
    rate_limiter: FixedWindowRateLimiter | None = None,
) -> FastAPI:
    """Build the payment service app around injected collaborators."""

    settings = settings or default_settings
    if provider is None:
        provider = StripeProvider(
            settings.stripe_secret_key,
            settings.stripe_webhook_secret,
            webhook_tolerance_seconds=settings.webhook_tolerance_seconds,
            service_name=settings.service_name,
        )
    if rate_limiter is None:
        rate_limiter = FixedWindowRateLimiter(
            max_requests=settings.rate_limit_max_requests,
            window_seconds=settings.rate_limit_window_ms / 1000.0,
        )

    @asynccontextmanager
    async def lifespan(_: FastAPI):
        """Log process start and the shutdown signal; in-flight requests are not drained."""

        warn_missing_credentials(settings)
        logger.info("payment service started port=%s environment=%s", settings.port, settings.environment)
        yield
        logger.info("shutdown signal received, shutting down gracefully")

    app = FastAPI(title="Payment Service", version=API_VERSION, lifespan=lifespan)
    app.state.settings = settings
    app.state.provider = provider
    app.state.rate_limiter = rate_limiter
    app.state.payment_controller = PaymentController(
        provider,
        json_body_limit_bytes=settings.json_body_limit_bytes,
        webhook_body_limit_bytes=settings.webhook_body_limit_bytes,
        service_name=settings.service_name,
    )

    # Registration order is innermost first.
    install_error_boundary(app)
    install_rate_limiter(app, rate_limiter, settings.service_name)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[settings.cors_origin],
        allow_credentials=True,
        allow_methods=["GET", "HEAD", "PUT", "PATCH", "POST", "DELETE"],
        allow_headers=["*"],
    )
    install_security_headers(app)
    install_request_context(app, settings.service_name)
    instrument_app(app)

    app.include_router(payments_router, prefix=PAYMENTS_PREFIX)

    @app.get("/health")
    def health():
        """Container health check endpoint."""

        return {
            "success": True,
            "message": "Payment service is running",
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z"),
            "environment": settings.environment,
        }

    @app.get("/")
    def index():
        return {
            "success": True,
            "message": "Payment Service API",
            "version": API_VERSION,
            "endpoints": {"health": "/health", "payments": PAYMENTS_PREFIX},
        }

    @app.get("/metrics")
    def metrics():
        """Prometheus scrape endpoint."""

        return metrics_response()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        # Unknown paths and unsupported methods both read as missing routes.
        if exc.status_code in (404, 405):
            return error_response(PaymentError(message="Route not found", status_code=404))
        return error_response(PaymentError(message=str(exc.detail), status_code=exc.status_code))

    @app.exception_handler(Exception)
    async def unhandled_exception_handler(request: Request, exc: Exception):
        logger.error("unhandled error path=%s error=%s", request.url.path, exc, exc_info=exc)
        return internal_error_response()

    return app


def build_default_app() -> FastAPI:
    """Process-level app wiring used by uvicorn."""

    configure_logging(default_settings.log_level, default_settings.service_name)
    setup_tracing(default_settings.service_name, default_settings.otel_exporter_otlp_endpoint)
    log_startup_config(default_settings)
    return create_app(default_settings)


app = build_default_app()


def run() -> None:
    """Console entrypoint: serve `app` on the configured port."""

    uvicorn.run(app, host="0.0.0.0", port=default_settings.port, log_config=None)


if __name__ == "__main__":
    run()
