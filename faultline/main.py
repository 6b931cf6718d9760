"""
FastAPI application entry point.
"""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from faultline import __version__
from faultline.api import diagnostics, error_logs
from faultline.config import Settings, settings as default_settings
from faultline.middleware.error_handler import register_error_handlers
from faultline.services.backend_errors import BackendErrorRecorder
from faultline.services.error_log import AppendOnlyLog
from faultline.services.rate_limiter import FixedWindowRateLimiter
from faultline.utils.logging import setup_logging, get_logger
from faultline.utils.metrics import IngestionMetrics
from faultline.utils.resilience import ResilienceContext

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start background services on startup; tear everything down on shutdown."""
    state = app.state
    logger.info("Starting Faultline error collector")

    state.rate_limiter.start_sweeper()
    if state.settings.install_global_hooks:
        state.backend_recorder.install()

    try:
        yield
    finally:
        logger.info("Shutting down Faultline error collector")
        state.backend_recorder.uninstall()
        await state.rate_limiter.stop_sweeper()
        state.resilience.close()


def create_app(app_settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the application and its process-scoped state.

    Everything mutable (rate limit records, circuit breakers, fallback cache,
    log writers) hangs off `app.state` and lives exactly as long as the app.
    """
    app_settings = app_settings or default_settings

    app = FastAPI(
        title="Faultline Error Collector",
        description="Error capture, classification and resilience service",
        version=__version__,
        lifespan=lifespan,
    )

    metrics = IngestionMetrics()
    backend_log = AppendOnlyLog(app_settings.backend_log_path)

    app.state.settings = app_settings
    app.state.metrics = metrics
    app.state.resilience = ResilienceContext(
        failure_threshold=app_settings.circuit_failure_threshold,
        reset_timeout=app_settings.circuit_reset_timeout_seconds,
        max_attempts=app_settings.retry_max_attempts,
        delay=app_settings.retry_delay_seconds,
    )
    app.state.rate_limiter = FixedWindowRateLimiter(
        window_seconds=app_settings.rate_limit_window_seconds,
        max_requests=app_settings.rate_limit_max_requests,
        sweep_interval_seconds=app_settings.rate_limit_sweep_interval_seconds,
    )
    app.state.frontend_log = AppendOnlyLog(app_settings.frontend_log_path)
    app.state.backend_log = backend_log
    app.state.backend_recorder = BackendErrorRecorder(
        backend_log,
        metrics=metrics,
        trust_proxy_headers=app_settings.trust_proxy_headers,
    )

    register_error_handlers(app)

    @app.get("/health")
    async def health_check():
        """Health check endpoint for container orchestration."""
        return {
            "status": "healthy",
            "version": __version__,
            "metrics": app.state.metrics.get_metrics_summary(),
            "circuit_breakers": app.state.resilience.breakers.states(),
        }

    @app.get("/")
    async def root():
        """Root endpoint."""
        return {
            "message": "Faultline Error Collector API",
            "version": __version__,
            "docs": "/docs"
        }

    app.include_router(error_logs.router)
    app.include_router(diagnostics.router)

    return app


setup_logging(default_settings.log_level)

app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
