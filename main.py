"""
Cashfree Payment Adapter - Application Entry Point

Serves the inbound Cashfree webhook endpoint. The payment provider is built
once at startup from validated settings and stored on ``app.state``; route
handlers receive it through the ``get_provider`` dependency.
"""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.middleware import log_api_entry
from api.webhooks import router as webhook_router
from core.dependencies import build_provider
from core.logging import configure_logging
from core.settings import Settings
from payments.cashfree_service import CashfreePaymentProvider

log = structlog.get_logger(__name__)


def create_app(provider: Optional[CashfreePaymentProvider] = None) -> FastAPI:
    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Build the provider on startup, drop it on shutdown."""
        settings = Settings()
        configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
        app.state.provider = provider or build_provider(settings)
        log.info(
            "app.started", app=settings.APP_NAME, provider=repr(app.state.provider)
        )
        yield
        app.state.provider = None

    app = FastAPI(
        title="Cashfree Payment Adapter",
        description="Cashfree order, refund and webhook adapter for a host commerce platform.",
        version="1.0.0",
        lifespan=lifespan,
    )

    app.middleware("http")(log_api_entry)
    app.include_router(webhook_router)

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        log.error("api.unhandled_error", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=500, content={"detail": str(exc)})

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()


def main():
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)


if __name__ == "__main__":
    main()
