"""
LeadSync - Meta Lead Ads to Google Sheets sync service.
Main FastAPI application entry point.
"""
import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from fastapi import FastAPI, Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from leadsync.api.router import api_router
from leadsync.config import Settings, get_settings
from leadsync.integrations.google_sheets import GoogleSheetsClient
from leadsync.integrations.meta_graph import MetaGraphClient
from leadsync.integrations.provider_base import PROVIDER_TIMEOUT_SECONDS
from leadsync.services.lead_processor import LeadEventProcessor
from leadsync.utils.encryption import CredentialVault
from leadsync.utils.logging import (
    configure_structured_logging,
    generate_correlation_id,
    set_correlation_id,
)

logger = logging.getLogger("leadsync")


class CorrelationIdMiddleware(BaseHTTPMiddleware):
    """Injects a correlation ID into every request context and response header."""

    async def dispatch(self, request: Request, call_next) -> Response:
        cid = request.headers.get("X-Correlation-ID") or generate_correlation_id()
        set_correlation_id(cid)
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = cid
        return response


def build_lead_processor(settings: Settings, http_client: httpx.AsyncClient) -> LeadEventProcessor:
    """Construct the processor and its collaborators. Raises ConfigurationError on a bad key."""
    return LeadEventProcessor(
        vault=CredentialVault.from_settings(settings),
        meta=MetaGraphClient.from_settings(settings, http_client=http_client),
        sheets=GoogleSheetsClient.from_settings(settings, http_client=http_client),
        app_secret=settings.meta_app_secret,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = app.state.settings
    logger.info("LeadSync starting up (env=%s)", settings.app_env)

    if not settings.google_client_id or not settings.google_client_secret:
        logger.warning(
            "GOOGLE_CLIENT_ID/GOOGLE_CLIENT_SECRET not set - expired Google tokens "
            "cannot be refreshed."
        )

    # Initialize Sentry if configured
    if settings.sentry_dsn:
        try:
            import sentry_sdk
            sentry_sdk.init(
                dsn=settings.sentry_dsn,
                traces_sample_rate=0.1,
                environment=settings.app_env,
            )
            logger.info("Sentry initialized")
        except Exception as e:
            logger.warning("Sentry initialization failed: %s", str(e))

    http_client = httpx.AsyncClient(timeout=PROVIDER_TIMEOUT_SECONDS)
    if getattr(app.state, "lead_processor", None) is None:
        app.state.lead_processor = build_lead_processor(settings, http_client)

    yield

    logger.info("LeadSync shutting down")
    await http_client.aclose()
    from leadsync.database import dispose_engine
    await dispose_engine()


def create_app(
    settings: Optional[Settings] = None,
    lead_processor: Optional[LeadEventProcessor] = None,
) -> FastAPI:
    """Application factory. Configuration is validated here - fail fast."""
    settings = settings or get_settings()

    # Configure structured JSON logging with correlation IDs
    configure_structured_logging(settings.log_level)

    # A missing or malformed key stops the process before it serves traffic
    CredentialVault.from_settings(settings)

    application = FastAPI(
        title="LeadSync",
        description="Meta Lead Ads to Google Sheets sync service",
        version="1.0.0",
        lifespan=lifespan,
    )
    application.state.settings = settings
    application.state.lead_processor = lead_processor

    application.add_middleware(CorrelationIdMiddleware)
    application.include_router(api_router)

    return application


def get_app() -> FastAPI:
    """Uvicorn factory entry point: `uvicorn leadsync.main:get_app --factory`."""
    return create_app()
