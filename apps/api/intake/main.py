"""FastAPI application entry point."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.errors import RateLimitExceeded

from intake.core.config import Settings, settings as default_settings
from intake.core.envelope import EnvelopeCodec, EnvelopeKey
from intake.core.rate_limit import limiter
from intake.core.request_context import REQUEST_ID_HEADER, RequestIdMiddleware
from intake.core.structured_logging import configure_logging
from intake.routers import health_router, submissions_router
from intake.routers.submissions import rate_limit_exceeded_handler
from intake.services.media import MediaDecoder

logger = logging.getLogger(__name__)


def _init_sentry(settings: Settings) -> None:
    """Optional production error tracking."""
    if not settings.SENTRY_DSN or settings.ENV == "dev":
        return
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        send_default_pii=False,  # Submissions carry personal data
    )
    logger.info("Sentry initialized for error tracking")


def create_app(settings: Settings | None = None) -> FastAPI:
    """
    Build the API for one deployment.

    Key material is read here, once, and handed to the codec; an encrypted
    deployment without a valid ENVELOPE_KEY/ENVELOPE_IV refuses to start.
    """
    settings = settings or default_settings
    configure_logging(settings.LOG_LEVEL)
    _init_sentry(settings)

    app = FastAPI(
        title="Campus Intake API",
        description="Campus feedback, event form and security incident intake",
        version=settings.VERSION,
        docs_url="/docs" if settings.ENV == "dev" else None,
        redoc_url="/redoc" if settings.ENV == "dev" else None,
    )

    app.state.settings = settings
    app.state.codec = (
        EnvelopeCodec(EnvelopeKey.from_settings(settings)) if settings.envelope_enabled else None
    )
    app.state.decoder = MediaDecoder(
        allowed_types=settings.allowed_image_types_list,
        max_item_bytes=settings.MAX_IMAGE_BYTES,
    )

    # Rate limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    app.add_middleware(RequestIdMiddleware)
    # CORS middleware - added last so it wraps everything else
    origins = settings.cors_origins_list
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials="*" not in origins,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Content-Type", "X-Requested-With", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )

    app.include_router(submissions_router)
    app.include_router(health_router)

    logger.info(
        "Intake API configured (env=%s, mode=%s)", settings.ENV, settings.SUBMISSION_MODE
    )
    return app


app = create_app()
