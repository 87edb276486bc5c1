"""ASGI application for the assurance back office."""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from assurance.core.config import settings
from assurance.core.structured_logging import configure_logging
from assurance.db.session import engine
from assurance.routers import (
    admin_router,
    cases_router,
    internal_router,
    notifications_router,
    reports_router,
)

logger = logging.getLogger(__name__)


def _init_sentry() -> None:
    """Report unhandled errors to Sentry outside local development."""
    if not settings.SENTRY_DSN or settings.ENV == "dev":
        return

    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.ENV,
        release=settings.VERSION,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),
        ],
        traces_sample_rate=0.1,
        # usernames travel in notification payloads and audit messages
        send_default_pii=False,
    )
    logger.info("Sentry enabled (env=%s)", settings.ENV)


configure_logging()
_init_sentry()

_show_docs = settings.ENV == "dev"
app = FastAPI(
    title="Assurance Back-Office API",
    description="Investigation cases, reports and in-app notifications",
    version=settings.VERSION,
    docs_url="/docs" if _show_docs else None,
    redoc_url="/redoc" if _show_docs else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "X-Requested-With"],
    # report file downloads
    expose_headers=["Content-Disposition"],
)

app.include_router(cases_router, prefix="/cases", tags=["cases"])
app.include_router(reports_router, prefix="/reports", tags=["reports"])
app.include_router(notifications_router, prefix="/notifications", tags=["notifications"])
app.include_router(admin_router, tags=["admin"])
app.include_router(internal_router)


@app.get("/health")
def health():
    """Liveness plus a round-trip to the database."""
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
