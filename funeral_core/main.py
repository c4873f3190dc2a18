"""FastAPI application entry point."""
import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text

from funeral_core.core.config import settings
from funeral_core.core.errors import DomainError
from funeral_core.core.results import UseCaseFailed
from funeral_core.db.session import engine

logger = logging.getLogger(__name__)

# ============================================================================
# Sentry Integration (optional, for production error tracking)
# ============================================================================

if settings.SENTRY_DSN and settings.ENV != "dev":
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
        send_default_pii=False,
    )
    logging.info("Sentry initialized for error tracking")


# ============================================================================
# FastAPI App
# ============================================================================

app = FastAPI(
    title="Funeral Core API",
    description="Versioned policies, invitations, templates, cases and ERP orchestration",
    version=settings.VERSION,
    docs_url="/docs" if settings.ENV == "dev" else None,
    redoc_url="/redoc" if settings.ENV == "dev" else None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Actor-Id"],
)


# ============================================================================
# Error handling
# ============================================================================

def _error_body(error: DomainError) -> dict:
    return {"detail": error.message, "error": error.code, "retryable": error.retryable}


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=_error_body(exc))


@app.exception_handler(UseCaseFailed)
async def use_case_failed_handler(request: Request, exc: UseCaseFailed):
    err = exc.err
    body = _error_body(err.error)
    body["completed_steps"] = list(err.completed_steps)
    body["artifacts"] = err.artifacts
    return JSONResponse(status_code=err.error.status_code, content=body)


# ============================================================================
# Routers
# ============================================================================

from funeral_core.routers import cases, invitations, leads, notes, policies, templates

app.include_router(policies.router, prefix="/policies", tags=["policies"])
app.include_router(invitations.router, prefix="/invitations", tags=["invitations"])
app.include_router(templates.router, prefix="/templates", tags=["templates"])
app.include_router(cases.router, prefix="/cases", tags=["cases"])
app.include_router(leads.router, prefix="/leads", tags=["leads"])
app.include_router(notes.router, tags=["notes"])  # Mixed paths: /cases/{id}/notes and /notes/{id}


@app.get("/health")
def health():
    """
    Health check endpoint.

    Verifies database connectivity and returns environment info.
    """
    with engine.connect() as conn:
        conn.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.ENV, "version": settings.VERSION}
