"""
FastAPI app assembly: middleware and router wiring.
"""
import json
import logging
import os
from datetime import datetime, timezone

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from starlette.concurrency import run_in_threadpool
from starlette.middleware.sessions import SessionMiddleware
from starlette.requests import Request
from starlette.responses import Response

# Configure logging
LOG_LEVEL_NAME = os.getenv("LOG_LEVEL", "INFO").upper()
LOG_LEVEL = getattr(logging, LOG_LEVEL_NAME, logging.INFO)
logging.basicConfig(level=LOG_LEVEL)
logger = logging.getLogger(__name__)
logger.setLevel(LOG_LEVEL)
logger.info("app_startup: log_level=%s", LOG_LEVEL_NAME)


from compliance.audit import METHOD_ACTIONS, record_mutation
from compliance.db.database import SessionLocal
from compliance.api.deps import SESSION_PRACTICE_KEY, SESSION_USER_KEY
from compliance.api.ai import router as ai_router
from compliance.api.audits import router as audits_router
from compliance.api.auth import router as auth_router
from compliance.api.baselines import router as baselines_router
from compliance.api.emails import router as email_logs_router, webhook_router
from compliance.api.fridges import router as fridges_router
from compliance.api.governance import router as governance_router
from compliance.api.jobs import router as jobs_router
from compliance.api.medical_requests import router as medical_requests_router
from compliance.api.notifications import router as notifications_router
from compliance.api.policies import router as policies_router
from compliance.api.practices import router as practices_router
from compliance.api.processes import router as processes_router
from compliance.api.workforce import router as workforce_router
from compliance.utils.runtime import (
    SESSION_MAX_AGE_SECONDS,
    get_cors_origins,
    get_session_cookie_name,
    get_session_secret,
    is_production,
)

# Database schema is managed by Alembic migrations.

app = FastAPI(
    title="GP Practice Compliance Service",
    description="API for GP practice compliance: processes, governance, workforce, fridge monitoring and reporting.",
    version="1.0.0",
)

# Avoid implicit trailing-slash redirects for predictable URLs
app.router.redirect_slashes = False


def _write_audit_row(**kwargs) -> None:
    db = SessionLocal()
    try:
        record_mutation(db, **kwargs)
    finally:
        db.close()


# Middleware: record successful mutations on practice resources
@app.middleware("http")
async def audit_mutations(request: Request, call_next):
    response = await call_next(request)
    if request.method not in METHOD_ACTIONS or not 200 <= response.status_code < 300:
        return response

    practice_id = request.session.get(SESSION_PRACTICE_KEY)
    if not practice_id:
        return response

    body = b""
    async for chunk in response.body_iterator:
        body += chunk if isinstance(chunk, bytes) else chunk.encode("utf-8")

    try:
        decoded = json.loads(body) if body else None
    except ValueError:
        decoded = None

    try:
        await run_in_threadpool(
            _write_audit_row,
            method=request.method,
            path=request.url.path,
            status_code=response.status_code,
            practice_id=practice_id,
            user_id=request.session.get(SESSION_USER_KEY),
            body=decoded,
            ip_address=request.client.host if request.client else None,
            user_agent=request.headers.get("user-agent"),
        )
    except Exception:
        logger.exception("audit_write_failed: method=%s path=%s", request.method, request.url.path)

    return Response(
        content=body,
        status_code=response.status_code,
        headers=dict(response.headers),
        media_type=response.media_type,
    )


# Session middleware wraps the audit middleware so the session is populated there
app.add_middleware(
    SessionMiddleware,
    secret_key=get_session_secret(),
    session_cookie=get_session_cookie_name(),
    max_age=SESSION_MAX_AGE_SECONDS,
    same_site="lax",
    https_only=is_production(),
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(practices_router)
app.include_router(workforce_router)
app.include_router(processes_router)
app.include_router(governance_router)
app.include_router(policies_router)
app.include_router(fridges_router)
app.include_router(medical_requests_router)
app.include_router(notifications_router)
app.include_router(audits_router)
app.include_router(email_logs_router)
app.include_router(webhook_router)
app.include_router(baselines_router)
app.include_router(jobs_router)
app.include_router(ai_router)


@app.get("/api/health")
def health_check():
    return {"status": "ok", "timestamp": datetime.now(timezone.utc).isoformat()}
