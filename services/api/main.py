"""
Document Vault - Backend API
FastAPI over a spreadsheet: documents, renewals, approvals and sharing.

Storage backends:
  appscript  Apps Script web app in front of the spreadsheet (default)
  sheets     Google Sheets + Drive directly, SMTP for share mails

Run server:
uvicorn main:app --host 0.0.0.0 --port 8000
"""

import contextvars
import logging
import os
import time
import uuid
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from adapters.base import DocumentRepository, RepositoryError
from core import dates
from core.sessions import SessionStore
from core.sharing import ShareLog
from core.submission import BatchSubmissionError
from routers import approval, auth, dashboard, documents, renewal, shared
from settings import Settings, get_settings

# ========== Request Context for Tracing ==========
request_id_var = contextvars.ContextVar('request_id', default=None)
request_start_time_var = contextvars.ContextVar('request_start_time', default=None)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

VERSION = "1.0"


# ============================================================================
# STORAGE ADAPTER INITIALIZATION
# ============================================================================

def build_repository(settings: Settings) -> DocumentRepository:
    backend = settings.storage_backend.strip().lower()

    if backend == "sheets":
        from adapters.sheets import SheetsAdapter

        logger.info("Initializing Google Sheets adapter...")
        return SheetsAdapter(settings)

    if backend == "appscript":
        from adapters.appscript import AppScriptAdapter

        logger.info("Initializing Apps Script adapter...")
        return AppScriptAdapter(
            settings.appscript_url,
            settings.write_url(),
            folder_id=settings.drive_folder_id,
            timeout=settings.request_timeout_seconds,
            renewal_sheet=settings.renewal_sheet,
        )

    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.storage_backend!r}")


def create_app(settings: Optional[Settings] = None, repository: Optional[DocumentRepository] = None) -> FastAPI:
    settings = settings or get_settings()
    logging.getLogger().setLevel(settings.log_level.upper())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        app.state.started_at = time.time()
        dates.set_display_timezone(settings.display_timezone)

        if app.state.repository is None:
            app.state.repository = build_repository(settings)
        await app.state.repository.boot()

        logger.info("Document Vault API starting up...")
        logger.info(f"Storage Backend: {settings.storage_backend.upper()}")
        logger.info(f"Approval required: {settings.require_approval}, serials: {settings.serial_strategy}")
        logger.info(f"Allowed origins: {settings.get_origins_list()}")
        try:
            yield
        finally:
            logger.info("Document Vault API shutting down...")
            await app.state.repository.close()

    app = FastAPI(
        title="Document Vault API",
        description="Document register on a spreadsheet backend",
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.repository = repository
    app.state.sessions = SessionStore(
        settings.login_users,
        settings.admin_users,
        ttl_seconds=settings.session_ttl_seconds,
    )
    app.state.share_log = ShareLog()

    # ========== Request Tracing Middleware ==========
    @app.middleware("http")
    async def request_tracing_middleware(request, call_next):
        """Add request_id and timing to all requests."""
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request_id_var.set(request_id)
        request_start_time_var.set(time.time())

        response = await call_next(request)

        latency = time.time() - request_start_time_var.get()
        logger.info(
            f"[{request_id}] {request.method} {request.url.path} -> "
            f"{response.status_code} ({latency * 1000:.1f} ms)"
        )

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Response-Time"] = f"{latency * 1000:.1f}ms"
        return response

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_origins_list(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ========== Error mapping ==========

    @app.exception_handler(RepositoryError)
    async def repository_exception_handler(request, exc: RepositoryError):
        logger.error(f"[{request_id_var.get()}] Backend error: {exc.message}")
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={"detail": exc.message},
        )

    @app.exception_handler(BatchSubmissionError)
    async def batch_exception_handler(request, exc: BatchSubmissionError):
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content={
                "detail": exc.message,
                "failed_serial": exc.failed_serial,
                "inserted": exc.inserted,
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request, exc):
        logger.error(f"Unhandled exception: {str(exc)}", exc_info=True)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"detail": "Internal server error"}
        )

    # ========== Health Endpoints ==========

    @app.get("/healthz")
    async def healthz():
        """
        Liveness probe: the process is up and answering.
        """
        return {
            "status": "ok",
            "timestamp": time.time(),
            "version": VERSION,
        }

    @app.get("/readyz")
    async def readyz():
        """
        Readiness probe: the storage backend is reachable.
        Returns 200 if ready, 503 if not.
        """
        try:
            await app.state.repository.ping()
            return {
                "status": "ready",
                "backend": settings.storage_backend,
                "timestamp": time.time(),
            }
        except Exception as e:
            logger.error(f"Readiness check failed: {str(e)}")
            return JSONResponse(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                content={
                    "status": "not_ready",
                    "backend": settings.storage_backend,
                    "error": str(e),
                    "timestamp": time.time(),
                },
            )

    app.include_router(auth.router)
    app.include_router(dashboard.router)
    app.include_router(documents.router)
    app.include_router(renewal.router)
    app.include_router(approval.router)
    app.include_router(shared.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    port = int(os.getenv("PORT", 8000))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
