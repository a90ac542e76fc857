# services/api/dependencies.py
"""
FastAPI dependencies shared by the routers.

Everything lives on app.state (created in main.create_app); nothing here is a
module-level global.
"""
from __future__ import annotations

from typing import Annotated, Optional

from fastapi import Depends, Header, HTTPException, Request, status

from adapters.base import DocumentRepository
from core.sessions import Session, SessionStore
from core.sharing import ShareLog
from settings import Settings


def get_repository(request: Request) -> DocumentRepository:
    return request.app.state.repository


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_sessions(request: Request) -> SessionStore:
    return request.app.state.sessions


def get_share_log(request: Request) -> ShareLog:
    return request.app.state.share_log


def bearer_token(authorization: Optional[str] = Header(None)) -> Optional[str]:
    if not authorization:
        return None
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def require_session(
    sessions: Annotated[SessionStore, Depends(get_sessions)],
    token: Annotated[Optional[str], Depends(bearer_token)],
) -> Session:
    session = sessions.get(token)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not logged in",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return session


def require_admin(session: Annotated[Session, Depends(require_session)]) -> Session:
    if not session.is_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return session


# ---- DI aliases ----
Repository = Annotated[DocumentRepository, Depends(get_repository)]
AppSettings = Annotated[Settings, Depends(get_app_settings)]
Sessions = Annotated[SessionStore, Depends(get_sessions)]
Shares = Annotated[ShareLog, Depends(get_share_log)]
CurrentSession = Annotated[Session, Depends(require_session)]
AdminSession = Annotated[Session, Depends(require_admin)]
