# services/api/routers/auth.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from typing import Annotated, Optional

from dependencies import CurrentSession, Sessions, bearer_token
from schemas import LoginRequest, SessionOut

router = APIRouter(tags=["auth"])


@router.post("/login", response_model=SessionOut)
async def login(body: LoginRequest, sessions: Sessions):
    session = sessions.login(body.username, body.password)
    if session is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid username or password")
    return SessionOut(username=session.username, is_admin=session.is_admin, token=session.token)


@router.post("/logout")
async def logout(sessions: Sessions, token: Annotated[Optional[str], Depends(bearer_token)]):
    return {"logged_out": sessions.logout(token)}


@router.get("/session", response_model=SessionOut)
async def current_session(session: CurrentSession):
    return SessionOut(username=session.username, is_admin=session.is_admin)
