from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic.audit.helpers import record_audit
from clinic.core.logging import get_logger
from clinic.core.security import (
    TokenError,
    TokenType,
    decode_token,
    issue_tokens,
    verify_password,
)
from clinic.core.settings import settings
from clinic.db import get_db
from clinic.deps import get_current_user
from clinic.models.user import User
from clinic.schemas.auth import LoginIn, LoginOut, MeOut

router = APIRouter(prefix="/auth", tags=["auth"])
log = get_logger(__name__)


def _set_auth_cookies(resp: Response, access: str, refresh: str) -> None:
    cookie_kwargs = dict(
        httponly=True,
        secure=bool(settings.SECURE_COOKIES),
        samesite="lax",
        path="/",
        domain=settings.COOKIE_DOMAIN or None,
    )
    resp.set_cookie(
        key="access_token",
        value=access,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        **cookie_kwargs,
    )
    resp.set_cookie(
        key="refresh_token",
        value=refresh,
        max_age=settings.REFRESH_TOKEN_EXPIRE_DAYS * 24 * 60 * 60,
        **cookie_kwargs,
    )


@router.post("/login", response_model=LoginOut)
def api_login(
    payload: LoginIn,
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
) -> LoginOut:
    user = db.scalar(select(User).where(User.email == payload.email))
    if (
        not user
        or not user.is_active
        or not verify_password(payload.password, user.password_hash)
    ):
        log.info("auth.login_failed", email=payload.email)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials"
        )

    tokens = issue_tokens(user.id, user.role.value)

    if settings.USE_COOKIE_AUTH:
        _set_auth_cookies(response, tokens.access_token, tokens.refresh_token)

    record_audit(
        db,
        request=request,
        user_id=user.id,
        action="LOGIN",
        entity="user",
        entity_id=user.id,
        autocommit=True,
    )
    log.info("auth.login", user_id=user.id)
    return LoginOut(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        token_type="bearer",
    )


@router.get("/me", response_model=MeOut)
def api_me(user: User = Depends(get_current_user)) -> MeOut:
    return MeOut(
        id=user.id,
        email=user.email,
        name=user.name,
        role=user.role,
        is_active=user.is_active,
    )


@router.post("/logout")
def api_logout(response: Response):
    # Tokens are stateless; this only clears the cookie flow
    for k in ("access_token", "refresh_token"):
        response.delete_cookie(k, path="/")
    return {"ok": True}


@router.post("/refresh", response_model=LoginOut)
def api_refresh(request: Request, db: Session = Depends(get_db)) -> LoginOut:
    auth = request.headers.get("Authorization")
    token: str | None = None
    if auth and auth.lower().startswith("bearer "):
        token = auth.split(" ", 1)[1]
    if not token:
        token = request.cookies.get("refresh_token")
    if not token:
        raise HTTPException(status_code=401, detail="Missing refresh token")

    try:
        payload = decode_token(token, expected_type=TokenType.REFRESH)
    except TokenError as exc:
        raise HTTPException(status_code=401, detail="Invalid refresh token") from exc

    user = db.get(User, int(payload["sub"]))
    if not user or not user.is_active:
        raise HTTPException(status_code=401, detail="Inactive or unknown user")

    tokens = issue_tokens(user.id, user.role.value)
    log.info("auth.refresh", user_id=user.id)
    return LoginOut(
        access_token=tokens.access_token, refresh_token=tokens.refresh_token
    )
