from __future__ import annotations

from collections.abc import Callable

from fastapi import Depends, HTTPException, Request, status
from sqlalchemy import select
from sqlalchemy.orm import Session

from clinic.core.logging import set_user_id
from clinic.core.security import TokenError, TokenType, decode_token
from clinic.core.settings import settings
from clinic.db import get_db
from clinic.models.therapist import Therapist
from clinic.models.user import Role, User


def _extract_token_from_request(request: Request) -> str | None:
    # Authorization header first, then the cookie when cookie auth is on
    auth = request.headers.get("Authorization")
    if auth and auth.lower().startswith("bearer "):
        return auth.split(" ", 1)[1]
    if settings.USE_COOKIE_AUTH:
        return request.cookies.get("access_token")
    return None


def get_current_user(request: Request, db: Session = Depends(get_db)) -> User:  # noqa: B008
    token = _extract_token_from_request(request)
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated"
        )

    try:
        payload = decode_token(token, expected_type=TokenType.ACCESS)
    except TokenError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        ) from exc

    user = db.get(User, int(payload["sub"]))
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Inactive or unknown user",
        )

    set_user_id(str(user.id))
    return user


def require_roles(*allowed: Role) -> Callable[[Request, Session], User]:
    def wrapper(request: Request, db: Session = Depends(get_db)) -> User:  # noqa: B008
        user = get_current_user(request, db)
        if user.role not in allowed:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail="Forbidden"
            )
        return user

    return wrapper


def current_therapist(
    user: User = Depends(require_roles(Role.THERAPIST)),  # noqa: B008
    db: Session = Depends(get_db),  # noqa: B008
) -> Therapist:
    """Therapist profile linked to the logged-in user."""
    therapist = db.scalar(select(Therapist).where(Therapist.user_id == user.id))
    if not therapist:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="No therapist profile linked to this user",
        )
    return therapist
