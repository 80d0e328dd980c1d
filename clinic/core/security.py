from __future__ import annotations

import enum
import re
import uuid
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt
from passlib.context import CryptContext
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
from starlette.types import ASGIApp

from clinic.core.settings import settings

# argon2 for new hashes; bcrypt hashes from older seeds still verify
pwd_context = CryptContext(schemes=["argon2", "bcrypt"], deprecated="auto")

API_CSP = "default-src 'none'; frame-ancestors 'none'; base-uri 'none'"


class TokenType(str, enum.Enum):
    ACCESS = "access"
    REFRESH = "refresh"


class TokenError(ValueError):
    pass


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, password_hash: str) -> bool:
    return pwd_context.verify(plain_password, password_hash)


_PASSWORD_RULES: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r".{8,}"), "at least 8 characters"),
    (re.compile(r"[a-z]"), "a lower case letter"),
    (re.compile(r"[A-Z]"), "an upper case letter"),
    (re.compile(r"\d"), "a digit"),
    (re.compile(r"[^A-Za-z0-9]"), "a special character"),
)


def validate_password_policy(password: str) -> None:
    """Raises ValueError listing every rule the password misses."""
    password = password or ""
    missing = [label for rule, label in _PASSWORD_RULES if not rule.search(password)]
    if missing:
        raise ValueError("Weak password: needs " + ", ".join(missing) + ".")


def create_token(
    sub: str, type_: TokenType | str, expires_delta: timedelta, **claims: Any
) -> str:
    issued = datetime.now(UTC)
    payload: dict[str, Any] = {
        **claims,
        "sub": sub,
        "type": TokenType(type_).value,
        "jti": uuid.uuid4().hex,
        "iat": int(issued.timestamp()),
        "exp": int((issued + expires_delta).timestamp()),
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALG)


def create_access_token(sub: str, role: str | None = None) -> str:
    extra = {"role": role} if role else {}
    return create_token(
        sub,
        TokenType.ACCESS,
        timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
        **extra,
    )


def create_refresh_token(sub: str) -> str:
    return create_token(
        sub, TokenType.REFRESH, timedelta(days=settings.REFRESH_TOKEN_EXPIRE_DAYS)
    )


def issue_tokens(user_id: int, role: str | None = None) -> TokenPair:
    return TokenPair(
        access_token=create_access_token(str(user_id), role),
        refresh_token=create_refresh_token(str(user_id)),
    )


def decode_token(token: str, expected_type: TokenType | str) -> dict[str, Any]:
    try:
        payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALG])
    except JWTError as e:
        raise TokenError("Invalid token.") from e
    if payload.get("type") != TokenType(expected_type).value:
        raise TokenError(f"Expected a {TokenType(expected_type).value} token.")
    if not payload.get("sub"):
        raise TokenError("Token has no subject.")
    return payload


class CSPMiddleware(BaseHTTPMiddleware):
    """Sets a Content-Security-Policy on every response.

    The API renders no documents, so the default policy forbids loading anything.
    """

    def __init__(self, app: ASGIApp, policy: str = API_CSP):
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request, call_next):
        response: Response = await call_next(request)
        response.headers.setdefault("Content-Security-Policy", self.policy)
        return response
