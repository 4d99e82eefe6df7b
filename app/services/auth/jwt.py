"""
Admin JWT: HS256 bearer tokens signed with jwt_secret_key.
get_current_user is the FastAPI dependency guarding admin routes.
"""
import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import settings

logger = logging.getLogger("auth")

bearer_scheme = HTTPBearer(auto_error=False)


def verify_admin_credentials(admin_id: str, password: str) -> bool:
    """Constant-time comparison against the configured admin credentials."""
    id_ok = hmac.compare_digest((admin_id or "").encode(), settings.admin_id.encode())
    password_ok = hmac.compare_digest((password or "").encode(), settings.admin_password.encode())
    return id_ok and password_ok


def create_access_token(data: dict[str, Any], expires_delta: timedelta | None = None) -> str:
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(hours=settings.jwt_expire_hours))
    payload = {**data, "iat": now, "exp": expire}
    return jwt.encode(payload, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any] | None:
    """Decoded payload, or None for an expired/invalid token."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        logger.info("token_rejected", extra={"error": type(e).__name__})
        return None


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> dict:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="No token, authorization denied",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = verify_token(credentials.credentials)
    if not payload or not payload.get("sub"):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token is not valid",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {"adminId": payload["sub"]}
