"""
Admin authentication: POST /api/admin/login issues a bearer JWT, GET /api/admin/verify checks it.
Login attempts are rate limited per client IP.
"""
import logging

from fastapi import APIRouter, Body, Depends, HTTPException, Request, status
from pydantic import BaseModel, Field

from app.core.config import settings
from app.services.auth.jwt import create_access_token, get_current_user, verify_admin_credentials
from app.services.auth.login_rate_limit import (
    check_login_rate_limit,
    get_client_ip,
    reset_login_attempts,
    retry_after_seconds,
)

logger = logging.getLogger("auth")

router = APIRouter(prefix="/api/admin", tags=["admin-auth"])


class LoginRequest(BaseModel):
    admin_id: str | None = Field(default=None, alias="adminId")
    password: str | None = None

    model_config = {"populate_by_name": True}


class LoginResponse(BaseModel):
    token: str
    token_type: str = "bearer"
    expires_in: int
    admin: dict


@router.post("/login", response_model=LoginResponse)
def login(request: Request, body: LoginRequest = Body(...)):
    client_ip = get_client_ip(request)
    if not check_login_rate_limit(client_ip):
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="Too many login attempts. Try again later.",
            headers={"Retry-After": str(retry_after_seconds(client_ip))},
        )

    if not body.admin_id or not body.password:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please provide admin ID and password")

    if not verify_admin_credentials(body.admin_id, body.password):
        logger.warning("admin_login_failed", extra={"ip": client_ip})
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    reset_login_attempts(client_ip)
    logger.info("admin_login", extra={"ip": client_ip})
    return {
        "token": create_access_token(data={"sub": body.admin_id}),
        "token_type": "bearer",
        "expires_in": settings.jwt_expire_hours * 3600,
        "admin": {"adminId": body.admin_id},
    }


@router.get("/verify")
def verify(current_user: dict = Depends(get_current_user)):
    """Token check used by the admin UI on load."""
    return {"valid": True, "admin": current_user}
