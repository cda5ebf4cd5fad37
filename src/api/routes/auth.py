import logging
from datetime import timedelta
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from pydantic import BaseModel

from src.api.auth_utils import (
    create_access_token,
    decode_access_token,
    verify_credentials,
)
from src.api.deps import (
    ACCESS_TOKEN_COOKIE,
    Settings,
    extract_token,
    get_rules,
    get_settings,
    oauth2_scheme,
)
from src.rules.models import Rules

logger = logging.getLogger(__name__)

router = APIRouter()


class Token(BaseModel):
    access_token: str
    token_type: str


class LoginRequest(BaseModel):
    username: str
    password: str


@router.post("/login", response_model=Token)
def login_for_access_token(
    body: LoginRequest,
    response: Response,
    settings: Settings = Depends(get_settings),
    rules: Rules = Depends(get_rules),
) -> Token:
    """Authenticate the site admin and return an access token."""
    if not verify_credentials(
        body.username, body.password, settings.admin_username, settings.admin_password
    ):
        logger.warning("Failed admin login for %r", body.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )

    ttl_minutes = rules.auth.token_ttl_minutes
    access_token = create_access_token(
        data={"sub": body.username, "role": "admin"},
        expires_delta=timedelta(minutes=ttl_minutes),
        algorithm=rules.auth.algorithm,
    )

    # Set HttpOnly Cookie
    cookie = rules.auth.cookie
    response.set_cookie(
        key=ACCESS_TOKEN_COOKIE,
        value=f"Bearer {access_token}",
        httponly=cookie.http_only,
        max_age=ttl_minutes * 60,
        expires=ttl_minutes * 60,
        samesite=cookie.same_site,  # type: ignore[arg-type]
        secure=cookie.secure,
    )

    return Token(access_token=access_token, token_type="bearer")


@router.post("/logout")
def logout(response: Response) -> dict[str, str]:
    """Log out by clearing the cookie."""
    response.delete_cookie(key=ACCESS_TOKEN_COOKIE)
    return {"status": "success"}


@router.get("/verify")
def verify(
    request: Request,
    token: str | None = Depends(oauth2_scheme),
    rules: Rules = Depends(get_rules),
) -> dict[str, Any]:
    """Report whether the caller holds a valid admin token."""
    token = extract_token(request, token)
    payload = (
        decode_access_token(token, algorithm=rules.auth.algorithm) if token else None
    )
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail={"authenticated": False},
        )

    return {
        "authenticated": True,
        "user": {"username": payload.get("sub"), "role": payload.get("role")},
    }
