from typing import Optional
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from formbuilder.config import settings
from formbuilder.database import get_db
from formbuilder.data_access import fetch_maybe_single
from formbuilder.errors import LoginRequired
from formbuilder.models.user import AdminUser
from formbuilder.utils.security import decode_access_token


def _token_from_request(request: Request) -> Optional[str]:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if token:
        return token
    header = request.headers.get("Authorization", "")
    scheme, _, credentials = header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials
    return None


def get_session_user(request: Request, db: Session = Depends(get_db)) -> Optional[AdminUser]:
    """The signed-in admin, or None. Never raises for a missing or bad session."""
    token = _token_from_request(request)
    if not token:
        return None

    payload = decode_access_token(token)
    if payload is None or not payload.get("sub"):
        return None

    user = fetch_maybe_single(db, AdminUser, AdminUser.email == payload["sub"])
    if user is None or not user.is_active:
        return None
    return user


def require_admin_page(request: Request, user: Optional[AdminUser] = Depends(get_session_user)) -> AdminUser:
    """Guard for /admin routes: anonymous requests are sent to the login page"""
    if user is None:
        path = request.url.path
        if request.url.query:
            path = f"{path}?{request.url.query}"
        raise LoginRequired(path)
    return user


def get_current_admin(user: Optional[AdminUser] = Depends(get_session_user)) -> AdminUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user
