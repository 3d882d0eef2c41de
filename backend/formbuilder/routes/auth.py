from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import RedirectResponse
from sqlalchemy.orm import Session
from datetime import timedelta
from typing import Optional
import logging

from formbuilder.config import settings
from formbuilder.database import get_db
from formbuilder.data_access import fetch_maybe_single
from formbuilder.deps import get_current_admin, get_session_user
from formbuilder.models.user import AdminUser
from formbuilder.schemas.auth import AdminUserResponse, LoginRequest
from formbuilder.utils.security import create_access_token, verify_password

logger = logging.getLogger(__name__)

router = APIRouter()
login_router = APIRouter()


def safe_redirect_target(target: Optional[str]) -> str:
    """Only same-site absolute paths are honoured; anything else lands on the admin home"""
    if not target or not target.startswith("/") or target.startswith("//") or "\\" in target:
        return settings.ADMIN_LANDING_PATH
    return target


@router.post("/login", response_model=dict)
def login(credentials: LoginRequest, response: Response, redirect: Optional[str] = None,
          db: Session = Depends(get_db)):
    """Login - sets the session cookie and returns the token"""
    user = fetch_maybe_single(db, AdminUser, AdminUser.email == credentials.email.lower())
    if not user or not verify_password(credentials.password, user.hashed_password):
        logger.info("Rejected admin login")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Incorrect email or password",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="User account is inactive"
        )

    expires = timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
    access_token = create_access_token(data={"sub": user.email}, expires_delta=expires)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=access_token,
        max_age=int(expires.total_seconds()),
        httponly=True,
        secure=settings.COOKIE_SECURE,
        samesite="lax",
    )
    logger.info(f"Admin {user.id} signed in")

    return {
        "access_token": access_token,
        "token_type": "bearer",
        "user": AdminUserResponse.model_validate(user).model_dump(),
        "redirect": safe_redirect_target(redirect),
    }


@router.post("/logout")
def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return {"success": True}


@router.get("/me", response_model=AdminUserResponse)
def me(user: AdminUser = Depends(get_current_admin)):
    return user


@login_router.get("/login")
def login_page(redirect: Optional[str] = None, user: Optional[AdminUser] = Depends(get_session_user)):
    """Signed-in admins visiting the login page are sent on to where they were going"""
    if user is not None:
        return RedirectResponse(safe_redirect_target(redirect), status_code=status.HTTP_303_SEE_OTHER)
    return {
        "login_required": True,
        "redirect": safe_redirect_target(redirect),
    }
