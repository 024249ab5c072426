from __future__ import annotations

from datetime import timedelta
from urllib.parse import urlencode

import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import JSONResponse, RedirectResponse
from jose import JWTError

from core.config import settings
from db.database import get_repository
from models.user import User
from repositories.base import BaseRepository
from schemas.auth import MessageResponse, TokenVerifyRequest, TokenVerifyResponse, UserDisplay
from services.google_oauth import (
    GoogleOAuthClient,
    GoogleOAuthError,
    get_google_client,
    new_state,
    upsert_google_user,
)
from services.security import (
    create_access_token,
    create_user_token,
    decode_access_token,
    get_current_user,
    user_from_token,
)


router = APIRouter(prefix="/auth", tags=["auth"])
logger = logging.getLogger(__name__)

STATE_COOKIE = "oauth_state"
STATE_TTL = timedelta(minutes=10)


def _frontend_redirect(**params: str) -> RedirectResponse:
    return RedirectResponse(f"{settings.frontend_url}/auth/callback?{urlencode(params)}")


@router.get("/google")
async def google_login(google: GoogleOAuthClient = Depends(get_google_client)) -> RedirectResponse:
    if not google.configured:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Google login is not configured")
    state = new_state()
    response = RedirectResponse(google.authorization_url(state))
    # The state travels in a signed, short-lived cookie and must come back unchanged
    signed_state = create_access_token({"state": state}, expires_delta=STATE_TTL)
    response.set_cookie(
        STATE_COOKIE,
        signed_state,
        max_age=int(STATE_TTL.total_seconds()),
        httponly=True,
        secure=settings.is_production,
        samesite="lax",
    )
    return response


def _state_matches(request: Request, state: str | None) -> bool:
    cookie = request.cookies.get(STATE_COOKIE)
    if not cookie or not state:
        return False
    try:
        return decode_access_token(cookie).get("state") == state
    except JWTError:
        return False


@router.get("/google/callback")
async def google_callback(
    request: Request,
    code: str | None = None,
    state: str | None = None,
    error: str | None = None,
    google: GoogleOAuthClient = Depends(get_google_client),
    repo: BaseRepository = Depends(get_repository),
) -> RedirectResponse:
    if error:
        logger.warning("oauth.google_error", extra={"error": error})
        response = _frontend_redirect(error=f"google_{error}")
    elif not code:
        response = _frontend_redirect(error="no_code")
    elif not _state_matches(request, state):
        logger.warning("oauth.invalid_state")
        response = _frontend_redirect(error="invalid_state")
    else:
        try:
            tokens = await run_in_threadpool(google.exchange_code, code)
            profile = await run_in_threadpool(google.fetch_profile, tokens["access_token"])
            user = await upsert_google_user(repo, profile)
            token = create_user_token(user)
            logger.info("oauth.login_success", extra={"email": user.email, "role": user.role.value})
            response = _frontend_redirect(token=token)
        except GoogleOAuthError as exc:
            logger.error("oauth.callback_failed", extra={"reason": exc.reason})
            response = _frontend_redirect(error=exc.reason)
        except Exception:
            logger.exception("oauth.callback_error")
            response = _frontend_redirect(error="auth_failed")
    response.delete_cookie(STATE_COOKIE)
    return response


@router.get("/me", response_model=UserDisplay)
async def read_me(current_user: User = Depends(get_current_user)) -> UserDisplay:
    return UserDisplay.from_user(current_user)


@router.post("/logout", response_model=MessageResponse)
async def logout() -> MessageResponse:
    # Tokens are stateless; the client discards its copy
    return MessageResponse(message="Logged out successfully")


@router.post("/verify", response_model=TokenVerifyResponse)
async def verify_token(payload: TokenVerifyRequest, repo: BaseRepository = Depends(get_repository)):
    if not payload.token:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Token is required")
    try:
        user = await user_from_token(repo, payload.token)
    except JWTError:
        return JSONResponse(status_code=status.HTTP_401_UNAUTHORIZED, content={"valid": False, "message": "Invalid token"})
    if user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return TokenVerifyResponse(valid=True, user=UserDisplay.from_user(user))
