from __future__ import annotations

from datetime import datetime, timezone

import logging
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.concurrency import run_in_threadpool

from core.config import settings
from schemas.access import AccessCodeRequest, AccessCodeResponse, AccessDiagnostic, AccessLevelsResponse
from services.access_codes import (
    ROLE_DESCRIPTIONS,
    AccessCodeManager,
    get_access_code_manager,
    permissions_for_role,
)
from services.rate_limit import AccessRateLimiter, client_ip, get_access_rate_limiter


router = APIRouter(prefix="/access", tags=["access"])
logger = logging.getLogger(__name__)


def _failure(status_code: int, message: str, **extra) -> HTTPException:
    return HTTPException(status_code=status_code, detail={"success": False, "message": message, **extra})


@router.post("/verify-access", response_model=AccessCodeResponse)
async def verify_access(
    payload: AccessCodeRequest,
    request: Request,
    codes: AccessCodeManager = Depends(get_access_code_manager),
    limiter: AccessRateLimiter = Depends(get_access_rate_limiter),
) -> AccessCodeResponse:
    ip = client_ip(request)

    if not codes.initialized:
        logger.error("access.codes_unavailable", extra={"ip": ip})
        raise _failure(status.HTTP_503_SERVICE_UNAVAILABLE, "Access code system temporarily unavailable")

    if limiter.is_limited(ip):
        retry_after = limiter.retry_after(ip)
        logger.warning("access.rate_limited", extra={"ip": ip})
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail={
                "success": False,
                "message": "Too many failed attempts. Please try again later.",
                "retryAfter": retry_after,
            },
            headers={"Retry-After": str(retry_after)},
        )

    code = payload.accessCode
    if not isinstance(code, str) or not code.strip():
        limiter.record_failure(ip)
        raise _failure(status.HTTP_400_BAD_REQUEST, "Access code is required")

    # bcrypt is CPU bound; keep it off the event loop
    role = await run_in_threadpool(codes.verify, code.strip())
    if role is None:
        limiter.record_failure(ip)
        # Never log the submitted code
        logger.warning("access.verify_failed", extra={"ip": ip})
        raise _failure(status.HTTP_401_UNAUTHORIZED, "Invalid access code")

    limiter.reset(ip)
    logger.info("access.verify_success", extra={"ip": ip, "role": role.value})
    return AccessCodeResponse(
        success=True,
        role=role.value,
        permissions=permissions_for_role(role),
        message=f"Welcome! You have {role.value} access.",
    )


@router.get("/access-levels", response_model=AccessLevelsResponse)
async def access_levels(codes: AccessCodeManager = Depends(get_access_code_manager)) -> AccessLevelsResponse:
    return AccessLevelsResponse(
        levels=codes.access_levels(),
        descriptions={role.value: text for role, text in ROLE_DESCRIPTIONS.items()},
    )


@router.get("/diagnostic", response_model=AccessDiagnostic)
async def diagnostic(codes: AccessCodeManager = Depends(get_access_code_manager)) -> AccessDiagnostic:
    if settings.is_production:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not found")
    return AccessDiagnostic(
        initialized=codes.initialized,
        environment={"ENVIRONMENT": settings.environment, **codes.diagnostic()},
        timestamp=datetime.now(timezone.utc).isoformat(),
    )
