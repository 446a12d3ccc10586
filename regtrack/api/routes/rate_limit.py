"""Rate limit endpoints for signup and verification flows."""

import structlog
from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.responses import JSONResponse

from regtrack.api.auth import verify_api_key
from regtrack.api.dependencies import get_rate_limiter
from regtrack.api.models import (
    ClearSubjectResponse,
    ErrorResponse,
    RateLimitCheckRequest,
    RateLimitCheckResponse,
)
from regtrack.ratelimit.schemas import InvalidInputError, RateLimitPersistenceError
from regtrack.ratelimit.service import RateLimiter

logger = structlog.get_logger(__name__)
router = APIRouter()


@router.post(
    "/rate-limit/check",
    response_model=RateLimitCheckResponse,
    response_model_exclude_none=True,
    responses={
        400: {"model": ErrorResponse, "description": "Unknown action or bad subject"},
        503: {"model": RateLimitCheckResponse, "description": "Window store unavailable"},
    },
    summary="Check and record an attempt",
    description=(
        "Records one attempt for (subject, action) and says whether it is "
        "allowed. Denied attempts are not recorded. Public endpoint."
    ),
)
async def check_rate_limit(
    request: RateLimitCheckRequest,
    limiter: RateLimiter = Depends(get_rate_limiter),
):
    try:
        decision = await limiter.check_and_record(request.subject, request.action)
    except InvalidInputError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except RateLimitPersistenceError:
        # Fail closed
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={
                "allowed": False,
                "message": "Rate limit service unavailable. Please try again shortly.",
            },
        )

    return RateLimitCheckResponse(
        allowed=decision.allowed,
        retry_after_minutes=decision.retry_after_minutes,
        message=decision.message,
    )


@router.delete(
    "/rate-limit/subjects/{subject}",
    response_model=ClearSubjectResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Bad subject"},
        401: {"model": ErrorResponse, "description": "Invalid API key"},
        503: {"model": ErrorResponse, "description": "Window store unavailable"},
    },
    summary="Clear a subject's rate limits",
    description="Remove every window for an IP or email across all actions.",
)
async def clear_rate_limit(
    subject: str,
    api_key: str = Depends(verify_api_key),
    limiter: RateLimiter = Depends(get_rate_limiter),
) -> ClearSubjectResponse:
    try:
        cleared = await limiter.clear_subject(subject)
    except InvalidInputError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except RateLimitPersistenceError as e:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(e))

    logger.info("Rate limits cleared", cleared=cleared)
    return ClearSubjectResponse(subject=subject, cleared=cleared)
