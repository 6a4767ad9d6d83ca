"""
Authentication endpoints for the auth service.
Implements signup, signin, signout and email verification.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Request, status
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from ..container.container import Container
from ..schemas.auth_schemas import (
    ClaimsResponse,
    ErrorResponse,
    MessageResponse,
    SigninResponse,
    SignupResponse,
    UserResponse,
)
from ..services.auth.token_service import TokenClaims
from ..services.auth_service import AuthService
from .deps import (
    get_auth_service,
    get_bearer_token,
    get_client_info,
    get_container,
    get_current_claims,
    get_db,
)

logger = structlog.get_logger()
router = APIRouter(prefix="/auth", tags=["authentication"])


@router.post(
    "/signup",
    response_model=SignupResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
async def signup(
    request: Request,
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """
    Register a new account.

    - **email**: Email address, must be unique
    - **password**: 8 to 72 characters
    - **username**: Optional display name
    - **confirmPassword**: Optional, must equal password

    A verification email is sent on success; if that fails the account is
    still created and verificationStatus is "failed".
    """
    client_info = await get_client_info(request)
    result = await auth_service.signup(db, payload)

    logger.info(
        "Signup completed",
        user_id=result.user.id,
        verification_status=result.verification_status,
        ip_address=client_info["ip_address"],
    )
    return SignupResponse(
        message=result.message,
        user=UserResponse.model_validate(result.user),
        verification_status=result.verification_status,
    )


@router.post(
    "/signin",
    response_model=SigninResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
    },
)
async def signin(
    payload: Dict[str, Any] = Body(...),
    db: AsyncSession = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Check credentials and return a bearer token valid for 24 hours."""
    result = await auth_service.signin(db, payload)
    return SigninResponse(
        message="signed in successfully",
        user_id=result.user_id,
        token=result.token,
    )


@router.post("/signout", status_code=status.HTTP_303_SEE_OTHER)
async def signout(
    token: Optional[str] = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
    container: Container = Depends(get_container),
):
    """
    Sign out and redirect.

    Tokens are stateless; the client must discard its token.
    """
    await auth_service.signout(token)
    return RedirectResponse(
        url=container.settings.SIGNOUT_REDIRECT_URL,
        status_code=status.HTTP_303_SEE_OTHER,
    )


@router.post(
    "/verification",
    response_model=MessageResponse,
    responses={
        401: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
        504: {"model": ErrorResponse},
    },
)
async def send_verification(
    claims: TokenClaims = Depends(get_current_claims),
    db: AsyncSession = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Email a fresh verification link to the signed-in user."""
    await auth_service.send_verification_email(db, claims.user_id)
    return MessageResponse(message="verification email sent", user_id=claims.user_id)


@router.get(
    "/verify/{user_id}/{unique_string}",
    response_model=MessageResponse,
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        409: {"model": ErrorResponse},
        410: {"model": ErrorResponse},
    },
)
async def verify_email(
    user_id: int,
    unique_string: str,
    db: AsyncSession = Depends(get_db),
    auth_service: AuthService = Depends(get_auth_service),
):
    """Consume the link sent by email."""
    user = await auth_service.verify_email(db, user_id, unique_string)
    return MessageResponse(message="email verified successfully", user_id=user.id)


@router.get(
    "/me",
    response_model=ClaimsResponse,
    responses={401: {"model": ErrorResponse}},
)
async def me(claims: TokenClaims = Depends(get_current_claims)):
    """Claims carried by the caller's token."""
    return ClaimsResponse(
        message="token is valid",
        user_id=claims.user_id,
        permissions=claims.permissions,
        expires_at=claims.expires_at,
    )
