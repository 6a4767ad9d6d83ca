"""
Dependency injection for FastAPI endpoints.
Provides the container, database sessions, services and bearer claims.
"""
from typing import Any, AsyncIterator, Dict, Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from ..container.container import Container
from ..core.exceptions import TokenMalformedError
from ..services.auth.token_service import TokenClaims
from ..services.auth_service import AuthService

# auto_error=False so a missing header goes through our own error table
security = HTTPBearer(auto_error=False)


def get_container(request: Request) -> Container:
    return request.app.state.container


async def get_db(container: Container = Depends(get_container)) -> AsyncIterator[AsyncSession]:
    """Database session for one request."""
    async with container.database.session() as session:
        yield session


def get_auth_service(container: Container = Depends(get_container)) -> AuthService:
    return container.auth_service


def get_bearer_token(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[str]:
    if credentials is None:
        return None
    return credentials.credentials


def get_current_claims(
    token: Optional[str] = Depends(get_bearer_token),
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenClaims:
    """
    Claims of the caller's session token.

    Raises:
        TokenError: Missing, malformed, expired or wrongly signed token
    """
    if not token:
        raise TokenMalformedError("missing bearer token")
    return auth_service.authenticate_token(token)


async def get_client_info(request: Request) -> Dict[str, Any]:
    """
    Extract client information from request.

    Args:
        request: FastAPI request object

    Returns:
        Dictionary with client information
    """
    return {
        "ip_address": getattr(request.state, "client_ip", None) or (
            request.client.host if request.client else None
        ),
        "user_agent": request.headers.get("User-Agent"),
        "request_id": getattr(request.state, "request_id", None),
    }
