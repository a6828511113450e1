"""
Request authentication dependencies.

- ``get_current_address``: wallet session from the ``jwt`` cookie
- ``optional_current_address``: same, but ``None`` instead of 401
- ``validate_admin_token``: ``X-Admin-Token`` header for admin endpoints
"""
import secrets
from typing import Optional

from fastapi import Depends, HTTPException, Security, status
from fastapi.security import APIKeyHeader
from starlette.requests import Request

from matchledger.core.config import settings
from matchledger.core.dependencies import get_auth_client
from matchledger.core.logging import get_logger
from matchledger.services import AuthProviderError, WalletAuthClient

logger = get_logger(__name__)

ADMIN_TOKEN_NAME = "X-Admin-Token"

admin_token_header = APIKeyHeader(name=ADMIN_TOKEN_NAME, auto_error=False)


async def _address_from_cookie(request: Request, auth_client: WalletAuthClient) -> Optional[str]:
    token = request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        return None
    try:
        result = await auth_client.verify_token(token)
    except AuthProviderError as e:
        logger.warning(f"Session verification failed: {e}")
        return None
    if not result.valid:
        return None
    return result.address


async def get_current_address(
    request: Request,
    auth_client: WalletAuthClient = Depends(get_auth_client),
) -> str:
    """
    Wallet address of the signed-in caller.

    Raises:
        HTTPException: 401 when the session cookie is missing or invalid
    """
    address = await _address_from_cookie(request, auth_client)
    if not address:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not signed in. Connect your wallet first."
        )
    return address


async def optional_current_address(
    request: Request,
    auth_client: WalletAuthClient = Depends(get_auth_client),
) -> Optional[str]:
    return await _address_from_cookie(request, auth_client)


def validate_admin_token(request: Request, token: Optional[str] = Security(admin_token_header)) -> str:
    """
    Validate the admin token header.

    Raises:
        HTTPException: 401 when missing, 403 when wrong or admin is disabled
    """
    if not settings.ADMIN_TOKEN:
        logger.warning("ADMIN_TOKEN not configured - rejecting admin request")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin endpoints are disabled. Configure ADMIN_TOKEN."
        )

    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Admin token missing. Provide {ADMIN_TOKEN_NAME} header."
        )

    if not secrets.compare_digest(token, settings.ADMIN_TOKEN):
        logger.warning(
            f"Invalid admin token attempt from {request.client.host if request.client else 'unknown'}"
        )
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid admin token."
        )

    return token
