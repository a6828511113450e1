"""
Wallet sign-in routes.

The wallet signs a provider-issued payload; a verified signature gets a
session token stored in the HTTP-only ``jwt`` cookie.
"""
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Response, status

from matchledger.core.auth import optional_current_address
from matchledger.core.config import settings
from matchledger.core.dependencies import get_auth_client, get_user_service
from matchledger.core.logging import get_logger
from matchledger.models.schemas import PayloadRequest, LoginRequest, SessionResponse
from matchledger.services import AuthProviderError, UserService, WalletAuthClient

logger = get_logger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])


@router.post("/payload")
async def generate_payload(
    body: PayloadRequest,
    auth_client: WalletAuthClient = Depends(get_auth_client),
) -> Dict[str, Any]:
    """Login payload for the wallet to sign."""
    try:
        return await auth_client.generate_payload(body.address, body.chain_id)
    except AuthProviderError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))


@router.post("/login", response_model=SessionResponse)
async def login(
    body: LoginRequest,
    response: Response,
    auth_client: WalletAuthClient = Depends(get_auth_client),
    users: UserService = Depends(get_user_service),
):
    """Verify the signed payload, start a session and make sure a profile exists."""
    try:
        verified = await auth_client.verify_payload(body.payload, body.signature)
        if not verified.valid or not verified.address:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Signature verification failed"
            )
        token = await auth_client.issue_token(verified.payload)
    except AuthProviderError as e:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail=str(e))

    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.SESSION_COOKIE_SECURE,
        samesite="lax",
    )
    await users.ensure_user(verified.address)
    logger.info(f"Signed in {verified.address}")
    return SessionResponse(logged_in=True, address=verified.address)


@router.post("/logout", response_model=SessionResponse)
async def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return SessionResponse(logged_in=False)


@router.get("/me", response_model=SessionResponse)
async def session(address: Optional[str] = Depends(optional_current_address)):
    return SessionResponse(logged_in=address is not None, address=address)
