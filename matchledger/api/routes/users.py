"""Profile routes: display names and profile reset."""
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status

from matchledger.core.auth import get_current_address
from matchledger.core.dependencies import get_stats_service, get_user_service
from matchledger.models import UserRecord
from matchledger.models.schemas import ProfileResponse, UpdateProfileRequest
from matchledger.services import ProfileValidationError, StatsService, UserService

router = APIRouter(prefix="/users", tags=["users"])


async def _profile(address: str, users: UserService, stats: StatsService) -> ProfileResponse:
    user = await users.get_user(address)
    return ProfileResponse(
        wallet_address=address,
        display_name=await users.display_name(address),
        created_at=user.created_at if user else None,
        stats=await stats.get_stats(address),
    )


@router.get("", response_model=List[UserRecord])
async def list_users(users: UserService = Depends(get_user_service)):
    """All registered players (used to pick an opponent)."""
    return await users.list_users()


@router.get("/me", response_model=ProfileResponse)
async def get_my_profile(
    address: str = Depends(get_current_address),
    users: UserService = Depends(get_user_service),
    stats: StatsService = Depends(get_stats_service),
):
    return await _profile(address, users, stats)


@router.put("/me", response_model=UserRecord)
async def update_my_profile(
    body: UpdateProfileRequest,
    address: str = Depends(get_current_address),
    users: UserService = Depends(get_user_service),
):
    try:
        return await users.update_display_name(address, body.display_name)
    except ProfileValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.delete("/me", response_model=UserRecord)
async def reset_my_profile(
    address: str = Depends(get_current_address),
    users: UserService = Depends(get_user_service),
):
    """Delete the profile and recreate it with the default display name."""
    if not await users.delete_profile(address):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return await users.get_user(address)


@router.get("/{address}", response_model=ProfileResponse)
async def get_profile(
    address: str,
    users: UserService = Depends(get_user_service),
    stats: StatsService = Depends(get_stats_service),
):
    if await users.get_user(address) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Player not found")
    return await _profile(address, users, stats)
