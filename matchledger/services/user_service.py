"""Player profiles keyed by wallet address."""
from datetime import datetime, timezone
from typing import List, Optional

from matchledger.core.logging import get_logger
from matchledger.models import UserRecord, default_display_name
from matchledger.storage import LeagueStore

logger = get_logger(__name__)


class ProfileValidationError(ValueError):
    """A profile update that cannot be saved."""


class UserService:
    def __init__(self, store: LeagueStore):
        self.store = store

    async def get_user(self, wallet_address: str) -> Optional[UserRecord]:
        return await self.store.get_user(wallet_address)

    async def list_users(self) -> List[UserRecord]:
        return await self.store.list_users()

    async def save_user(self, user: UserRecord) -> UserRecord:
        """Upsert a profile, keeping the original ``created_at`` when one exists."""
        if user.created_at is None:
            existing = await self.store.get_user(user.wallet_address)
            created_at = existing.created_at if existing else None
            user = user.model_copy(update={
                "created_at": created_at or datetime.now(timezone.utc)
            })
        return await self.store.save_user(user)

    async def ensure_user(self, wallet_address: str) -> UserRecord:
        """Create a profile with the default display name on first sign-in."""
        existing = await self.store.get_user(wallet_address)
        if existing is not None:
            return existing
        logger.info(f"Creating profile for {wallet_address}")
        return await self.save_user(UserRecord(
            wallet_address=wallet_address,
            display_name=default_display_name(wallet_address),
        ))

    async def update_display_name(self, wallet_address: str, display_name: str) -> UserRecord:
        display_name = (display_name or "").strip()
        if not display_name:
            raise ProfileValidationError("Display name cannot be empty")

        existing = await self.store.get_user(wallet_address)
        if existing is not None:
            user = existing.model_copy(update={"display_name": display_name})
        else:
            user = UserRecord(wallet_address=wallet_address, display_name=display_name)
        saved = await self.save_user(user)
        logger.info(f"Updated display name for {wallet_address}")
        return saved

    async def delete_profile(self, wallet_address: str) -> bool:
        """
        Reset a profile to its defaults.

        The row is deleted and immediately recreated with the default
        display name. Returns ``False`` when there was no profile.
        """
        if await self.store.get_user(wallet_address) is None:
            return False
        await self.store.delete_user(wallet_address)
        await self.store.save_user(UserRecord(
            wallet_address=wallet_address,
            display_name=default_display_name(wallet_address),
            created_at=datetime.now(timezone.utc),
        ))
        logger.info(f"Reset profile for {wallet_address}")
        return True

    async def display_name(self, wallet_address: str) -> str:
        user = await self.store.get_user(wallet_address)
        if user and user.display_name:
            return user.display_name
        return default_display_name(wallet_address)
