"""Pydantic records shared by the stores, services and API routes.

The ``*Record`` models are the rows as they travel between storage
backends and services. Request/response models for the HTTP layer live at
the bottom of the module.
"""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# Winner sentinel for a drawn match
DRAW = "draw"


def default_display_name(wallet_address: str) -> str:
    """Abbreviated wallet address, e.g. ``0x1234...abcd``."""
    return f"{wallet_address[:6]}...{wallet_address[-4:]}"


# -----------------------------
# Storage records
# -----------------------------

class UserRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    wallet_address: str
    display_name: str
    created_at: Optional[datetime] = None


class NewMatch(BaseModel):
    """A match before the backend has assigned ``id`` and ``created_at``."""

    player1: str
    player2: str
    player1_score: int = Field(ge=0)
    player2_score: int = Field(ge=0)
    player1_team: Optional[str] = None
    player2_team: Optional[str] = None


class MatchRecord(NewMatch):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    id: int
    created_at: Optional[datetime] = None
    winner: Optional[str] = None

    def involves(self, wallet_address: str) -> bool:
        return wallet_address in (self.player1, self.player2)

    def participants(self) -> List[str]:
        """Distinct participants; a self-match yields a single address."""
        if self.player1 == self.player2:
            return [self.player1]
        return [self.player1, self.player2]

    def scores_for(self, wallet_address: str) -> tuple[int, int]:
        """(own score, opponent score) from ``wallet_address``'s side."""
        if self.player1 == wallet_address:
            return self.player1_score, self.player2_score
        return self.player2_score, self.player1_score


class PlayerStatsRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True, extra="ignore")

    user_id: str
    wins: int = 0
    losses: int = 0
    draws: int = 0
    goals_for: int = 0
    goals_against: int = 0
    total_games: int = 0

    @classmethod
    def empty(cls, user_id: str) -> "PlayerStatsRecord":
        return cls(user_id=user_id)


# -----------------------------
# REST request / response models
# -----------------------------

class CreateMatchRequest(BaseModel):
    opponent: str = ""
    player_score: int = 0
    opponent_score: int = 0
    player_team: Optional[str] = None
    opponent_team: Optional[str] = None


class DeclareWinnerRequest(BaseModel):
    winner: str


class DeclareWinnerResponse(BaseModel):
    match: MatchRecord
    outcome: Optional[Literal["win", "loss", "draw"]] = None


class DeletionResponse(BaseModel):
    match_id: int
    deleted: bool
    found: bool
    removed_remotely: bool


class UpdateProfileRequest(BaseModel):
    display_name: str


class ProfileResponse(BaseModel):
    wallet_address: str
    display_name: str
    created_at: Optional[datetime] = None
    stats: PlayerStatsRecord


class LeaderboardEntry(PlayerStatsRecord):
    rank: int
    display_name: str


class PayloadRequest(BaseModel):
    address: str
    chain_id: Optional[int] = None


class LoginRequest(BaseModel):
    payload: dict
    signature: str


class SessionResponse(BaseModel):
    logged_in: bool
    address: Optional[str] = None


__all__ = [
    "DRAW",
    "default_display_name",
    "UserRecord",
    "NewMatch",
    "MatchRecord",
    "PlayerStatsRecord",
    "CreateMatchRequest",
    "DeclareWinnerRequest",
    "DeclareWinnerResponse",
    "DeletionResponse",
    "UpdateProfileRequest",
    "ProfileResponse",
    "LeaderboardEntry",
    "PayloadRequest",
    "LoginRequest",
    "SessionResponse",
]
