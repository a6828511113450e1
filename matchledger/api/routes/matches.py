"""
Match routes.

Listings never include deleted matches. ``DELETE /matches/{id}`` always
reports success; ``removed_remotely`` tells whether the backend row is gone
or only hidden locally.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status

from matchledger.core.auth import get_current_address
from matchledger.core.dependencies import get_match_service
from matchledger.models import MatchRecord
from matchledger.models.schemas import (
    CreateMatchRequest,
    DeclareWinnerRequest,
    DeclareWinnerResponse,
    DeletionResponse,
)
from matchledger.services import MatchService, MatchValidationError

router = APIRouter(prefix="/matches", tags=["matches"])


@router.post("", response_model=MatchRecord, status_code=status.HTTP_201_CREATED)
async def create_match(
    body: CreateMatchRequest,
    address: str = Depends(get_current_address),
    matches: MatchService = Depends(get_match_service),
):
    """Record a match with the caller as player 1."""
    try:
        return await matches.create_match(
            player1=address,
            opponent=body.opponent,
            player1_score=body.player_score,
            player2_score=body.opponent_score,
            player1_team=body.player_team,
            player2_team=body.opponent_team,
        )
    except MatchValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("", response_model=List[MatchRecord])
async def list_matches(
    limit: Optional[int] = Query(None, ge=1, le=1000),
    matches: MatchService = Depends(get_match_service),
):
    return await matches.list_matches(limit)


@router.get("/mine", response_model=List[MatchRecord])
async def list_my_matches(
    address: str = Depends(get_current_address),
    matches: MatchService = Depends(get_match_service),
):
    return await matches.list_matches_for_player(address)


@router.get("/player/{address}", response_model=List[MatchRecord])
async def list_player_matches(
    address: str,
    limit: Optional[int] = Query(None, ge=1, le=1000),
    matches: MatchService = Depends(get_match_service),
):
    return await matches.list_matches_for_player(address, limit)


@router.get("/{match_id}", response_model=MatchRecord)
async def get_match(match_id: int, matches: MatchService = Depends(get_match_service)):
    match = await matches.get_match(match_id)
    if match is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")
    return match


@router.post("/{match_id}/winner", response_model=DeclareWinnerResponse)
async def declare_winner(
    match_id: int,
    body: DeclareWinnerRequest,
    address: str = Depends(get_current_address),
    matches: MatchService = Depends(get_match_service),
):
    try:
        result = await matches.declare_winner(match_id, body.winner, viewer=address)
    except MatchValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if result is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Match not found")
    match, outcome = result
    return DeclareWinnerResponse(match=match, outcome=outcome)


@router.delete("/{match_id}", response_model=DeletionResponse)
async def delete_match(
    match_id: int,
    address: str = Depends(get_current_address),
    matches: MatchService = Depends(get_match_service),
):
    outcome = await matches.delete_match(match_id)
    return DeletionResponse(
        match_id=outcome.match_id,
        deleted=outcome.deleted,
        found=outcome.found,
        removed_remotely=outcome.removed_remotely,
    )
