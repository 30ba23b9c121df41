"""
Flow Puzzle - Players API

Server-side copy of a player's seen fingerprints, for clients that sync
their local history across devices.
"""

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..schemas import SeenMergeRequest, SeenResponse
from ..services import seen_store


router = APIRouter(prefix="/players", tags=["players"])


def _seen_response(player_id: str, seen) -> SeenResponse:
    fingerprints = sorted(seen)
    return SeenResponse(player_id=player_id, fingerprints=fingerprints, count=len(fingerprints))


@router.get("/{player_id}/seen", response_model=SeenResponse)
async def get_seen(player_id: str = Path(..., min_length=1, max_length=64), db: AsyncSession = Depends(get_db)):
    return _seen_response(player_id, await seen_store.load_seen(db, player_id))


@router.post("/{player_id}/seen", response_model=SeenResponse)
async def merge_seen_fingerprints(
    payload: SeenMergeRequest,
    player_id: str = Path(..., min_length=1, max_length=64),
    db: AsyncSession = Depends(get_db),
):
    """Adds the client's fingerprints; nothing is ever removed."""
    merged = await seen_store.merge_player_seen(db, player_id, payload.fingerprints)
    return _seen_response(player_id, merged)
