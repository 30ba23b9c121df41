"""
Flow Puzzle - Seen-Set Storage

Loads and extends a player's seen fingerprints in PostgreSQL. The core only
ever sees immutable snapshots; this module owns the persistence.
"""

import logging
from typing import Iterable

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import SeenFingerprint
from .fingerprint import SeenSet, merge_seen


logger = logging.getLogger(__name__)


async def load_seen(db: AsyncSession, player_id: str) -> SeenSet:
    result = await db.execute(
        select(SeenFingerprint.fingerprint).where(SeenFingerprint.player_id == player_id)
    )
    return frozenset(result.scalars().all())


async def merge_player_seen(db: AsyncSession, player_id: str, fingerprints: Iterable[str]) -> SeenSet:
    """
    Adds fingerprints to the player's stored set.

    Returns the stored set after the merge.
    """
    stored = await load_seen(db, player_id)
    missing = sorted(set(fingerprints) - stored)
    if not missing:
        return stored

    for fp in missing:
        db.add(SeenFingerprint(player_id=player_id, fingerprint=fp))

    try:
        await db.flush()
    except IntegrityError:
        # Another request stored some of them first
        await db.rollback()
        logger.info("[Seen] concurrent update for player %s, retrying", player_id)
        stored = await load_seen(db, player_id)
        for fp in sorted(set(missing) - stored):
            db.add(SeenFingerprint(player_id=player_id, fingerprint=fp))
        await db.flush()

    await db.commit()
    return merge_seen(stored, missing)


async def record_fingerprint(db: AsyncSession, player_id: str, fp: str) -> SeenSet:
    return await merge_player_seen(db, player_id, [fp])
