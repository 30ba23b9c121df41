"""
Flow Puzzle - Database Models

Per-player record of the levels already served.
"""

from datetime import datetime
from sqlalchemy import Column, Integer, String, DateTime, UniqueConstraint

from .database import Base


# ============================================
# SEEN FINGERPRINTS
# ============================================

class SeenFingerprint(Base):
    """One level fingerprint a player has been served. Rows are never deleted."""

    __tablename__ = "seen_fingerprints"
    __table_args__ = (
        UniqueConstraint("player_id", "fingerprint", name="uq_seen_fingerprints_player_fp"),
    )

    id = Column(Integer, primary_key=True, index=True)
    player_id = Column(String(64), nullable=False, index=True)
    fingerprint = Column(String(64), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow)
