"""
Flow Puzzle - Pydantic Schemas

All request/response schemas in one file.
"""

from typing import Optional, List, Dict
from pydantic import BaseModel, Field

from .services.puzzle import Puzzle


MIN_GRID_SIZE = 3
MAX_GRID_SIZE = 40


# ============================================
# LEVEL
# ============================================

class AnchorSchema(BaseModel):
    color_id: int = Field(..., ge=0)
    type: str = "endpoint"


class SolvedPathSchema(BaseModel):
    color_id: int = Field(..., ge=0)
    path: List[int]


class PuzzleSchema(BaseModel):
    """A level as exchanged with clients. Anchor keys are cell indices."""
    width: int = Field(..., ge=1)
    height: int = Field(..., ge=1)
    difficulty: int = Field(..., ge=0)
    anchors: Dict[int, AnchorSchema]
    solved_paths: List[SolvedPathSchema] = []

    def to_puzzle(self) -> Puzzle:
        return Puzzle.from_dict(self.model_dump())


# ============================================
# GENERATION
# ============================================

class GenerateRequest(BaseModel):
    """Color range defaults to the grid-size heuristic when omitted."""
    width: int = Field(..., ge=MIN_GRID_SIZE, le=MAX_GRID_SIZE)
    height: int = Field(..., ge=MIN_GRID_SIZE, le=MAX_GRID_SIZE)
    min_colors: Optional[int] = None
    max_colors: Optional[int] = None
    palette_size: Optional[int] = None
    seed: Optional[int] = None


class ValidationResult(BaseModel):
    valid: bool
    rule: Optional[str] = None
    error: Optional[str] = None


class GenerateResponse(BaseModel):
    puzzle: PuzzleSchema
    used_fallback: bool
    min_moves: int
    fingerprint: str
    validation: ValidationResult


class GenerateUniqueRequest(GenerateRequest):
    seen_fingerprints: List[str] = []
    player_id: Optional[str] = Field(None, min_length=1, max_length=64)
    max_attempts: Optional[int] = None


class GenerateUniqueResponse(BaseModel):
    puzzle: PuzzleSchema
    fingerprint: str
    is_unique: bool
    attempts_used: int
    used_fallback: bool
    min_moves: int
    warning: Optional[str] = None
    validation_error: Optional[str] = None


# ============================================
# CHECKS
# ============================================

class PuzzleRequest(BaseModel):
    puzzle: PuzzleSchema


class FingerprintRequest(PuzzleRequest):
    seen_fingerprints: List[str] = []


class FingerprintResponse(BaseModel):
    fingerprint: str
    known: bool


class PlayerPathsRequest(PuzzleRequest):
    """player_paths: color_id -> drawn cells, anchor to anchor."""
    player_paths: Dict[int, List[int]] = {}


class CompletionResponse(BaseModel):
    complete: bool
    error: Optional[str] = None


class HintResponse(BaseModel):
    """color_id is None when every color already matches the solution."""
    color_id: Optional[int] = None
    path: List[int] = []


# ============================================
# DAILY
# ============================================

class DailyResponse(BaseModel):
    date: str
    seed: int
    fingerprint: str
    min_moves: int
    puzzle: PuzzleSchema


# ============================================
# PLAYERS
# ============================================

class SeenMergeRequest(BaseModel):
    fingerprints: List[str]


class SeenResponse(BaseModel):
    player_id: str
    fingerprints: List[str]
    count: int
