"""
Flow Puzzle - Unique Level Search

Generate -> validate -> fingerprint, repeated until a valid level the player
has not seen turns up or the attempt bound is reached. The search is a
resumable step machine: every step() is one attempt and the host decides
when the next one runs.

    START -> (GENERATE -> VALIDATE -> CHECK_UNIQUE)* -> ACCEPTED | EXHAUSTED

Exhaustion is not an error: the last candidate is handed back with a warning.
"""

import logging
import time
from typing import Callable, FrozenSet, Iterable, Iterator, NamedTuple, Optional

from fastapi.concurrency import run_in_threadpool

from .errors import ParameterError
from .fingerprint import SeenSet, fingerprint, is_known, record_seen
from .generator import DEFAULT_PALETTE_SIZE, GenerationResult, check_parameters, generate_level
from .puzzle import Puzzle
from .validator import validate_level


logger = logging.getLogger(__name__)


# ============================================
# CONSTANTS
# ============================================

INTERACTIVE_MAX_ATTEMPTS = 30
BULK_MAX_ATTEMPTS = 200

START = "start"
RUNNING = "running"
ACCEPTED = "accepted"
EXHAUSTED = "exhausted"

WARNING_NOT_UNIQUE = "Level may not be unique"
WARNING_INVALID = "Generated level may have issues. Consider regenerating."
WARNING_FALLBACK = "Fallback algorithm used"

Generator = Callable[..., GenerationResult]


class UniqueGenerationResult(NamedTuple):
    puzzle: Puzzle
    fingerprint: str
    is_unique: bool
    attempts_used: int
    used_fallback: bool
    warning: Optional[str]
    validation_error: Optional[str]
    seen: FrozenSet[str]


# ============================================
# STEP MACHINE
# ============================================

class UniqueLevelSearch:
    """One uniqueness-seeking generation request."""

    def __init__(
        self,
        width: int,
        height: int,
        min_colors: int,
        max_colors: int,
        palette_size: Optional[int] = None,
        seen: Iterable[str] = frozenset(),
        max_attempts: int = INTERACTIVE_MAX_ATTEMPTS,
        seed: Optional[int] = None,
        attempt_budget: Optional[int] = None,
        generator: Generator = generate_level,
    ):
        if max_attempts < 1:
            raise ParameterError(f"max_attempts must be at least 1, got {max_attempts}")
        check_parameters(
            width, height, min_colors, max_colors,
            DEFAULT_PALETTE_SIZE if palette_size is None else palette_size,
        )

        self.width = width
        self.height = height
        self.min_colors = min_colors
        self.max_colors = max_colors
        self.palette_size = palette_size
        self.seen: SeenSet = frozenset(seen)
        self.max_attempts = max_attempts
        self.seed = seed
        self.attempt_budget = attempt_budget
        self.generator = generator

        self.state = START
        self.attempts = 0
        self._last: Optional[GenerationResult] = None
        self._last_error: Optional[str] = None
        self._result: Optional[UniqueGenerationResult] = None

    @property
    def done(self) -> bool:
        return self.state in (ACCEPTED, EXHAUSTED)

    @property
    def result(self) -> Optional[UniqueGenerationResult]:
        return self._result

    def _seed_for(self, attempt: int) -> Optional[int]:
        if self.seed is None:
            return None
        return self.seed + attempt

    def step(self) -> str:
        """Runs one attempt and returns the new state."""
        if self.done:
            return self.state

        self.state = RUNNING
        generated = self.generator(
            self.width,
            self.height,
            self.min_colors,
            self.max_colors,
            palette_size=self.palette_size,
            seed=self._seed_for(self.attempts),
            attempt_budget=self.attempt_budget,
        )
        self.attempts += 1
        self._last = generated

        validation = validate_level(generated.puzzle)
        if not validation["valid"]:
            self._last_error = validation["error"]
            logger.debug("[Unique] attempt %d invalid: %s", self.attempts, validation["error"])
        else:
            self._last_error = None
            fp = fingerprint(generated.puzzle)
            if not is_known(fp, self.seen):
                self._accept(generated, fp)
                return self.state
            logger.debug("[Unique] attempt %d duplicate %s", self.attempts, fp)

        if self.attempts >= self.max_attempts:
            self.give_up()
        return self.state

    def give_up(self) -> None:
        """Ends the search with the last candidate (time limit or attempt bound)."""
        if self.done or self._last is None:
            return
        last = self._last
        self.state = EXHAUSTED
        self._result = UniqueGenerationResult(
            puzzle=last.puzzle,
            fingerprint=fingerprint(last.puzzle),
            is_unique=False,
            attempts_used=self.attempts,
            used_fallback=last.used_fallback,
            warning=WARNING_INVALID if self._last_error else WARNING_NOT_UNIQUE,
            validation_error=self._last_error,
            seen=self.seen,
        )
        logger.warning(
            "[Unique] %dx%d exhausted after %d attempts (%s)",
            self.width, self.height, self.attempts, self._last_error or "duplicates only",
        )

    def _accept(self, generated: GenerationResult, fp: str) -> None:
        self.state = ACCEPTED
        self._result = UniqueGenerationResult(
            puzzle=generated.puzzle,
            fingerprint=fp,
            is_unique=True,
            attempts_used=self.attempts,
            used_fallback=generated.used_fallback,
            warning=WARNING_FALLBACK if generated.used_fallback else None,
            validation_error=None,
            seen=record_seen(fp, self.seen),
        )
        logger.info("[Unique] %dx%d accepted %s after %d attempts", self.width, self.height, fp, self.attempts)

    def __iter__(self) -> Iterator[str]:
        """Yields after every attempt until the search is over."""
        while not self.done:
            yield self.step()


# ============================================
# DRIVERS
# ============================================

def generate_unique(
    width: int,
    height: int,
    min_colors: int,
    max_colors: int,
    palette_size: Optional[int] = None,
    seen: Iterable[str] = frozenset(),
    max_attempts: int = INTERACTIVE_MAX_ATTEMPTS,
    seed: Optional[int] = None,
    attempt_budget: Optional[int] = None,
    yield_fn: Optional[Callable[[], None]] = None,
    time_limit: Optional[float] = None,
    generator: Generator = generate_level,
) -> UniqueGenerationResult:
    """
    Runs a search to completion, calling yield_fn between attempts.

    time_limit (seconds) is checked between attempts; when it passes, the
    search ends as exhausted.
    """
    search = UniqueLevelSearch(
        width, height, min_colors, max_colors, palette_size,
        seen, max_attempts, seed, attempt_budget, generator,
    )
    deadline = time.monotonic() + time_limit if time_limit else None

    for _ in search:
        if search.done:
            break
        if deadline is not None and time.monotonic() >= deadline:
            search.give_up()
            break
        if yield_fn is not None:
            yield_fn()

    return search.result


async def generate_unique_async(
    width: int,
    height: int,
    min_colors: int,
    max_colors: int,
    palette_size: Optional[int] = None,
    seen: Iterable[str] = frozenset(),
    max_attempts: int = INTERACTIVE_MAX_ATTEMPTS,
    seed: Optional[int] = None,
    attempt_budget: Optional[int] = None,
    time_limit: Optional[float] = None,
    generator: Generator = generate_level,
) -> UniqueGenerationResult:
    """
    Same as generate_unique for async hosts. Each attempt runs in the
    threadpool, so the event loop keeps serving other requests meanwhile.
    """
    search = UniqueLevelSearch(
        width, height, min_colors, max_colors, palette_size,
        seen, max_attempts, seed, attempt_budget, generator,
    )
    deadline = time.monotonic() + time_limit if time_limit else None

    while not search.done:
        await run_in_threadpool(search.step)
        if search.done:
            break
        if deadline is not None and time.monotonic() >= deadline:
            search.give_up()
            break

    return search.result
