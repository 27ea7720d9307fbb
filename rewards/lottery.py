import logging
import math
from dataclasses import dataclass
from random import Random
from typing import Iterable, Optional, Union

from pydantic import ValidationError as PydanticValidationError

from .exceptions import InvariantViolationError, NotFoundError, ValidationError
from .models import Prize, PrizeCategory

logger = logging.getLogger(__name__)

TOTAL_WEIGHT = 100.0
WEIGHT_TOLERANCE = 1e-9
DEFAULT_TURNS = 5


@dataclass(frozen=True)
class PrizeTable:
    prizes: tuple[Prize, ...]

    def __len__(self) -> int:
        return len(self.prizes)

    def __iter__(self):
        return iter(self.prizes)

    @property
    def total_weight(self) -> float:
        return math.fsum(p.probability for p in self.prizes)

    def index_of(self, prize_id: str) -> int:
        for index, prize in enumerate(self.prizes):
            if prize.id == prize_id:
                return index
        raise NotFoundError(f"Prize {prize_id} not found")

    def get(self, prize_id: str) -> Prize:
        return self.prizes[self.index_of(prize_id)]

    def share_of(self, prize_id: str) -> float:
        return self.get(prize_id).probability / TOTAL_WEIGHT


def load_prize_table(
    prizes: Iterable[Union[Prize, dict]], normalize: bool = False
) -> PrizeTable:
    """
    Validate a prize catalog once, at session start.

    Inactive prizes are dropped. The remaining weights must sum to exactly
    100; otherwise the table is rejected, or rescaled when ``normalize`` is
    set. Points prizes must carry a numeric face value.
    """
    try:
        loaded = [p if isinstance(p, Prize) else Prize(**p) for p in prizes]
    except PydanticValidationError as e:
        raise InvariantViolationError(f"Malformed prize row: {e}") from e
    active = [p for p in loaded if p.is_active]
    if not active:
        raise InvariantViolationError("Prize table has no active prizes")

    seen: set[str] = set()
    for prize in active:
        if prize.id in seen:
            raise InvariantViolationError(f"Duplicate prize id {prize.id!r}")
        seen.add(prize.id)
        if prize.category == PrizeCategory.POINTS and prize.points_value is None:
            raise InvariantViolationError(
                f"Points prize {prize.id!r} has non-numeric value {prize.value!r}"
            )

    total = math.fsum(p.probability for p in active)
    if abs(total - TOTAL_WEIGHT) <= WEIGHT_TOLERANCE:
        return PrizeTable(prizes=tuple(active))

    if not normalize:
        raise InvariantViolationError(
            f"Prize weights sum to {total:g}, expected {TOTAL_WEIGHT:g}"
        )
    if total <= 0:
        raise InvariantViolationError("Cannot normalize a prize table with zero total weight")

    logger.warning("Normalizing prize table weights from %g to %g", total, TOTAL_WEIGHT)
    scale = TOTAL_WEIGHT / total
    rescaled = tuple(
        p.model_copy(update={"probability": p.probability * scale}) for p in active
    )
    return PrizeTable(prizes=rescaled)


def draw(table: PrizeTable, u: float) -> Prize:
    """Cumulative-weight scan: first prize whose running total reaches ``u``."""
    if not 0 <= u < TOTAL_WEIGHT:
        raise ValidationError(f"Roll {u!r} outside [0, {TOTAL_WEIGHT:g})")
    cumulative = 0.0
    last = None
    for prize in table.prizes:
        if prize.probability <= 0:
            continue
        cumulative += prize.probability
        last = prize
        if cumulative >= u:
            return prize
    # float rounding in a rescaled table
    if last is not None and TOTAL_WEIGHT - cumulative <= WEIGHT_TOLERANCE:
        return last
    # Only reachable when a table bypassed load_prize_table
    raise InvariantViolationError(
        f"Roll {u!r} exceeds total prize weight {cumulative:g}"
    )


def roll(rng: Random) -> float:
    return rng.random() * TOTAL_WEIGHT


def angle_for(
    table: PrizeTable, prize_id: str, offset: float = 0.0, turns: int = DEFAULT_TURNS
) -> float:
    """
    Wheel rotation (degrees) that lands the pointer on ``prize_id``.

    ``offset`` in [0, 1) places the pointer within the prize's segment.
    """
    if not 0 <= offset < 1:
        raise ValidationError(f"Offset {offset!r} outside [0, 1)")
    segment = 360.0 / len(table)
    index = table.index_of(prize_id)
    return 360.0 * turns + (360.0 - index * segment - offset * segment)


def landing_index(table: PrizeTable, angle: float) -> int:
    """Inverse of :func:`angle_for`: which segment sits under the pointer."""
    segment = 360.0 / len(table)
    position = (360.0 - (angle % 360.0)) % 360.0
    return int(position // segment) % len(table)


def simulate(table: PrizeTable, draws: int, rng: Optional[Random] = None) -> dict[str, int]:
    """Win counts per prize id over ``draws`` independent spins."""
    rng = rng or Random()
    counts = {p.id: 0 for p in table.prizes}
    for _ in range(draws):
        counts[draw(table, roll(rng)).id] += 1
    return counts
