"""Turn order generation for the main session.

Both players get the same number of rounds.  The order is a shuffle of that
balanced multiset, rejected and reshuffled while any player would act more
than ``max_same_in_row`` times in a row.  The retry loop is bounded; once the
bound is hit we fall back to strict alternation, which always satisfies the
streak rule.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Sequence

from ..core.models import MAX_ROUNDS, MAX_SAME_IN_ROW, MAX_TURN_ORDER_ATTEMPTS, Player

__all__ = [
    "alternating_turn_order",
    "generate_turn_order",
    "is_valid_turn_order",
    "longest_streak",
]

logger = logging.getLogger(__name__)


def _check_rounds(max_rounds: int) -> None:
    if max_rounds <= 0 or max_rounds % 2:
        raise ValueError(f"max_rounds must be a positive even number, got {max_rounds}")


def longest_streak(order: Sequence[int]) -> int:
    """Return the length of the longest run of identical players."""

    longest = 0
    current: int | None = None
    run = 0
    for player in order:
        if player == current:
            run += 1
        else:
            current = player
            run = 1
        longest = max(longest, run)
    return longest


def is_valid_turn_order(
    order: Sequence[int],
    *,
    max_rounds: int = MAX_ROUNDS,
    max_same_in_row: int = MAX_SAME_IN_ROW,
) -> bool:
    """Check length, balance and the streak limit in one pass over ``order``."""

    if len(order) != max_rounds:
        return False
    half = max_rounds // 2
    if sum(1 for p in order if p == Player.ONE) != half or sum(1 for p in order if p == Player.TWO) != half:
        return False
    return longest_streak(order) <= max_same_in_row


def alternating_turn_order(max_rounds: int = MAX_ROUNDS) -> tuple[Player, ...]:
    _check_rounds(max_rounds)
    return tuple(Player.ONE if idx % 2 == 0 else Player.TWO for idx in range(max_rounds))


def generate_turn_order(
    rng: random.Random,
    *,
    max_rounds: int = MAX_ROUNDS,
    max_same_in_row: int = MAX_SAME_IN_ROW,
    max_attempts: int = MAX_TURN_ORDER_ATTEMPTS,
) -> tuple[Player, ...]:
    """Return a balanced turn order with no streak longer than ``max_same_in_row``."""

    _check_rounds(max_rounds)
    half = max_rounds // 2
    base = [Player.ONE] * half + [Player.TWO] * half

    for attempt in range(max(1, max_attempts)):
        candidate = list(base)
        rng.shuffle(candidate)
        if longest_streak(candidate) <= max_same_in_row:
            logger.debug("Turn order accepted", extra={"attempt": attempt + 1, "rounds": max_rounds})
            return tuple(candidate)

    logger.warning(
        "No valid shuffled turn order after %d attempts; using alternating order",
        max_attempts,
        extra={"rounds": max_rounds, "max_same_in_row": max_same_in_row},
    )
    return alternating_turn_order(max_rounds)
