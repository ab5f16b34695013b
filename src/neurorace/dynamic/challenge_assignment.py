"""Per-round challenge assignment.

Every player owes a fixed number of rounds of each challenge (the quota
table).  Rounds are filled greedily in order: the acting player's types with
quota left are the candidates, the previous round's type is dropped when
something else is available, and one survivor is picked uniformly.  The
candidate set is never empty because a player only acts while they still
have rounds left, and their remaining quota always adds up to exactly that.
"""

from __future__ import annotations

import logging
import random
from collections.abc import Mapping, Sequence

from ..core.models import DEFAULT_QUOTAS, ChallengeType, Player

__all__ = [
    "assign_challenge_types",
    "remaining_candidates",
    "scale_quotas",
    "validate_quotas",
]

logger = logging.getLogger(__name__)


def validate_quotas(quotas: Mapping[ChallengeType, int], rounds_per_player: int) -> None:
    """Raise ``ValueError`` unless ``quotas`` covers every challenge and sums to ``rounds_per_player``."""

    missing = [challenge.value for challenge in ChallengeType if challenge not in quotas]
    if missing:
        raise ValueError(f"quota table missing challenge types: {', '.join(missing)}")
    negative = [challenge.value for challenge, count in quotas.items() if count < 0]
    if negative:
        raise ValueError(f"quota counts must be non-negative: {', '.join(negative)}")
    total = sum(quotas[challenge] for challenge in ChallengeType)
    if total != rounds_per_player:
        raise ValueError(f"quota table sums to {total} per player, expected {rounds_per_player}")


def scale_quotas(
    rounds_per_player: int,
    base: Mapping[ChallengeType, int] = DEFAULT_QUOTAS,
) -> dict[ChallengeType, int]:
    """Spread ``rounds_per_player`` over the challenge types in proportion to ``base``.

    Leftover rounds go to the largest remainders, earlier types first on ties.
    When the totals already match, the counts of ``base`` come back unchanged.
    """

    if rounds_per_player < 0:
        raise ValueError("rounds_per_player must be non-negative")
    total = sum(base.get(challenge, 0) for challenge in ChallengeType)
    if total <= 0:
        raise ValueError("base quota table is empty")
    exact = {challenge: base.get(challenge, 0) * rounds_per_player / total for challenge in ChallengeType}
    scaled = {challenge: int(share) for challenge, share in exact.items()}
    leftover = rounds_per_player - sum(scaled.values())
    by_remainder = sorted(
        enumerate(ChallengeType),
        key=lambda item: (-(exact[item[1]] - scaled[item[1]]), item[0]),
    )
    for _, challenge in by_remainder[:leftover]:
        scaled[challenge] += 1
    return scaled


def remaining_candidates(
    counts: Mapping[ChallengeType, int],
    quotas: Mapping[ChallengeType, int],
) -> list[ChallengeType]:
    """Challenge types still under quota, in declaration order."""

    return [challenge for challenge in ChallengeType if counts.get(challenge, 0) < quotas[challenge]]


def assign_challenge_types(
    turn_order: Sequence[Player],
    rng: random.Random,
    *,
    quotas: Mapping[ChallengeType, int] = DEFAULT_QUOTAS,
) -> tuple[ChallengeType, ...]:
    """Return one challenge type per round of ``turn_order``."""

    per_player = {player: sum(1 for p in turn_order if p == player) for player in Player}
    if per_player[Player.ONE] != per_player[Player.TWO]:
        raise ValueError("turn order must give both players the same number of rounds")
    validate_quotas(quotas, per_player[Player.ONE])

    counts: dict[Player, dict[ChallengeType, int]] = {
        player: {challenge: 0 for challenge in ChallengeType} for player in Player
    }
    assigned: list[ChallengeType] = []
    forced_repeats = 0

    for round_index, player in enumerate(turn_order):
        player_counts = counts[Player(player)]
        candidates = remaining_candidates(player_counts, quotas)
        if not candidates:
            # Unreachable with a validated quota table.
            raise RuntimeError(f"no challenge left for player {int(player)} at round {round_index + 1}")
        previous = assigned[-1] if assigned else None
        options = [challenge for challenge in candidates if challenge != previous] or candidates
        if previous is not None and options == [previous]:
            forced_repeats += 1
        chosen = rng.choice(options)
        assigned.append(chosen)
        player_counts[chosen] += 1

    logger.debug(
        "Challenge types assigned",
        extra={"rounds": len(assigned), "forced_repeats": forced_repeats},
    )
    return tuple(assigned)
