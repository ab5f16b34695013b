from __future__ import annotations

import logging
import random
import secrets
from collections.abc import Mapping
from dataclasses import dataclass

from ...core import feature_flags
from ...core.models import (
    DEFAULT_QUOTAS,
    MAX_ROUNDS,
    MAX_SAME_IN_ROW,
    MAX_SESSION_ROUNDS,
    MAX_TURN_ORDER_ATTEMPTS,
    TUTORIAL_TEST_TYPES,
    TUTORIAL_TURN_ORDER,
    ChallengeType,
    Player,
)
from ...dynamic.challenge_assignment import assign_challenge_types, scale_quotas, validate_quotas
from ...dynamic.turn_order import alternating_turn_order, generate_turn_order

__all__ = [
    "TUTORIAL_SCHEDULE",
    "Schedule",
    "SessionConfig",
    "SessionEngine",
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionConfig:
    """Configuration for a two-player session.

    Leaving ``quotas`` unset spreads the default challenge mix over however
    many rounds each player gets.
    """

    max_rounds: int = MAX_ROUNDS
    max_same_in_row: int = MAX_SAME_IN_ROW
    max_attempts: int = MAX_TURN_ORDER_ATTEMPTS
    quotas: Mapping[ChallengeType, int] | None = None
    seed: int | None = None

    def normalized(self) -> SessionConfig:
        """Clamp out-of-range values and pin down a seed so the session is reproducible."""

        if int(self.max_rounds) > MAX_SESSION_ROUNDS:
            raise ValueError(f"max_rounds must be at most {MAX_SESSION_ROUNDS}, got {self.max_rounds}")
        rounds = max(2, int(self.max_rounds))
        if rounds % 2:
            rounds += 1
        if self.quotas is None:
            quotas = scale_quotas(rounds // 2, DEFAULT_QUOTAS)
        else:
            quotas = {ChallengeType(key): int(value) for key, value in self.quotas.items()}
        validate_quotas(quotas, rounds // 2)
        seed = self.seed if self.seed is not None else secrets.SystemRandom().getrandbits(32)
        return SessionConfig(
            max_rounds=rounds,
            max_same_in_row=max(1, int(self.max_same_in_row)),
            max_attempts=max(1, int(self.max_attempts)),
            quotas=quotas,
            seed=seed,
        )


@dataclass(frozen=True)
class Schedule:
    """Who plays which challenge in every round, indexed in lockstep."""

    turn_order: tuple[Player, ...]
    challenges: tuple[ChallengeType, ...]

    def __post_init__(self) -> None:
        if len(self.turn_order) != len(self.challenges):
            raise ValueError("turn order and challenge assignment must have the same length")
        if not self.turn_order:
            raise ValueError("schedule must contain at least one round")

    def __len__(self) -> int:
        return len(self.turn_order)

    def player_for(self, round_number: int) -> Player:
        return self.turn_order[round_number - 1]

    def challenge_for(self, round_number: int) -> ChallengeType:
        return self.challenges[round_number - 1]


TUTORIAL_SCHEDULE = Schedule(turn_order=TUTORIAL_TURN_ORDER, challenges=TUTORIAL_TEST_TYPES)


class SessionEngine:
    """Builds main-session schedules from one seeded RNG."""

    def __init__(self, *, rng: random.Random, config: SessionConfig) -> None:
        self.rng = rng
        self.config = config
        self.schedules_built = 0

    def build_schedule(self) -> Schedule:
        cfg = self.config
        if feature_flags.is_enabled(feature_flags.FIXED_ALTERNATION):
            turn_order = alternating_turn_order(cfg.max_rounds)
        else:
            turn_order = generate_turn_order(
                self.rng,
                max_rounds=cfg.max_rounds,
                max_same_in_row=cfg.max_same_in_row,
                max_attempts=cfg.max_attempts,
            )
        quotas = cfg.quotas if cfg.quotas is not None else scale_quotas(cfg.max_rounds // 2)
        challenges = assign_challenge_types(turn_order, self.rng, quotas=quotas)
        self.schedules_built += 1
        logger.debug("Built schedule", extra={"rounds": len(turn_order), "schedule_no": self.schedules_built})
        return Schedule(turn_order=turn_order, challenges=challenges)
