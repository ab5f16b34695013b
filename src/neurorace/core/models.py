from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum, IntEnum
from typing import Final

__all__ = [
    "DEFAULT_QUOTAS",
    "MAX_ROUNDS",
    "MAX_SAME_IN_ROW",
    "MAX_SESSION_ROUNDS",
    "MAX_TURN_ORDER_ATTEMPTS",
    "TUTORIAL_MISSIONS",
    "TUTORIAL_MISSION_CHALLENGES",
    "TUTORIAL_ROUNDS",
    "TUTORIAL_TEST_TYPES",
    "TUTORIAL_TURN_ORDER",
    "ChallengeType",
    "Player",
    "RoundOutcome",
    "ScoreEntry",
]

MAX_ROUNDS: Final = 20
MAX_SAME_IN_ROW: Final = 3
# Upper bound on a configurable session length.
MAX_SESSION_ROUNDS: Final = 100
MAX_TURN_ORDER_ATTEMPTS: Final = 10_000

TUTORIAL_ROUNDS: Final = 8
TUTORIAL_MISSIONS: Final = 4


class Player(IntEnum):
    ONE = 1
    TWO = 2

    @property
    def other(self) -> Player:
        return Player.TWO if self is Player.ONE else Player.ONE

    @property
    def default_name(self) -> str:
        return f"Player {int(self)}"


class ChallengeType(str, Enum):
    """The four mini-challenges a round can be played with."""

    STROOP = "stroop"
    SPEEDGRID = "speedgrid"
    EQUATION = "equation"
    GONOGO = "gonogo"

    @property
    def label(self) -> str:
        return _CHALLENGE_LABELS[self]


_CHALLENGE_LABELS: dict[ChallengeType, str] = {
    ChallengeType.STROOP: "Color Coral",
    ChallengeType.SPEEDGRID: "Bubble Burst",
    ChallengeType.EQUATION: "Deep Dive",
    ChallengeType.GONOGO: "Shark Attack",
}

# Rounds of each challenge every player gets in one main session.
DEFAULT_QUOTAS: Final[dict[ChallengeType, int]] = {
    ChallengeType.STROOP: 2,
    ChallengeType.SPEEDGRID: 3,
    ChallengeType.EQUATION: 3,
    ChallengeType.GONOGO: 2,
}

TUTORIAL_MISSION_CHALLENGES: Final[tuple[ChallengeType, ...]] = (
    ChallengeType.STROOP,
    ChallengeType.SPEEDGRID,
    ChallengeType.EQUATION,
    ChallengeType.GONOGO,
)

TUTORIAL_TURN_ORDER: Final[tuple[Player, ...]] = tuple(
    Player.ONE if idx % 2 == 0 else Player.TWO for idx in range(TUTORIAL_ROUNDS)
)
TUTORIAL_TEST_TYPES: Final[tuple[ChallengeType, ...]] = tuple(
    challenge for challenge in TUTORIAL_MISSION_CHALLENGES for _ in range(2)
)


@dataclass(frozen=True)
class ScoreEntry:
    """One completed main-session round."""

    round_number: int
    player: Player
    base_time: float
    penalty: float
    challenge: ChallengeType | None = None

    @property
    def total_time(self) -> float:
        return self.base_time + self.penalty


@dataclass(frozen=True)
class RoundOutcome:
    """What a finished challenge reports back: raw elapsed time plus penalty seconds."""

    elapsed_ms: float
    penalty_seconds: float = 0.0

    def __post_init__(self) -> None:
        if not math.isfinite(self.elapsed_ms) or self.elapsed_ms < 0:
            raise ValueError("elapsed_ms must be a finite, non-negative number")
        if not math.isfinite(self.penalty_seconds) or self.penalty_seconds < 0:
            raise ValueError("penalty_seconds must be a finite, non-negative number")

    @property
    def elapsed_seconds(self) -> float:
        return self.elapsed_ms / 1000.0
