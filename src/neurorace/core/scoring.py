from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass

from .models import ChallengeType, Player, ScoreEntry

__all__ = [
    "ChallengeBreakdown",
    "ScoreLedger",
    "SessionSummary",
    "summarize_session",
]


class ScoreLedger:
    """Append-only log of main-session rounds with running per-player totals.

    Times are seconds as floats and are never rounded here; formatting belongs
    to whoever renders them.
    """

    def __init__(self) -> None:
        self._entries: list[ScoreEntry] = []
        self._totals: dict[Player, float] = {Player.ONE: 0.0, Player.TWO: 0.0}

    def record(
        self,
        player: Player,
        round_number: int,
        base_time: float,
        penalty: float,
        challenge: ChallengeType | None = None,
    ) -> ScoreEntry:
        if not (math.isfinite(base_time) and math.isfinite(penalty)):
            raise ValueError("base_time and penalty must be finite")
        if base_time < 0 or penalty < 0:
            raise ValueError("base_time and penalty must be non-negative")
        entry = ScoreEntry(
            round_number=round_number,
            player=Player(player),
            base_time=float(base_time),
            penalty=float(penalty),
            challenge=challenge,
        )
        self._entries.append(entry)
        self._totals[entry.player] += entry.total_time
        return entry

    def reset(self) -> None:
        self._entries.clear()
        self._totals = {Player.ONE: 0.0, Player.TWO: 0.0}

    def total_for(self, player: Player) -> float:
        return self._totals[Player(player)]

    @property
    def player1_total_time(self) -> float:
        return self._totals[Player.ONE]

    @property
    def player2_total_time(self) -> float:
        return self._totals[Player.TWO]

    @property
    def entries(self) -> tuple[ScoreEntry, ...]:
        return tuple(self._entries)

    @property
    def count(self) -> int:
        return len(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


@dataclass(frozen=True)
class ChallengeBreakdown:
    challenge: ChallengeType
    player1_time: float
    player2_time: float
    faster: Player | None
    faster_by_pct: float | None

    @property
    def has_data(self) -> bool:
        return (self.player1_time + self.player2_time) > 0.0


@dataclass(frozen=True)
class SessionSummary:
    rounds: int
    player1_total_time: float
    player2_total_time: float
    player1_penalty: float
    player2_penalty: float
    winner: Player | None
    is_tie: bool
    breakdown: tuple[ChallengeBreakdown, ...]


def _faster(p1: float, p2: float) -> tuple[Player | None, float | None]:
    """Return the quicker player and how much faster they were, in percent of the slower time."""

    if p1 + p2 == 0.0:
        return None, None
    if p1 < p2:
        return Player.ONE, (p2 - p1) / p2 * 100.0
    if p2 < p1:
        return Player.TWO, (p1 - p2) / p1 * 100.0
    return None, 0.0


def summarize_session(entries: Sequence[ScoreEntry]) -> SessionSummary:
    """Aggregate the ledger for the results screen.

    Lower total time wins; identical totals are a tie.  Entries without a
    challenge type still count toward totals but are left out of the
    per-challenge breakdown.
    """

    totals = {Player.ONE: 0.0, Player.TWO: 0.0}
    penalties = {Player.ONE: 0.0, Player.TWO: 0.0}
    by_challenge: dict[ChallengeType, dict[Player, float]] = {
        challenge: {Player.ONE: 0.0, Player.TWO: 0.0} for challenge in ChallengeType
    }
    for entry in entries:
        totals[entry.player] += entry.total_time
        penalties[entry.player] += entry.penalty
        if entry.challenge is not None:
            by_challenge[entry.challenge][entry.player] += entry.total_time

    breakdown: list[ChallengeBreakdown] = []
    for challenge in ChallengeType:
        p1 = by_challenge[challenge][Player.ONE]
        p2 = by_challenge[challenge][Player.TWO]
        faster, pct = _faster(p1, p2)
        breakdown.append(
            ChallengeBreakdown(
                challenge=challenge,
                player1_time=p1,
                player2_time=p2,
                faster=faster,
                faster_by_pct=pct,
            )
        )

    p1_total = totals[Player.ONE]
    p2_total = totals[Player.TWO]
    is_tie = p1_total == p2_total
    winner: Player | None
    if is_tie:
        winner = None
    else:
        winner = Player.ONE if p1_total < p2_total else Player.TWO

    return SessionSummary(
        rounds=len(entries),
        player1_total_time=p1_total,
        player2_total_time=p2_total,
        player1_penalty=penalties[Player.ONE],
        player2_penalty=penalties[Player.TWO],
        winner=winner,
        is_tie=is_tie,
        breakdown=tuple(breakdown),
    )
