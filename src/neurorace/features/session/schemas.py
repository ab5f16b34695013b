from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

__all__ = [
    "ChallengeBreakdownPayload",
    "ScoreEntryPayload",
    "SessionSnapshot",
    "SummaryPayload",
    "TransitionResult",
    "TutorialPayload",
]


class _APIModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ScoreEntryPayload(_APIModel):
    round_number: int
    player: int
    base_time: float
    penalty: float
    total_time: float
    challenge: str | None = None


class TutorialPayload(_APIModel):
    mission: int
    step: str
    sandbox_phase: str
    retry_count: int
    turns_taken: int
    round_number: int
    challenge: str
    challenge_label: str
    player: int
    is_last_mission: bool
    complete: bool


class SessionSnapshot(_APIModel):
    phase: str
    current_turn: int
    current_player_name: str
    round_number: int
    schedule_length: int
    is_game_over: bool
    current_challenge: str | None = None
    current_challenge_label: str | None = None
    player1_name: str
    player2_name: str
    player1_total_time: float
    player2_total_time: float
    score_log: list[ScoreEntryPayload] = Field(default_factory=list)
    tutorial_round: int
    tutorial_complete: bool
    tutorial: TutorialPayload | None = None


class ChallengeBreakdownPayload(_APIModel):
    challenge: str
    label: str
    player1_time: float
    player2_time: float
    faster: int | None = None
    faster_by_pct: float | None = None
    text: str


class SummaryPayload(_APIModel):
    rounds: int
    player1_name: str
    player2_name: str
    player1_total_time: float
    player2_total_time: float
    player1_penalty: float
    player2_penalty: float
    winner: int | None = None
    winner_name: str | None = None
    is_tie: bool
    breakdown: list[ChallengeBreakdownPayload]


class TransitionResult(_APIModel):
    accepted: bool
    state: SessionSnapshot
