from __future__ import annotations

import logging
import random
import secrets
import string
import threading
from collections.abc import Callable
from dataclasses import dataclass

from ...core.models import Player, RoundOutcome
from ...core.scoring import ChallengeBreakdown, SessionSummary, summarize_session
from .concurrency import run_blocking
from .engine import SessionConfig, SessionEngine
from .schemas import (
    ChallengeBreakdownPayload,
    ScoreEntryPayload,
    SessionSnapshot,
    SummaryPayload,
    TransitionResult,
    TutorialPayload,
)
from .state_machine import SessionStateMachine

__all__ = [
    "LIFECYCLE_ACTIONS",
    "HostedSession",
    "SessionManager",
    "_snapshot_payload",
    "_summary_payload",
]

logger = logging.getLogger(__name__)

# Presentation-triggered transitions that take no arguments.
LIFECYCLE_ACTIONS: frozenset[str] = frozenset(
    {
        "start_tutorial",
        "skip_tutorial",
        "tutorial_try_it",
        "tutorial_round_complete",
        "tutorial_retry",
        "tutorial_advance",
        "start_main_session",
        "end_early",
        "start_new_game",
        "rematch",
    }
)


@dataclass
class HostedSession:
    config: SessionConfig
    machine: SessionStateMachine


class SessionManager:
    """Hosts state machines for the HTTP layer; one lock serializes every transition."""

    def __init__(self) -> None:
        self._sessions: dict[str, HostedSession] = {}
        self._lock = threading.Lock()

    def create_session(self, config: SessionConfig | None = None) -> str:
        normalized = (config or SessionConfig()).normalized()
        engine = SessionEngine(rng=random.Random(normalized.seed), config=normalized)
        hosted = HostedSession(config=normalized, machine=SessionStateMachine(engine))
        session_id = _sid()
        with self._lock:
            self._sessions[session_id] = hosted
        logger.debug("Session created", extra={"session_id": session_id, "seed": normalized.seed})
        return session_id

    async def create_session_async(self, config: SessionConfig | None = None) -> str:
        return await run_blocking(self.create_session, config)

    def drop_session(self, session_id: str) -> None:
        with self._lock:
            self._require_session(session_id)
            self._sessions.pop(session_id, None)

    async def drop_session_async(self, session_id: str) -> None:
        await run_blocking(self.drop_session, session_id)

    def snapshot(self, session_id: str) -> SessionSnapshot:
        with self._lock:
            return _snapshot_payload(self._require_session(session_id).machine)

    async def snapshot_async(self, session_id: str) -> SessionSnapshot:
        return await run_blocking(self.snapshot, session_id)

    def summary(self, session_id: str) -> SummaryPayload:
        with self._lock:
            return _summary_payload(self._require_session(session_id).machine)

    async def summary_async(self, session_id: str) -> SummaryPayload:
        return await run_blocking(self.summary, session_id)

    def set_player_names(self, session_id: str, player1: str, player2: str) -> TransitionResult:
        def _apply(machine: SessionStateMachine) -> bool:
            machine.set_player_names(player1, player2)
            return True

        return self._transition(session_id, _apply)

    async def set_player_names_async(self, session_id: str, player1: str, player2: str) -> TransitionResult:
        return await run_blocking(self.set_player_names, session_id, player1, player2)

    def round_complete(self, session_id: str, elapsed_ms: float, penalty_seconds: float = 0.0) -> TransitionResult:
        outcome = RoundOutcome(elapsed_ms=elapsed_ms, penalty_seconds=penalty_seconds)
        return self._transition(session_id, lambda machine: machine.on_round_complete(outcome))

    async def round_complete_async(
        self, session_id: str, elapsed_ms: float, penalty_seconds: float = 0.0
    ) -> TransitionResult:
        return await run_blocking(self.round_complete, session_id, elapsed_ms, penalty_seconds)

    def start_tutorial(self, session_id: str) -> TransitionResult:
        return self._transition(session_id, SessionStateMachine.start_tutorial)

    def skip_tutorial(self, session_id: str) -> TransitionResult:
        return self._transition(session_id, SessionStateMachine.skip_tutorial)

    def tutorial_try_it(self, session_id: str) -> TransitionResult:
        return self._transition(session_id, SessionStateMachine.tutorial_try_it)

    def tutorial_round_complete(self, session_id: str) -> TransitionResult:
        return self._transition(session_id, SessionStateMachine.on_tutorial_round_complete)

    def tutorial_retry(self, session_id: str) -> TransitionResult:
        return self._transition(session_id, SessionStateMachine.tutorial_retry)

    def tutorial_advance(self, session_id: str) -> TransitionResult:
        return self._transition(session_id, SessionStateMachine.tutorial_advance)

    def start_main_session(self, session_id: str) -> TransitionResult:
        return self._transition(session_id, SessionStateMachine.start_main_session)

    def end_early(self, session_id: str) -> TransitionResult:
        return self._transition(session_id, SessionStateMachine.end_early)

    def start_new_game(self, session_id: str) -> TransitionResult:
        return self._transition(session_id, SessionStateMachine.start_new_game)

    def rematch(self, session_id: str) -> TransitionResult:
        return self._transition(session_id, SessionStateMachine.reset_game)

    def apply(self, session_id: str, action: str) -> TransitionResult:
        """Dispatch one of ``LIFECYCLE_ACTIONS`` by name."""

        if action not in LIFECYCLE_ACTIONS:
            raise ValueError(f"unknown session action '{action}'")
        handler: Callable[[str], TransitionResult] = getattr(self, action)
        return handler(session_id)

    async def apply_async(self, session_id: str, action: str) -> TransitionResult:
        return await run_blocking(self.apply, session_id, action)

    def _transition(self, session_id: str, fn: Callable[[SessionStateMachine], bool]) -> TransitionResult:
        with self._lock:
            machine = self._require_session(session_id).machine
            accepted = fn(machine)
            return TransitionResult(accepted=accepted, state=_snapshot_payload(machine))

    def _require_session(self, session_id: str) -> HostedSession:
        hosted = self._sessions.get(session_id)
        if hosted is None:
            raise KeyError(f"session '{session_id}' not found")
        return hosted


def _sid(length: int = 10) -> str:
    alphabet = string.ascii_lowercase + string.digits
    return "".join(secrets.choice(alphabet) for _ in range(length))


def _snapshot_payload(machine: SessionStateMachine) -> SessionSnapshot:
    state = machine.state()
    tutorial = state.tutorial
    challenge = state.current_challenge
    return SessionSnapshot(
        phase=state.phase.value,
        current_turn=int(state.current_turn),
        current_player_name=machine.display_name(state.current_turn),
        round_number=state.round_number,
        schedule_length=state.schedule_length,
        is_game_over=state.is_game_over,
        current_challenge=challenge.value if challenge is not None else None,
        current_challenge_label=challenge.label if challenge is not None else None,
        player1_name=state.player1_name,
        player2_name=state.player2_name,
        player1_total_time=state.player1_total_time,
        player2_total_time=state.player2_total_time,
        score_log=[
            ScoreEntryPayload(
                round_number=entry.round_number,
                player=int(entry.player),
                base_time=entry.base_time,
                penalty=entry.penalty,
                total_time=entry.total_time,
                challenge=entry.challenge.value if entry.challenge is not None else None,
            )
            for entry in state.score_log
        ],
        tutorial_round=state.tutorial_round,
        tutorial_complete=state.tutorial_complete,
        tutorial=(
            TutorialPayload(
                mission=tutorial.mission,
                step=tutorial.step.value,
                sandbox_phase=tutorial.sandbox_phase.value,
                retry_count=tutorial.retry_count,
                turns_taken=tutorial.turns_taken,
                round_number=tutorial.round_number,
                challenge=tutorial.challenge.value,
                challenge_label=tutorial.challenge.label,
                player=int(tutorial.player),
                is_last_mission=tutorial.is_last_mission,
                complete=tutorial.complete,
            )
            if tutorial is not None
            else None
        ),
    )


def _breakdown_text(item: ChallengeBreakdown, machine: SessionStateMachine) -> str:
    label = item.challenge.label
    if not item.has_data:
        return f"{label}: No data"
    if item.faster is None:
        return f"Tie at {label}"
    return f"{machine.display_name(item.faster)} was {item.faster_by_pct:.0f}% faster at {label}"


def _summary_payload(machine: SessionStateMachine) -> SummaryPayload:
    stats: SessionSummary = summarize_session(machine.ledger.entries)
    return SummaryPayload(
        rounds=stats.rounds,
        player1_name=machine.display_name(Player.ONE),
        player2_name=machine.display_name(Player.TWO),
        player1_total_time=stats.player1_total_time,
        player2_total_time=stats.player2_total_time,
        player1_penalty=stats.player1_penalty,
        player2_penalty=stats.player2_penalty,
        winner=int(stats.winner) if stats.winner is not None else None,
        winner_name=machine.display_name(stats.winner) if stats.winner is not None else None,
        is_tie=stats.is_tie,
        breakdown=[
            ChallengeBreakdownPayload(
                challenge=item.challenge.value,
                label=item.challenge.label,
                player1_time=item.player1_time,
                player2_time=item.player2_time,
                faster=int(item.faster) if item.faster is not None else None,
                faster_by_pct=item.faster_by_pct,
                text=_breakdown_text(item, machine),
            )
            for item in stats.breakdown
        ],
    )
