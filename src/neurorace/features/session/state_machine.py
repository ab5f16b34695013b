"""Session lifecycle: tutorial, main session, results.

``SessionStateMachine`` owns the schedule, the ledger and the tutorial for
one pair of players.  Every transition is a method that either applies fully
and returns ``True`` or is refused and returns ``False``.  Refusals are not
errors: the presentation layer can deliver a stale completion after the
players already ended the game, and that callback must simply do nothing.

Phases::

    NOT_STARTED -> TUTORIAL -> MAIN_IN_PROGRESS -> MAIN_OVER

The main-session schedule is generated when the main session starts, never
earlier, so nothing that happens in the tutorial can influence it.

During the tutorial the fixed eight-round sequence and the mission walkthrough
are one track: each mission covers two rounds, one sandbox turn per player,
and the current turn, challenge and tutorial round are read off the
walkthrough.  A completion is accepted only while a sandbox turn is running,
whether it arrives as a plain tutorial completion or as a timed round.
Finishing the eighth round completes the tutorial.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from ...core import feature_flags
from ...core.models import TUTORIAL_ROUNDS, ChallengeType, Player, RoundOutcome, ScoreEntry
from ...core.scoring import ScoreLedger
from .engine import TUTORIAL_SCHEDULE, Schedule, SessionEngine
from .tutorial import SandboxPhase, TutorialState, TutorialStateMachine

__all__ = [
    "SessionPhase",
    "SessionState",
    "SessionStateMachine",
]

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    NOT_STARTED = "not_started"
    TUTORIAL = "tutorial"
    MAIN_IN_PROGRESS = "main_in_progress"
    MAIN_OVER = "main_over"


@dataclass(frozen=True)
class SessionState:
    """Read-only view of the machine for rendering."""

    phase: SessionPhase
    current_turn: Player
    round_number: int
    is_game_over: bool
    player1_total_time: float
    player2_total_time: float
    score_log: tuple[ScoreEntry, ...]
    schedule_length: int
    current_challenge: ChallengeType | None
    tutorial_round: int
    tutorial_complete: bool
    tutorial: TutorialState | None
    player1_name: str
    player2_name: str


class SessionStateMachine:
    def __init__(self, engine: SessionEngine, ledger: ScoreLedger | None = None) -> None:
        self.engine = engine
        self.ledger = ledger if ledger is not None else ScoreLedger()
        self._phase = SessionPhase.NOT_STARTED
        self._schedule: Schedule | None = None
        self._round_number = 1
        self._current_turn = Player.ONE
        self._tutorial: TutorialStateMachine | None = None
        self._tutorial_round = 1
        self._tutorial_complete = False
        self._names: dict[Player, str] = {Player.ONE: "", Player.TWO: ""}

    # ------------------------------------------------------------------ accessors
    @property
    def phase(self) -> SessionPhase:
        return self._phase

    @property
    def schedule(self) -> Schedule | None:
        return self._schedule

    @property
    def round_number(self) -> int:
        return self._round_number

    @property
    def current_turn(self) -> Player:
        return self._current_turn

    @property
    def is_game_over(self) -> bool:
        return self._phase is SessionPhase.MAIN_OVER

    @property
    def schedule_length(self) -> int:
        return len(self._schedule) if self._schedule is not None else 0

    @property
    def tutorial(self) -> TutorialState | None:
        return self._tutorial.state if self._tutorial is not None else None

    @property
    def tutorial_round(self) -> int:
        return self._tutorial_round

    @property
    def tutorial_complete(self) -> bool:
        return self._tutorial_complete

    @property
    def current_challenge(self) -> ChallengeType | None:
        if self._phase is SessionPhase.TUTORIAL:
            if self._tutorial_complete:
                return None
            return TUTORIAL_SCHEDULE.challenge_for(self._tutorial_round)
        if self._schedule is None:
            return None
        return self._schedule.challenge_for(self._round_number)

    def display_name(self, player: Player) -> str:
        player = Player(player)
        return self._names[player] or player.default_name

    def state(self) -> SessionState:
        return SessionState(
            phase=self._phase,
            current_turn=self._current_turn,
            round_number=self._round_number,
            is_game_over=self.is_game_over,
            player1_total_time=self.ledger.player1_total_time,
            player2_total_time=self.ledger.player2_total_time,
            score_log=self.ledger.entries,
            schedule_length=self.schedule_length,
            current_challenge=self.current_challenge,
            tutorial_round=self._tutorial_round,
            tutorial_complete=self._tutorial_complete,
            tutorial=self.tutorial,
            player1_name=self._names[Player.ONE],
            player2_name=self._names[Player.TWO],
        )

    # ---------------------------------------------------------------- lifecycle
    def set_player_names(self, player1: str, player2: str) -> None:
        self._names = {Player.ONE: (player1 or "").strip(), Player.TWO: (player2 or "").strip()}

    def start_tutorial(self) -> bool:
        if self._phase is SessionPhase.MAIN_IN_PROGRESS:
            return self._refuse("start_tutorial")
        if feature_flags.is_enabled(feature_flags.TUTORIAL_DISABLED):
            return self.skip_tutorial()
        self.ledger.reset()
        self._schedule = None
        self._phase = SessionPhase.TUTORIAL
        self._tutorial = TutorialStateMachine()
        self._tutorial_round = 1
        self._tutorial_complete = False
        self._round_number = 1
        self._sync_tutorial()
        logger.debug("Tutorial started")
        return True

    def skip_tutorial(self) -> bool:
        if self._phase not in (SessionPhase.NOT_STARTED, SessionPhase.TUTORIAL) or self._tutorial_complete:
            return self._refuse("skip_tutorial")
        if self._tutorial is not None:
            self._tutorial.skip()
        self._phase = SessionPhase.TUTORIAL
        self._tutorial = None
        self._tutorial_complete = True
        logger.debug("Tutorial skipped")
        return True

    def start_main_session(self) -> bool:
        """Roll a fresh schedule and begin round one.

        Names and the ledger are left alone; the tutorial already cleared the
        ledger, and a rematch goes through ``reset_game`` instead.
        """

        if self._phase not in (SessionPhase.NOT_STARTED, SessionPhase.TUTORIAL):
            return self._refuse("start_main_session")
        self._begin_main(self.engine.build_schedule())
        return True

    def reset_game(self) -> bool:
        """Rematch: same players, new schedule, empty ledger."""

        self.ledger.reset()
        self._begin_main(self.engine.build_schedule())
        return True

    def start_new_game(self) -> bool:
        """Forget everything, player names included."""

        self.ledger.reset()
        self._phase = SessionPhase.NOT_STARTED
        self._schedule = None
        self._round_number = 1
        self._current_turn = Player.ONE
        self._tutorial = None
        self._tutorial_round = 1
        self._tutorial_complete = False
        self._names = {Player.ONE: "", Player.TWO: ""}
        logger.debug("New game requested")
        return True

    def end_early(self) -> bool:
        if self._phase is not SessionPhase.MAIN_IN_PROGRESS:
            return self._refuse("end_early")
        self._phase = SessionPhase.MAIN_OVER
        logger.debug("Session ended early", extra={"round": self._round_number, "entries": self.ledger.count})
        return True

    # ------------------------------------------------------------------- rounds
    def complete_round(self, player: Player | int, base_time: float, penalty: float) -> bool:
        if self._phase is SessionPhase.TUTORIAL:
            return self._complete_tutorial_round(player)
        if self._phase is not SessionPhase.MAIN_IN_PROGRESS or self._schedule is None:
            return self._refuse("complete_round")
        if player != self._current_turn:
            return self._refuse("complete_round", reason="not this player's turn", player=int(player))

        self.ledger.record(
            self._current_turn,
            self._round_number,
            base_time,
            penalty,
            challenge=self._schedule.challenge_for(self._round_number),
        )
        next_round = self._round_number + 1
        if next_round > len(self._schedule):
            self._phase = SessionPhase.MAIN_OVER
            logger.debug("Session complete", extra={"rounds": len(self._schedule)})
        else:
            self._round_number = next_round
            self._current_turn = self._schedule.player_for(next_round)
        return True

    def on_round_complete(self, outcome: RoundOutcome) -> bool:
        """Entry point for the active challenge; elapsed time arrives in milliseconds."""

        return self.complete_round(self._current_turn, outcome.elapsed_seconds, outcome.penalty_seconds)

    def on_tutorial_round_complete(self) -> bool:
        """A sandbox challenge finished for the player on turn; no score attached."""

        if self._phase is not SessionPhase.TUTORIAL:
            return self._refuse("on_tutorial_round_complete")
        return self._complete_tutorial_round(self._current_turn)

    def _complete_tutorial_round(self, player: Player | int) -> bool:
        tutorial = self._tutorial
        if tutorial is None or self._tutorial_complete:
            return self._refuse("tutorial round", reason="tutorial already complete")
        if player != self._current_turn:
            return self._refuse("tutorial round", reason="not this player's turn", player=int(player))
        if not tutorial.finish_attempt():
            return self._refuse("tutorial round", reason="no sandbox turn running")
        if self._tutorial_round >= TUTORIAL_ROUNDS and tutorial.state.sandbox_phase is SandboxPhase.COMPLETE:
            self._finish_tutorial()
        else:
            self._sync_tutorial()
        return True

    # ----------------------------------------------------------------- tutorial
    def tutorial_try_it(self) -> bool:
        if self._tutorial is None or self._tutorial_complete:
            return self._refuse("tutorial_try_it")
        return self._tutorial.try_it()

    def tutorial_retry(self) -> bool:
        if self._tutorial is None or self._tutorial_complete:
            return self._refuse("tutorial_retry")
        accepted = self._tutorial.retry()
        if accepted:
            self._sync_tutorial()
        return accepted

    def tutorial_advance(self) -> bool:
        if self._tutorial is None or self._tutorial_complete:
            return self._refuse("tutorial_advance")
        accepted = self._tutorial.advance()
        if accepted:
            if self._tutorial.complete:
                self._finish_tutorial()
            else:
                self._sync_tutorial()
        return accepted

    def _sync_tutorial(self) -> None:
        if self._tutorial is None:
            return
        self._tutorial_round = self._tutorial.state.round_number
        self._current_turn = TUTORIAL_SCHEDULE.player_for(self._tutorial_round)

    def _finish_tutorial(self) -> None:
        self._tutorial_complete = True
        if self._tutorial is not None:
            self._tutorial.mark_complete()
        logger.debug("Tutorial finished", extra={"tutorial_round": self._tutorial_round})

    # ------------------------------------------------------------------ helpers
    def _begin_main(self, schedule: Schedule) -> None:
        self._schedule = schedule
        self._phase = SessionPhase.MAIN_IN_PROGRESS
        self._round_number = 1
        self._current_turn = schedule.player_for(1)
        self._tutorial = None
        self._tutorial_complete = False
        logger.debug("Main session started", extra={"rounds": len(schedule), "first_player": int(self._current_turn)})

    def _refuse(self, action: str, *, reason: str | None = None, **context: object) -> bool:
        logger.debug(
            "Ignoring %s in phase %s%s",
            action,
            self._phase.value,
            f" ({reason})" if reason else "",
            extra={"round": self._round_number, **context},
        )
        return False
