"""Guided tutorial walkthrough.

Four missions, one per challenge type.  Each mission shows a preview, then
both players try the challenge in a sandbox, player 1 first, so the missions
walk the fixed eight-round tutorial sequence two rounds at a time.  Once both
turns are done the players either retry (the retry counter bumps so the
presentation layer remounts a fresh challenge) or move on.  Finishing mission
four, or skipping at any point, completes the tutorial.

The tutorial never touches scores.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from ...core.models import (
    TUTORIAL_MISSIONS,
    TUTORIAL_ROUNDS,
    TUTORIAL_TEST_TYPES,
    TUTORIAL_TURN_ORDER,
    ChallengeType,
    Player,
)

__all__ = [
    "SandboxPhase",
    "TutorialState",
    "TutorialStateMachine",
    "TutorialStep",
]

logger = logging.getLogger(__name__)

TURNS_PER_MISSION = TUTORIAL_ROUNDS // TUTORIAL_MISSIONS


class TutorialStep(str, Enum):
    PREVIEW = "preview"
    SANDBOX = "sandbox"


class SandboxPhase(str, Enum):
    TRYING = "trying"
    COMPLETE = "complete"


@dataclass(frozen=True)
class TutorialState:
    mission: int
    step: TutorialStep
    sandbox_phase: SandboxPhase
    retry_count: int
    complete: bool
    turns_taken: int = 0

    @property
    def round_number(self) -> int:
        """Position in the fixed tutorial sequence of the turn being played (or last played)."""

        return (self.mission - 1) * TURNS_PER_MISSION + min(self.turns_taken, TURNS_PER_MISSION - 1) + 1

    @property
    def challenge(self) -> ChallengeType:
        return TUTORIAL_TEST_TYPES[self.round_number - 1]

    @property
    def player(self) -> Player:
        return TUTORIAL_TURN_ORDER[self.round_number - 1]

    @property
    def is_last_mission(self) -> bool:
        return self.mission == TUTORIAL_MISSIONS


class TutorialStateMachine:
    def __init__(self) -> None:
        self._mission = 1
        self._step = TutorialStep.PREVIEW
        self._sandbox_phase = SandboxPhase.TRYING
        self._retry_count = 0
        self._turns_taken = 0
        self._complete = False

    @property
    def state(self) -> TutorialState:
        return TutorialState(
            mission=self._mission,
            step=self._step,
            sandbox_phase=self._sandbox_phase,
            retry_count=self._retry_count,
            complete=self._complete,
            turns_taken=self._turns_taken,
        )

    @property
    def complete(self) -> bool:
        return self._complete

    def try_it(self) -> bool:
        """Leave the preview and start a sandbox attempt."""

        if self._complete or self._step is not TutorialStep.PREVIEW:
            return self._refuse("try_it")
        self._step = TutorialStep.SANDBOX
        self._sandbox_phase = SandboxPhase.TRYING
        self._turns_taken = 0
        return True

    def finish_attempt(self) -> bool:
        """The sandbox challenge reported completion for the player on turn."""

        if self._complete or self._step is not TutorialStep.SANDBOX or self._sandbox_phase is not SandboxPhase.TRYING:
            return self._refuse("finish_attempt")
        self._turns_taken += 1
        if self._turns_taken >= TURNS_PER_MISSION:
            self._sandbox_phase = SandboxPhase.COMPLETE
        return True

    def retry(self) -> bool:
        if self._complete or self._sandbox_phase is not SandboxPhase.COMPLETE:
            return self._refuse("retry")
        self._sandbox_phase = SandboxPhase.TRYING
        self._retry_count += 1
        self._turns_taken = 0
        return True

    def advance(self) -> bool:
        """Move to the next mission's preview, or finish after the last mission."""

        if self._complete or self._sandbox_phase is not SandboxPhase.COMPLETE:
            return self._refuse("advance")
        if self._mission >= TUTORIAL_MISSIONS:
            self._mark_complete("missions finished")
            return True
        self._mission += 1
        self._step = TutorialStep.PREVIEW
        self._sandbox_phase = SandboxPhase.TRYING
        self._retry_count = 0
        self._turns_taken = 0
        return True

    def skip(self) -> bool:
        if self._complete:
            return self._refuse("skip")
        self._mark_complete("skipped")
        return True

    def mark_complete(self) -> bool:
        """Complete the tutorial from outside the mission flow, once the eighth tutorial round is played."""

        if self._complete:
            return False
        self._mark_complete("tutorial rounds played")
        return True

    def _mark_complete(self, reason: str) -> None:
        self._complete = True
        logger.debug("Tutorial complete", extra={"reason": reason, "mission": self._mission})

    def _refuse(self, action: str) -> bool:
        logger.debug(
            "Ignoring tutorial %s",
            action,
            extra={"mission": self._mission, "step": self._step.value, "sandbox_phase": self._sandbox_phase.value},
        )
        return False
