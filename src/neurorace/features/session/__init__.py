"""Session feature: state machines, service layer, schemas, and API router."""

from .engine import Schedule, SessionConfig, SessionEngine
from .router import create_session_router
from .schemas import (
    ChallengeBreakdownPayload,
    ScoreEntryPayload,
    SessionSnapshot,
    SummaryPayload,
    TransitionResult,
    TutorialPayload,
)
from .service import SessionManager
from .state_machine import SessionPhase, SessionState, SessionStateMachine
from .tutorial import SandboxPhase, TutorialState, TutorialStateMachine, TutorialStep

__all__ = [
    "ChallengeBreakdownPayload",
    "SandboxPhase",
    "Schedule",
    "ScoreEntryPayload",
    "SessionConfig",
    "SessionEngine",
    "SessionManager",
    "SessionPhase",
    "SessionSnapshot",
    "SessionState",
    "SessionStateMachine",
    "SummaryPayload",
    "TransitionResult",
    "TutorialPayload",
    "TutorialState",
    "TutorialStateMachine",
    "TutorialStep",
    "create_session_router",
]
