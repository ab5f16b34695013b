from __future__ import annotations

import random
import sys
from pathlib import Path

import pytest

# Ensure "src" is on sys.path for imports in tests
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = PROJECT_ROOT / "src"
if str(SRC_DIR) not in sys.path:
    sys.path.insert(0, str(SRC_DIR))


@pytest.fixture
def make_machine():
    """Factory for a state machine driven by a seeded engine."""

    from neurorace.features.session.engine import SessionConfig, SessionEngine
    from neurorace.features.session.state_machine import SessionStateMachine

    def _make(seed: int = 1234) -> SessionStateMachine:
        config = SessionConfig(seed=seed).normalized()
        return SessionStateMachine(SessionEngine(rng=random.Random(seed), config=config))

    return _make
