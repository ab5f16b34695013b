from __future__ import annotations

import random
import secrets

from .core.models import MAX_ROUNDS, RoundOutcome
from .features.session.engine import SessionConfig, SessionEngine
from .features.session.state_machine import SessionStateMachine
from .ui.presenters import RichPresenter

# Penalties a challenge hands out: none, slow answer, wrong answer.
_SIMULATED_PENALTIES = (0.0, 0.0, 0.0, 0.25, 0.5)


def simulated_outcome(rng: random.Random) -> RoundOutcome:
    """Stand-in for a real challenge: a plausible reaction time and penalty."""

    return RoundOutcome(elapsed_ms=rng.uniform(350.0, 2800.0), penalty_seconds=rng.choice(_SIMULATED_PENALTIES))


def run_simulation(
    seed: int | None = None,
    *,
    rounds: int = MAX_ROUNDS,
    end_after: int | None = None,
    player_names: tuple[str, str] = ("", ""),
    presenter: RichPresenter | None = None,
) -> SessionStateMachine:
    """Play one full session with simulated challenge results and print the outcome."""

    actual_seed = seed if seed is not None else secrets.randbits(32)
    config = SessionConfig(max_rounds=rounds, seed=actual_seed).normalized()
    machine = SessionStateMachine(SessionEngine(rng=random.Random(actual_seed), config=config))
    machine.set_player_names(*player_names)
    machine.skip_tutorial()
    machine.start_main_session()

    presenter = presenter or RichPresenter()
    if machine.schedule is not None:
        presenter.schedule(machine.schedule, seed=actual_seed)

    outcome_rng = random.Random(actual_seed ^ 0x5EED)
    while not machine.is_game_over:
        if end_after is not None and machine.ledger.count >= end_after:
            machine.end_early()
            presenter.console.print("[yellow]Game ended early.[/]")
            break
        machine.on_round_complete(simulated_outcome(outcome_rng))
        presenter.round_result(machine)

    presenter.summary(machine)
    return machine
