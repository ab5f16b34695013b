from __future__ import annotations

import argparse
import logging
import random
import secrets
import sys

from .core.models import MAX_ROUNDS
from .engine_play import run_simulation
from .features.session.engine import SessionConfig, SessionEngine
from .ui.presenters import RichPresenter


def _add_common_args(p: argparse.ArgumentParser) -> None:
    # If omitted, runs with a random seed for variety. Pass an int to reproduce.
    p.add_argument("--seed", type=int, default=None, help="RNG seed (random if omitted)")
    p.add_argument("--rounds", type=int, default=MAX_ROUNDS, help=f"Rounds per session (default {MAX_ROUNDS})")
    p.add_argument("--no-color", action="store_true", help="Disable colored output (default is colored)")
    p.add_argument("-v", "--verbose", action="store_true", help="Log scheduler and state machine decisions")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="neurorace", description="Two-player reaction race: scheduler and scoring")
    sub = parser.add_subparsers(dest="command")

    schedule = sub.add_parser("schedule", help="Print a generated turn order and challenge assignment")
    _add_common_args(schedule)

    simulate = sub.add_parser("simulate", help="Play a session with simulated challenge results")
    _add_common_args(simulate)
    simulate.add_argument("--end-after", type=int, default=None, metavar="ROUNDS", help="End the game early")
    simulate.add_argument("--p1", default="", help="Player 1 name")
    simulate.add_argument("--p2", default="", help="Player 2 name")
    return parser


def _cmd_schedule(args: argparse.Namespace) -> None:
    seed = args.seed if args.seed is not None else secrets.randbits(32)
    config = SessionConfig(max_rounds=args.rounds, seed=seed).normalized()
    engine = SessionEngine(rng=random.Random(seed), config=config)
    RichPresenter(no_color=args.no_color).schedule(engine.build_schedule(), seed=seed)


def _cmd_simulate(args: argparse.Namespace) -> None:
    run_simulation(
        seed=args.seed,
        rounds=args.rounds,
        end_after=args.end_after,
        player_names=(args.p1, args.p2),
        presenter=RichPresenter(no_color=args.no_color),
    )


def main(argv: list[str] | None = None) -> None:
    parser = _build_parser()
    args = parser.parse_args(sys.argv[1:] if argv is None else argv)
    if args.command is None:
        parser.print_help()
        raise SystemExit(1)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        if args.command == "schedule":
            _cmd_schedule(args)
        else:
            _cmd_simulate(args)
    except ValueError as exc:
        parser.error(str(exc))


if __name__ == "__main__":
    main()
