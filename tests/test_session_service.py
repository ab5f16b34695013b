from __future__ import annotations

import asyncio

import pytest

from neurorace.core.models import ChallengeType, Player, ScoreEntry
from neurorace.features.session import SessionConfig, SessionManager, TransitionResult
from neurorace.features.session.concurrency import shutdown_executor
from neurorace.features.session.service import LIFECYCLE_ACTIONS, _summary_payload


def _play_main(manager: SessionManager, sid: str, rounds: int, elapsed_ms: float = 1000.0) -> dict:
    data: dict = {}
    for _ in range(rounds):
        result = manager.round_complete(sid, elapsed_ms, 0.0)
        assert result.accepted
        data = result.to_dict()
    return data


def test_session_manager_basic_flow() -> None:
    manager = SessionManager()
    sid = manager.create_session(SessionConfig(seed=1234))

    state = manager.snapshot(sid).to_dict()
    assert state["phase"] == "not_started"
    assert state["round_number"] == 1
    assert state["schedule_length"] == 0
    assert "current_challenge" not in state

    assert manager.set_player_names(sid, "Ada", "Grace").accepted
    tutorial = manager.start_tutorial(sid).to_dict()["state"]
    assert tutorial["phase"] == "tutorial"
    assert tutorial["tutorial"]["mission"] == 1
    assert tutorial["tutorial"]["challenge_label"] == "Color Coral"
    assert tutorial["current_challenge"] == "stroop"

    assert manager.skip_tutorial(sid).state.tutorial_complete
    started = manager.start_main_session(sid).to_dict()["state"]
    assert started["phase"] == "main_in_progress"
    assert started["schedule_length"] == 20
    assert started["current_player_name"] in {"Ada", "Grace"}

    final = _play_main(manager, sid, 20)
    assert final["state"]["is_game_over"] is True
    assert final["state"]["phase"] == "main_over"
    assert len(final["state"]["score_log"]) == 20
    assert manager.round_complete(sid, 500.0).accepted is False

    summary = manager.summary(sid).to_dict()
    assert summary["rounds"] == 20
    assert summary["is_tie"] is True
    assert "winner" not in summary
    assert summary["player1_name"] == "Ada"
    assert [item["text"] for item in summary["breakdown"]] == [
        "Tie at Color Coral",
        "Tie at Bubble Burst",
        "Tie at Deep Dive",
        "Tie at Shark Attack",
    ]


def test_tutorial_flow_through_manager() -> None:
    manager = SessionManager()
    sid = manager.create_session(SessionConfig(seed=5))
    manager.start_tutorial(sid)

    assert manager.tutorial_advance(sid).accepted is False
    assert manager.tutorial_try_it(sid).accepted
    first = manager.tutorial_round_complete(sid).state
    assert first.tutorial_round == 2
    assert first.current_turn == 2
    assert first.tutorial.turns_taken == 1
    assert manager.tutorial_retry(sid).accepted is False
    assert manager.tutorial_round_complete(sid).accepted
    retried = manager.tutorial_retry(sid)
    assert retried.accepted
    assert retried.state.tutorial.retry_count == 1
    assert retried.state.tutorial_round == 1
    assert manager.tutorial_round_complete(sid).accepted
    assert manager.tutorial_round_complete(sid).accepted
    advanced = manager.tutorial_advance(sid)
    assert advanced.state.tutorial.mission == 2
    assert advanced.state.tutorial.retry_count == 0
    assert advanced.state.tutorial_round == 3


def test_end_early_and_rematch_keep_names() -> None:
    manager = SessionManager()
    sid = manager.create_session(SessionConfig(seed=99))
    manager.set_player_names(sid, "Ada", "")
    manager.skip_tutorial(sid)
    manager.start_main_session(sid)
    _play_main(manager, sid, 4)

    ended = manager.end_early(sid)
    assert ended.accepted
    assert ended.state.is_game_over
    assert len(ended.state.score_log) == 4
    assert manager.summary(sid).rounds == 4

    rematch = manager.rematch(sid).state
    assert rematch.phase == "main_in_progress"
    assert rematch.score_log == []
    assert rematch.player1_name == "Ada"

    fresh = manager.start_new_game(sid).state
    assert fresh.phase == "not_started"
    assert fresh.player1_name == ""


def test_apply_dispatches_lifecycle_actions() -> None:
    manager = SessionManager()
    sid = manager.create_session(SessionConfig(seed=8))

    assert LIFECYCLE_ACTIONS >= {"start_tutorial", "rematch", "end_early"}
    result = manager.apply(sid, "start_tutorial")
    assert isinstance(result, TransitionResult)
    assert result.state.phase == "tutorial"

    with pytest.raises(ValueError):
        manager.apply(sid, "drop_session")


def test_unknown_session_raises_key_error() -> None:
    manager = SessionManager()
    with pytest.raises(KeyError):
        manager.snapshot("missing")
    with pytest.raises(KeyError):
        manager.round_complete("missing", 100.0)

    sid = manager.create_session()
    manager.drop_session(sid)
    with pytest.raises(KeyError):
        manager.summary(sid)


def test_negative_or_non_finite_elapsed_time_is_rejected() -> None:
    manager = SessionManager()
    sid = manager.create_session(SessionConfig(seed=2))
    manager.skip_tutorial(sid)
    manager.start_main_session(sid)

    with pytest.raises(ValueError):
        manager.round_complete(sid, -1.0)
    with pytest.raises(ValueError):
        manager.round_complete(sid, float("nan"))
    with pytest.raises(ValueError):
        manager.round_complete(sid, 500.0, float("inf"))
    assert manager.snapshot(sid).score_log == []


def test_async_variants_match_sync() -> None:
    manager = SessionManager()

    async def _run() -> tuple[str, dict]:
        sid = await manager.create_session_async(SessionConfig(seed=21))
        await manager.apply_async(sid, "skip_tutorial")
        await manager.apply_async(sid, "start_main_session")
        result = await manager.round_complete_async(sid, 750.0, 0.25)
        return sid, result.to_dict()

    sid, payload = asyncio.run(_run())

    assert payload["accepted"] is True
    entry = payload["state"]["score_log"][0]
    assert entry["base_time"] == pytest.approx(0.75)
    assert entry["total_time"] == pytest.approx(1.0)
    assert manager.snapshot(sid).round_number == 2


def test_summary_payload_breakdown_text() -> None:
    manager = SessionManager()
    sid = manager.create_session(SessionConfig(seed=4))
    manager.set_player_names(sid, "Ada", "Grace")
    machine = manager._sessions[sid].machine
    ledger = machine.ledger
    for entry in (
        ScoreEntry(1, Player.ONE, 1.0, 0.0, ChallengeType.STROOP),
        ScoreEntry(2, Player.TWO, 4.0, 0.0, ChallengeType.STROOP),
        ScoreEntry(3, Player.ONE, 2.0, 0.0, ChallengeType.EQUATION),
        ScoreEntry(4, Player.TWO, 1.0, 0.0, ChallengeType.EQUATION),
    ):
        ledger.record(entry.player, entry.round_number, entry.base_time, entry.penalty, entry.challenge)

    payload = _summary_payload(machine).to_dict()

    assert payload["winner"] == 1
    assert payload["winner_name"] == "Ada"
    texts = {item["challenge"]: item["text"] for item in payload["breakdown"]}
    assert texts["stroop"] == "Ada was 75% faster at Color Coral"
    assert texts["equation"] == "Grace was 50% faster at Deep Dive"
    assert texts["speedgrid"] == "Bubble Burst: No data"


def test_worker_pool_restarts_after_shutdown() -> None:
    manager = SessionManager()
    sid = manager.create_session(SessionConfig(seed=6))

    shutdown_executor()
    shutdown_executor()
    snapshot = asyncio.run(manager.snapshot_async(sid))

    assert snapshot.phase == "not_started"


def test_drop_session_async_removes_session() -> None:
    manager = SessionManager()
    sid = manager.create_session(SessionConfig(seed=13))

    asyncio.run(manager.drop_session_async(sid))

    with pytest.raises(KeyError):
        manager.snapshot(sid)
    with pytest.raises(KeyError):
        asyncio.run(manager.drop_session_async(sid))
