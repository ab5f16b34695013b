from __future__ import annotations

from fastapi import APIRouter, HTTPException
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, model_validator

from ...core.models import MAX_SESSION_ROUNDS
from .engine import SessionConfig
from .service import SessionManager

__all__ = ["CreateSessionRequest", "NamesRequest", "RoundRequest", "create_session_router"]

# URL segment -> manager action
_LIFECYCLE_ROUTES: dict[str, str] = {
    "tutorial/start": "start_tutorial",
    "tutorial/skip": "skip_tutorial",
    "tutorial/try": "tutorial_try_it",
    "tutorial/complete": "tutorial_round_complete",
    "tutorial/retry": "tutorial_retry",
    "tutorial/advance": "tutorial_advance",
    "main/start": "start_main_session",
    "end": "end_early",
    "new-game": "start_new_game",
    "rematch": "rematch",
}


class CreateSessionRequest(BaseModel):
    seed: int | None = None
    rounds: int | None = Field(default=None, le=MAX_SESSION_ROUNDS)

    @model_validator(mode="before")
    @classmethod
    def _coerce(cls, data: dict[str, object]) -> dict[str, object]:
        if not isinstance(data, dict):
            return data
        cleaned: dict[str, object] = dict(data)
        for field in ("seed", "rounds"):
            value = cleaned.get(field)
            if value in (None, ""):
                cleaned[field] = None
                continue
            if isinstance(value, str):
                try:
                    cleaned[field] = int(value)
                except ValueError:
                    cleaned[field] = None
        return cleaned

    def to_config(self) -> SessionConfig:
        if self.rounds is None:
            return SessionConfig(seed=self.seed)
        return SessionConfig(max_rounds=self.rounds, seed=self.seed)


class NamesRequest(BaseModel):
    player1: str = ""
    player2: str = ""


class RoundRequest(BaseModel):
    elapsed_ms: float = Field(ge=0, allow_inf_nan=False)
    penalty_seconds: float = Field(default=0.0, ge=0, allow_inf_nan=False)


def _json_response(data: dict[str, object]) -> JSONResponse:
    return JSONResponse(data)


def create_session_router(manager: SessionManager) -> APIRouter:
    router = APIRouter(prefix="/api/v1/session", tags=["session"])

    @router.post("")
    async def create_session(body: CreateSessionRequest) -> JSONResponse:
        try:
            session_id = await manager.create_session_async(body.to_config())
        except ValueError as exc:
            raise HTTPException(400, str(exc)) from exc
        snapshot = await manager.snapshot_async(session_id)
        return _json_response({"session": session_id, "state": snapshot.to_dict()})

    @router.get("/{sid}")
    async def get_state(sid: str) -> JSONResponse:
        try:
            snapshot = await manager.snapshot_async(sid)
        except KeyError as exc:
            raise HTTPException(404, str(exc)) from exc
        return _json_response(snapshot.to_dict())

    @router.delete("/{sid}")
    async def drop_session(sid: str) -> JSONResponse:
        try:
            await manager.drop_session_async(sid)
        except KeyError as exc:
            raise HTTPException(404, str(exc)) from exc
        return _json_response({"session": sid, "dropped": True})

    @router.post("/{sid}/names")
    async def set_names(sid: str, body: NamesRequest) -> JSONResponse:
        try:
            result = await manager.set_player_names_async(sid, body.player1, body.player2)
        except KeyError as exc:
            raise HTTPException(404, str(exc)) from exc
        return _json_response(result.to_dict())

    @router.post("/{sid}/round")
    async def round_complete(sid: str, body: RoundRequest) -> JSONResponse:
        try:
            result = await manager.round_complete_async(sid, body.elapsed_ms, body.penalty_seconds)
        except KeyError as exc:
            raise HTTPException(404, str(exc)) from exc
        except ValueError as exc:
            raise HTTPException(400, str(exc)) from exc
        return _json_response(result.to_dict())

    @router.get("/{sid}/summary")
    async def summary(sid: str) -> JSONResponse:
        try:
            payload = await manager.summary_async(sid)
        except KeyError as exc:
            raise HTTPException(404, str(exc)) from exc
        return _json_response(payload.to_dict())

    def _register(segment: str, action: str) -> None:
        async def _lifecycle(sid: str) -> JSONResponse:
            try:
                result = await manager.apply_async(sid, action)
            except KeyError as exc:
                raise HTTPException(404, str(exc)) from exc
            return _json_response(result.to_dict())

        router.add_api_route(f"/{{sid}}/{segment}", _lifecycle, methods=["POST"], name=action)

    for segment, action in _LIFECYCLE_ROUTES.items():
        _register(segment, action)

    return router
