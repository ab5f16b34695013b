from __future__ import annotations

import os
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from .. import __version__
from ..core import feature_flags
from ..features.session import SessionManager, create_session_router
from ..features.session.concurrency import shutdown_executor


@asynccontextmanager
async def _lifespan(_: FastAPI) -> AsyncIterator[None]:
    yield
    shutdown_executor()


def create_app(manager: SessionManager | None = None) -> FastAPI:
    application = FastAPI(title="NeuroRace", version=__version__, lifespan=_lifespan)
    application.state.session_manager = manager or SessionManager()
    application.include_router(create_session_router(application.state.session_manager))

    @application.get("/healthz")
    def healthz() -> dict[str, object]:
        return {"status": "ok", "version": __version__, "features": feature_flags.active_flags()}

    return application


app = create_app()


def main() -> None:  # pragma: no cover - runner
    import uvicorn

    host = os.environ.get("BIND", "0.0.0.0")
    port = int(os.environ.get("PORT", "8000"))
    uvicorn.run(app, host=host, port=port, factory=False)


if __name__ == "__main__":  # pragma: no cover
    main()
