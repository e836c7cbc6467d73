from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from pairplay.api.routes.daily_games import router as daily_games_router
from pairplay.api.routes.health import router as health_router
from pairplay.api.routes.live import router as live_router
from pairplay.api.routes.pairings import router as pairings_router
from pairplay.core.config import get_settings
from pairplay.core.logging import configure_logging
from pairplay.core.teardown import run_teardown
from pairplay.db.session import SessionLocal, dispose_engine
from pairplay.game.daily.facade import DailyGameSync
from pairplay.realtime.membership import make_pairing_members_lookup
from pairplay.realtime.presence import PresenceTracker
from pairplay.realtime.propagator import ChangePropagator
from pairplay.realtime.publisher import ChangePublisher
from pairplay.realtime.transport import RedisTransport


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    settings = get_settings()
    transport = RedisTransport.from_url(settings.redis_url)
    sync = DailyGameSync(SessionLocal, ChangePublisher(transport))
    app.state.daily_game_sync = sync
    app.state.change_propagator = ChangePropagator(
        transport,
        pairing_members=make_pairing_members_lookup(SessionLocal),
    )
    app.state.presence_tracker = PresenceTracker(
        transport,
        heartbeat_seconds=settings.presence_heartbeat_seconds,
        timeout_seconds=settings.presence_timeout_seconds,
    )
    try:
        yield
    finally:
        await run_teardown(
            [
                ("presence_tracker", app.state.presence_tracker.close),
                ("change_propagator", app.state.change_propagator.close),
                ("daily_game_sync", sync.aclose),
                ("realtime_transport", transport.aclose),
                ("database_engine", dispose_engine),
            ]
        )


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings.log_level, json_output=settings.app_env != "dev")

    app = FastAPI(
        title="PairPlay Daily Sync API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )
    app.include_router(health_router)
    app.include_router(pairings_router)
    app.include_router(daily_games_router)
    app.include_router(live_router)
    return app


app = create_app()


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "pairplay.main:app",
        host=settings.app_host,
        port=settings.app_port,
        reload=settings.app_env == "dev",
    )


if __name__ == "__main__":
    run()
