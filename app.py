import os
from pathlib import Path

from fastapi import FastAPI

from config import Settings
from engine import UsageEngine
from models import UsageSnapshot


def _settings_from_env() -> Settings:
    config_path = os.environ.get("USAGE_GAUGE_CONFIG")
    return Settings(config_path=Path(config_path).expanduser() if config_path else None)


def create_app(engine: UsageEngine | None = None) -> FastAPI:
    engine = engine or UsageEngine(_settings_from_env())
    app = FastAPI(title="Claude Usage Gauge")
    app.state.engine = engine

    @app.on_event("startup")
    async def startup():
        engine.start()

    @app.on_event("shutdown")
    async def shutdown():
        engine.stop()

    @app.get("/api/usage", response_model=UsageSnapshot)
    async def usage():
        return engine.snapshot

    # Plain def: waiting for a pass blocks, so it runs in the threadpool
    @app.get("/api/refresh", response_model=UsageSnapshot)
    def refresh(wait: bool = False):
        return engine.refresh(wait=wait)

    @app.get("/api/health")
    async def health():
        return {
            "watches": engine.watcher.states,
            "passes": engine.scheduler.pass_count,
            "scheduler_running": engine.scheduler.is_running,
        }

    return app


app = create_app()
