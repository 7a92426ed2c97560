# tutifrutti/main.py
from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tutifrutti.settings import Settings, get_settings
from tutifrutti.domain.room.directory import RoomDirectory
from tutifrutti.transport.outbox import Outbox
from tutifrutti.transport.ratelimit import limiter_from_settings
from tutifrutti.transport.rooms import router as rooms_router
from tutifrutti.transport.ws import router as ws_router
from tutifrutti.transport.ws_manager import WSManager
from tutifrutti.util.logs import configure_logging
from tutifrutti.util.scheduler import LoopScheduler


def create_app(settings: Settings | None = None) -> FastAPI:
    settings = settings or get_settings()
    configure_logging(settings.LOG_LEVEL, json=settings.LOG_JSON)

    app = FastAPI(title=settings.APP_NAME)
    app.state.settings = settings
    allowed_origins = [o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()]
    if "null" not in allowed_origins:
        allowed_origins.append("null")

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.on_event("startup")
    async def _startup() -> None:
        scheduler = LoopScheduler()
        wsman = WSManager()
        outbox = Outbox(wsman)
        directory = RoomDirectory(
            scheduler=scheduler,
            publish=outbox.publish,
            retention_sec=settings.ROOM_RETENTION_SEC,
        )
        outbox.recipients = directory.sessions_in

        app.state.scheduler = scheduler
        app.state.wsman = wsman
        app.state.outbox = outbox
        app.state.directory = directory
        app.state.limiter = limiter_from_settings(settings, clock=scheduler.now_ms)
        outbox.start()

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        app.state.directory.close()
        await app.state.outbox.flush()
        await app.state.outbox.stop()

    @app.get("/health")
    async def health():
        return {"ok": True, "rooms": len(app.state.directory)}

    app.include_router(ws_router)
    app.include_router(rooms_router)
    return app


app = create_app()
