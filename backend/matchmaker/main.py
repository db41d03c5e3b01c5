"""
Matchmaker API и WebSocket.
"""
import asyncio
import contextlib
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, WebSocket
from fastapi.middleware.cors import CORSMiddleware

from .config import Config, get_config
from .engine import EventEngine
from .relay import Matchmaker
from .ws_handlers import ws_loop
from .ws_manager import WSManager

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)
logger = logging.getLogger(__name__)


def create_app(config: Config | None = None) -> FastAPI:
    config = config or get_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        manager = WSManager(config.outbox_limit)
        engine = EventEngine(Matchmaker(manager, config))
        app.state.manager = manager
        app.state.engine = engine
        tasks = [
            asyncio.create_task(engine.run()),
            asyncio.create_task(engine.run_ticker(config.probe_interval)),
        ]
        logger.info("matchmaker started, probe interval %.1fs", config.probe_interval)
        try:
            yield
        finally:
            for task in tasks:
                task.cancel()
            for task in tasks:
                with contextlib.suppress(asyncio.CancelledError):
                    await task

    app = FastAPI(title="Matchmaker", lifespan=lifespan, debug=config.debug)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(config.allowed_origins),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.get("/health")
    def health():
        return {"status": "ok"}

    @app.websocket("/ws")
    async def websocket_endpoint(ws: WebSocket):
        logger.info("WS: connection attempt from %s", ws.client)
        await ws_loop(ws, ws.app.state.manager, ws.app.state.engine)

    return app


app = create_app()
