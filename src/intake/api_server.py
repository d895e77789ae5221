"""Intake REST/WebSocket API server (FastAPI)."""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.websockets import WebSocketState

from .config import IntakeConfig
from .process import IntakeProcess

logger = logging.getLogger(__name__)


class WebSocketObserver:
    """
    Observer backed by a WebSocket connection.

    Broadcasts arrive on worker threads; messages are scheduled onto the
    server's event loop and not awaited.
    """

    def __init__(self, websocket: WebSocket, loop: asyncio.AbstractEventLoop):
        self.websocket = websocket
        self.loop = loop
        self._open = True

    def is_open(self) -> bool:
        return (
            self._open
            and not self.loop.is_closed()
            and self.websocket.client_state == WebSocketState.CONNECTED
        )

    def send(self, message: str) -> None:
        future = asyncio.run_coroutine_threadsafe(self.websocket.send_text(message), self.loop)
        future.add_done_callback(self._on_sent)

    def _on_sent(self, future) -> None:
        if future.cancelled():
            return
        error = future.exception()
        if error is not None:
            logger.debug(f"WebSocket send failed, closing observer: {error}")
            self._open = False

    def close(self) -> None:
        self._open = False


def create_app(
    process: Optional[IntakeProcess] = None,
    config: Optional[IntakeConfig] = None,
) -> FastAPI:
    """
    Build the API around an intake process.

    If no process is given one is created from ``config`` and closed when
    the application shuts down.
    """
    owns_process = process is None
    process = process or IntakeProcess(config=config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        if owns_process:
            await run_in_threadpool(process.close)

    app = FastAPI(title="Folder Intake API", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.process = process

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    @app.post("/api/sync")
    async def sync_folder(request: Request):
        try:
            body = await request.json()
        except Exception:
            body = {}
        folder_path = body.get("folderPath") if isinstance(body, dict) else None

        if not folder_path or not str(folder_path).strip():
            return JSONResponse({"message": "Error: Missing folderPath"}, status_code=400)

        result = await run_in_threadpool(process.sync_folder, folder_path)
        return JSONResponse(result.to_dict(), status_code=200 if result.ok else 500)

    @app.delete("/api/sync")
    async def unwatch_folder(folderPath: str = ""):
        if not folderPath.strip():
            return JSONResponse({"message": "Error: Missing folderPath"}, status_code=400)
        removed = await run_in_threadpool(process.unwatch, folderPath)
        return {"removed": removed}

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    @app.get("/api/queue")
    def queue_status():
        items = process.queue.snapshot()
        return {"queueLength": len(items), "items": items}

    @app.get("/api/results")
    def results():
        return {"resumes": process.results.to_list()}

    @app.get("/api/health")
    def health():
        return {
            "status": "ok",
            "watching": [str(p) for p in process.watched_folders()],
            "queueLength": process.queue.size(),
            "observers": len(process.broadcaster),
        }

    # ------------------------------------------------------------------
    # Observers
    # ------------------------------------------------------------------

    @app.websocket("/ws")
    async def observer_socket(websocket: WebSocket):
        await websocket.accept()
        observer = WebSocketObserver(websocket, asyncio.get_running_loop())
        process.broadcaster.add(observer)
        logger.debug("Observer connected")
        try:
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.debug("Observer disconnected")
        finally:
            observer.close()
            process.broadcaster.remove(observer)

    return app
