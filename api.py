"""FastAPI surface for the classroom session: state, controls, overlay video."""
from __future__ import annotations

import asyncio
import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import StreamingResponse
from pydantic import BaseModel, Field
from starlette.websockets import WebSocketDisconnect

from common.config import DEFAULT_SESSION_ID, RuntimeConfig, load_runtime_config
from common.types import CycleResult, SessionSnapshot
from cv.overlay import encode_jpeg
from orchestrator import AlreadyRunningError, NotRunningError, SessionRuntime
from session.publisher import SessionPublisher
from streaming.frame_source import CameraFrameSource

logger = logging.getLogger(__name__)

OVERLAY_FPS = float(os.getenv("OVERLAY_FPS", "10"))
_DEFAULT_CORS_ORIGINS = "http://localhost:3000,http://localhost:5173"
CORS_ORIGINS = [
    o.strip() for o in os.getenv("CORS_ORIGINS", _DEFAULT_CORS_ORIGINS).split(",") if o.strip()
]

runtime: SessionRuntime | None = None


class SessionStartRequest(BaseModel):
    period_ms: int | None = Field(default=None, gt=0)


def create_runtime(config: RuntimeConfig) -> SessionRuntime:
    frame_source = CameraFrameSource(config.camera_index_or_url)
    frame_source.start()
    publisher = SessionPublisher(DEFAULT_SESSION_ID) if config.publish_enabled else None
    return SessionRuntime(frame_source=frame_source, config=config, publisher=publisher)


@asynccontextmanager
async def lifespan(_: FastAPI):
    global runtime

    config = load_runtime_config()
    runtime = create_runtime(config)
    await runtime.prepare()
    if runtime.config.autostart:
        try:
            runtime.start()
        except AlreadyRunningError:
            pass

    yield

    if runtime:
        await runtime.shutdown()
        runtime = None


app = FastAPI(
    title="Classroom Vision API",
    description="Attendance, raised hands and book recognition from a live camera",
    version="0.1.0",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["Content-Type"],
)


def _require_runtime() -> SessionRuntime:
    if not runtime:
        raise HTTPException(status_code=503, detail="Session runtime not initialized")
    return runtime


@app.get("/")
def read_root():
    return {
        "status": "ok",
        "message": "Classroom Vision API is running",
        "endpoints": {
            "session": "/api/session",
            "session_cycle": "/api/session/cycle",
            "session_ws": "/api/session/ws",
            "overlay": "/api/video/overlay",
            "health": "/health",
        },
    }


@app.get("/health")
def health_check():
    rt = _require_runtime()
    return {
        "status": "ok",
        "scheduler": rt.scheduler.state.value,
        "ports": rt.ports.available(),
        "gallery_labels": rt.gallery.labels,
        "gallery_missing": [err.label for err in rt.gallery.load_errors],
    }


@app.get("/api/session", response_model=SessionSnapshot)
def get_session() -> SessionSnapshot:
    return _require_runtime().snapshot()


@app.get("/api/session/cycle", response_model=CycleResult)
def get_latest_cycle() -> CycleResult:
    latest = _require_runtime().store.latest_cycle
    if latest is None:
        raise HTTPException(status_code=404, detail="No cycle has completed yet")
    return latest


@app.post("/api/session/start", status_code=201)
async def start_session(request: SessionStartRequest | None = None):
    rt = _require_runtime()
    period_ms = request.period_ms if request else None
    try:
        rt.start(period_ms)
    except AlreadyRunningError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return {"status": "started", **rt.scheduler.stats()}


@app.post("/api/session/stop")
async def stop_session():
    rt = _require_runtime()
    try:
        rt.stop()
    except NotRunningError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return {"status": "stopped", **rt.scheduler.stats()}


@app.post("/api/session/reset")
async def reset_session():
    rt = _require_runtime()
    rt.end_session()
    return {"status": "reset"}


@app.get("/api/video/overlay")
async def stream_overlay():
    rt = _require_runtime()
    interval = 1.0 / OVERLAY_FPS if OVERLAY_FPS > 0 else 0.1

    async def generate():
        while runtime is rt:
            image = rt.render_overlay()
            if image is None:
                await asyncio.sleep(0.05)
                continue
            jpeg = encode_jpeg(image)
            if jpeg is not None:
                yield b"--frame\r\nContent-Type: image/jpeg\r\n\r\n" + jpeg + b"\r\n"
            await asyncio.sleep(interval)

    return StreamingResponse(
        generate(),
        media_type="multipart/x-mixed-replace; boundary=frame",
        headers={"Cache-Control": "no-cache"},
    )


@app.websocket("/api/session/ws")
async def websocket_session(websocket: WebSocket):
    await websocket.accept()

    if not runtime:
        await websocket.send_json({"type": "error", "message": "Session runtime unavailable"})
        await websocket.close(code=1011)
        return

    rt = runtime
    loop = asyncio.get_running_loop()
    updates: asyncio.Queue = asyncio.Queue(maxsize=5)

    def _on_snapshot(_snapshot: SessionSnapshot) -> None:
        def enqueue() -> None:
            if updates.full():
                try:
                    updates.get_nowait()
                except asyncio.QueueEmpty:
                    pass
            try:
                updates.put_nowait(True)
            except asyncio.QueueFull:
                pass

        loop.call_soon_threadsafe(enqueue)

    async def forward() -> None:
        while True:
            await updates.get()
            await websocket.send_json({"type": "session", **rt.snapshot().model_dump(mode="json")})

    unsubscribe = rt.store.subscribe(_on_snapshot)
    sender: asyncio.Task | None = None
    try:
        await websocket.send_json({"type": "session", **rt.snapshot().model_dump(mode="json")})
        sender = asyncio.create_task(forward())
        # Client messages are ignored; reading detects the disconnect.
        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                break
    except WebSocketDisconnect:
        pass
    except Exception:
        logger.exception("Session websocket failed")
    finally:
        unsubscribe()
        if sender is not None:
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)


if __name__ == "__main__":
    import uvicorn

    logging.basicConfig(level=logging.INFO)
    uvicorn.run(app, host="0.0.0.0", port=8000, workers=1, loop="asyncio")
