"""
Lightning Realtime Session Host
===============================

FastAPI host for one realtime session.

The presentation layer reads the display state and image bytes from here
and writes prompt/seed edits back. The session starts and stops with the
application lifespan.

Endpoints:
    GET  /                  - Service information
    GET  /health            - Liveness probe (is process alive?)
    GET  /ready             - Readiness probe (connection open?)
    GET  /display           - Current image handle + inference time
    GET  /images/{handle}   - Image bytes behind a live handle
    PUT  /input             - Prompt and/or seed edit
    GET  /status            - Session status and metrics
    WS   /ws/display        - Display updates as they arrive
"""

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional, Union

from fastapi import FastAPI, HTTPException, Request, Response, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from lightning_realtime.config import Settings, settings as default_settings
from lightning_realtime.stream.connection import Connector
from lightning_realtime.sync.session import RealtimeSession


logger = logging.getLogger(__name__)


DISPLAY_POLL_SECONDS = 0.05


class InputUpdate(BaseModel):
    """Body of PUT /input. Omitted fields are left unchanged."""

    prompt: Optional[str] = Field(default=None)
    seed: Optional[Union[int, str]] = Field(default=None)


def get_session(request: Request) -> RealtimeSession:
    return request.app.state.session


def display_payload(session: RealtimeSession) -> dict:
    """JSON view of the current DisplayState plus the failure indicator."""
    state = session.display
    last_error = session.reporter.last_error
    payload = {
        "image_uri": None,
        "width": None,
        "height": None,
        "inference_ms": None,
        "sequence": None,
        "last_error": str(last_error) if last_error else None,
    }
    if state is not None:
        payload.update(
            image_uri=state.image.uri,
            width=state.image.width,
            height=state.image.height,
            inference_ms=state.inference_ms,
            sequence=state.sequence,
        )
    return payload


def create_app(
    settings: Optional[Settings] = None,
    connector: Optional[Connector] = None,
) -> FastAPI:
    """
    Build the host application.

    Args:
        settings: Configuration; the module-level settings if None
        connector: Transport factory override (tests)
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app.state.startup_time = time.time()
        logger.info(f"Starting {settings.app.name} {settings.app.version}")
        logger.info(f"Realtime endpoint: {settings.connection.endpoint_url}")

        session = RealtimeSession(settings, connector=connector)
        app.state.session = session
        await session.start()

        yield

        logger.info("Shutting down session...")
        await session.stop()
        logger.info("Shutdown complete")

    app = FastAPI(
        title=settings.app.name,
        version=settings.app.version,
        lifespan=lifespan,
    )

    @app.get("/")
    async def root() -> dict:
        return {
            "name": settings.app.name,
            "version": settings.app.version,
            "endpoint": settings.connection.endpoint_url,
            "connection_key": settings.connection.connection_key,
        }

    @app.get("/health")
    async def health(request: Request) -> dict:
        return {
            "status": "ok",
            "uptime_seconds": round(time.time() - request.app.state.startup_time, 3),
        }

    @app.get("/ready")
    async def ready(request: Request) -> JSONResponse:
        session = get_session(request)
        connection = session.connection
        is_ready = connection is not None and connection.is_open
        return JSONResponse(
            status_code=200 if is_ready else 503,
            content={
                "ready": is_ready,
                "connection": connection.state.value if connection else None,
            },
        )

    @app.get("/display")
    async def display(request: Request) -> dict:
        return display_payload(get_session(request))

    @app.get("/images/{handle_id}")
    async def image(handle_id: str, request: Request) -> Response:
        decoded = get_session(request).images.get(handle_id)
        if decoded is None:
            raise HTTPException(status_code=404, detail="Unknown or released image handle")
        return Response(content=decoded.data, media_type=decoded.content_type)

    @app.put("/input")
    async def update_input(update: InputUpdate, request: Request) -> dict:
        session = get_session(request)
        if update.seed is not None:
            try:
                session.set_seed(update.seed)
            except ValueError as e:
                raise HTTPException(status_code=422, detail=str(e))
        if update.prompt is not None:
            session.set_prompt(update.prompt)
        return {
            "prompt": session.inputs.prompt,
            "seed": session.inputs.seed,
            "revision": session.inputs.revision,
        }

    @app.get("/status")
    async def status(request: Request) -> dict:
        return get_session(request).status()

    @app.websocket("/ws/display")
    async def display_stream(websocket: WebSocket) -> None:
        """Push the display payload whenever a new frame is displayed."""
        await websocket.accept()
        logger.info("Client connected to /ws/display")
        session: RealtimeSession = websocket.app.state.session
        last_sequence: Optional[int] = None

        try:
            while session.started:
                state = session.display
                if state is not None and state.sequence != last_sequence:
                    await websocket.send_json(display_payload(session))
                    last_sequence = state.sequence
                await asyncio.sleep(DISPLAY_POLL_SECONDS)
        except WebSocketDisconnect:
            pass
        except Exception as e:
            logger.warning(f"WebSocket error: {e}")
        finally:
            logger.info("Client disconnected from /ws/display")

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "lightning_realtime.main:app",
        host=default_settings.server.host,
        port=default_settings.server.port,
        log_level=default_settings.logging.level.lower(),
    )
