"""Main FastAPI application exposing the WebSocket relay and its polling fallback."""

import json
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sse_starlette.sse import EventSourceResponse

from relay.core.config import Settings, get_settings
from relay.core.exceptions import NotRegisteredError
from relay.core.server import RelayServer
from relay.models.schemas import JoinRequest, SendRequest

logger = logging.getLogger(__name__)


def _parse_cursor(since: Optional[str]) -> int:
    """Lenient cursor parsing: anything that is not an integer means 0."""
    try:
        return int(since) if since else 0
    except ValueError:
        return 0


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    """
    Build the relay application.

    Args:
        settings: Settings to use; defaults to the environment-derived settings
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper())
    relay = RelayServer(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        relay.sweeper.start()
        logger.info(f"Relay server running on port {settings.port}")
        yield
        logger.info("Shutting down relay server")
        await relay.sweeper.stop()

    app = FastAPI(title="Chat Relay", version="1.0.0", lifespan=lifespan)
    app.state.relay = relay

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(NotRegisteredError)
    async def not_registered_handler(request: Request, exc: NotRegisteredError):
        return JSONResponse(status_code=401, content={"error": "Not registered"})

    @app.get("/")
    async def root():
        """Root endpoint returning API information."""
        return {
            "message": "Chat Relay",
            "version": "1.0.0",
            "endpoints": {
                "websocket": "/ws",
                "join": "/join",
                "send": "/send",
                "messages": "/messages",
                "clients": "/clients",
                "health": "/health",
                "logs": "/logs"
            }
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {
            "status": "ok",
            "clientsOnline": await relay.registry.count(),
            "uptime": relay.uptime
        }

    @app.post("/join")
    async def join(body: JoinRequest):
        count = await relay.polling.join(body.id, body.nickname)
        return {"success": True, "clientsOnline": count}

    @app.post("/send")
    async def send(body: SendRequest):
        await relay.polling.send(body.id, body.text, nickname=body.nickname)
        return {"success": True}

    @app.get("/messages")
    async def messages(since: Optional[str] = None, id: Optional[str] = None):
        new_messages, count = await relay.polling.messages(_parse_cursor(since), id)
        return {
            "messages": [message.to_dict() for message in new_messages],
            "clientsOnline": count
        }

    @app.get("/clients")
    async def clients():
        return {"clients": await relay.polling.clients()}

    @app.get("/logs")
    async def logs():
        """Stream relay activity as Server-Sent Events."""
        async def event_generator():
            async for entry in relay.activity.subscribe():
                yield {"event": "activity", "data": json.dumps(entry)}

        return EventSourceResponse(event_generator())

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        """WebSocket endpoint for push clients."""
        await relay.push.serve(websocket)

    @app.websocket("/")
    async def websocket_root(websocket: WebSocket):
        """Same as /ws, for clients that connect to the bare server URL."""
        await relay.push.serve(websocket)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "relay.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower()
    )
