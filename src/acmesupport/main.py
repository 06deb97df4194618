import json
import logging
from contextlib import asynccontextmanager
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from .agent import SessionBusyError, find_controller, get_controller, last_outcome, run_turn_stream
from .agent.suggestions import help_items_for
from .settings import get_settings


def setup_server_logging() -> logging.Logger:
    """Configure and return the server logger."""
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("acmesupport.server")
    if logger.handlers:
        return logger

    logger.setLevel(get_settings().log_level)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = RotatingFileHandler(logs_dir / "server.log", maxBytes=5_000_000, backupCount=3)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    return logger


def _cors_origins_list(origins: str) -> list[str]:
    """Parse CORS_ORIGINS into a list."""
    if not origins or origins.strip() == "*":
        return ["*"]
    return [o.strip() for o in origins.split(",") if o.strip()]


LOGGER = setup_server_logging()
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Report configuration problems at startup without refusing to start."""
    current = get_settings()
    for warning in current.config_warnings():
        LOGGER.warning("Configuration: %s", warning)
    if current.has_api_key:
        LOGGER.info("Model fallback enabled (model=%s)", current.model)
    else:
        LOGGER.warning("Model fallback disabled; tool intents remain available")

    yield

    LOGGER.info("Shutting down...")


app = FastAPI(
    title="ACME Support Bot",
    version="0.1.0",
    debug=settings.debug,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins_list(settings.cors_origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.get("/health")
async def health() -> dict[str, Any]:
    """Health check for load balancers and monitoring.

    Returns:
        dict[str, Any]: JSON response with status and configuration warnings.
    """
    return {"status": "ok", "warnings": get_settings().config_warnings()}


@app.get("/sessions/{session_id}")
async def session_snapshot(session_id: str) -> dict[str, Any]:
    """Transcript and quick-reply/help-panel content for an existing session."""
    controller = find_controller(session_id)
    if controller is None:
        raise HTTPException(status_code=404, detail=f"Unknown session: {session_id}")
    state = controller.state
    return {
        "session_id": session_id,
        "messages": [m.to_dict() for m in state.messages],
        "suggestions": list(state.suggestions),
        "help": [{"title": h.title, "content": h.content} for h in help_items_for(state.last_intent)],
        "last_intent": state.last_intent.kind.value,
        "busy": controller.busy,
        "streaming": controller.streaming,
    }


@app.websocket("/ws/chat")
async def chat_ws(websocket: WebSocket) -> None:
    """WebSocket chat endpoint: client sends { session_id, message }, server streams tokens then done.

    Args:
        websocket: WebSocket connection from client.

    Expected Input (JSON):
        {
            "session_id": str - unique session identifier,
            "message": str - user text
        }

    Response Format:
        Streams JSON objects with fields:
        - {"type": "token", "data": str} - newly revealed reply text
        - {"type": "done", "session_id": str, "intent": str, "suggestions": [...],
           "help": [...], "failed": bool} - completion message
        - {"type": "error", "data": str} - error message if applicable
    """
    await websocket.accept()
    try:
        raw = await websocket.receive_text()
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as e:
            LOGGER.error("Invalid WS payload (not JSON): %s", e)
            await websocket.send_json({"type": "error", "data": "Invalid JSON payload"})
            await websocket.close()
            return

        session_id = str(payload.get("session_id") or "default")
        message = str(payload.get("message") or "").strip()

        if not message:
            await websocket.send_json({"type": "error", "data": "Empty message"})
            await websocket.close()
            return

        LOGGER.info("WS chat start session_id=%s", session_id)

        try:
            async for token in run_turn_stream(session_id=session_id, user_message=message):
                if token:
                    await websocket.send_json({"type": "token", "data": token})
        except SessionBusyError as e:
            LOGGER.warning("Rejected turn: %s", e)
            await websocket.send_json({"type": "error", "data": str(e)})
            await websocket.close()
            return

        state = get_controller(session_id).state
        outcome = last_outcome(session_id)
        await websocket.send_json(
            {
                "type": "done",
                "session_id": session_id,
                "intent": outcome.intent.kind.value if outcome and outcome.intent else None,
                "suggestions": list(state.suggestions),
                "help": [
                    {"title": h.title, "content": h.content}
                    for h in help_items_for(state.last_intent)
                ],
                "failed": bool(outcome and outcome.failed),
            }
        )

    except WebSocketDisconnect:
        LOGGER.info("WS disconnect")
    except (ConnectionError, TimeoutError, RuntimeError) as e:
        LOGGER.exception("Unexpected WS error: %s", e)
        try:
            await websocket.send_json({"type": "error", "data": str(e)})
        except (OSError, RuntimeError, ValueError, TypeError):
            LOGGER.debug("Could not report WS error to client")
        try:
            await websocket.close()
        except (OSError, RuntimeError):
            LOGGER.debug("WS already closed")


def run() -> None:
    """Serve the app with uvicorn using the configured host and port."""
    uvicorn.run(
        "acmesupport.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    run()
