import json
import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterator

import httpx
import streamlit as st
from websocket import WebSocketException, create_connection

from acmesupport.models import GREETING, INITIAL_SUGGESTIONS


def setup_client_logging() -> logging.Logger:
    logs_dir = Path("logs")
    logs_dir.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger("acmesupport.streamlit")
    if logger.handlers:
        return logger

    logger.setLevel(logging.INFO)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s - %(message)s")

    ch = logging.StreamHandler()
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = RotatingFileHandler(logs_dir / "client.log", maxBytes=2_000_000, backupCount=3)
    fh.setFormatter(fmt)
    logger.addHandler(fh)
    return logger


LOGGER = setup_client_logging()


def _http_base(ws_url: str) -> str:
    """ws://host:port/ws/chat -> http://host:port"""
    base = ws_url.split("/ws/", 1)[0]
    return base.replace("wss://", "https://", 1).replace("ws://", "http://", 1)


def fetch_json(url: str) -> dict[str, Any] | None:
    """GET a JSON document from the backend; None if unreachable."""
    try:
        resp = httpx.get(url, timeout=5)
        resp.raise_for_status()
        return resp.json()
    except (httpx.HTTPError, ValueError) as e:
        LOGGER.warning("GET %s failed: %s", url, e)
        return None


def ws_token_stream(ws_url: str, session_id: str, message: str, done: dict[str, Any]) -> Iterator[str]:
    """Connect to backend WS, send message, yield revealed reply text.

    The final "done" payload (suggestions, help panel, intent) is stored in ``done``.
    """
    LOGGER.info("Connecting ws_url=%s session_id=%s", ws_url, session_id)
    ws = create_connection(ws_url, timeout=60)
    try:
        ws.send(json.dumps({"session_id": session_id, "message": message}))
        while True:
            payload = json.loads(ws.recv())
            t = payload.get("type")
            if t == "token":
                yield payload.get("data") or ""
            elif t == "done":
                LOGGER.info(
                    "WS done session_id=%s intent=%s failed=%s",
                    payload.get("session_id"),
                    payload.get("intent"),
                    payload.get("failed"),
                )
                done.update(payload)
                return
            elif t == "error":
                err = payload.get("data") or "Unknown error"
                LOGGER.error("WS error: %s", err)
                raise RuntimeError(err)
    finally:
        ws.close()


st.set_page_config(page_title="ACME Support", page_icon="💬", layout="centered")

st.title("Customer Support Bot")

with st.sidebar:
    st.subheader("Connection")
    default_ws = "ws://localhost:8000/ws/chat"
    ws_url = st.text_input("WebSocket URL", value=default_ws)
    session_id = st.text_input("Session ID", value=st.session_state.get("session_id", "streamlit-demo"))
    st.session_state["session_id"] = session_id

if st.session_state.get("loaded_session") != session_id:
    # Unknown sessions 404 until their first turn; start from the greeting.
    snapshot = fetch_json(f"{_http_base(ws_url)}/sessions/{session_id}") or {}
    st.session_state["messages"] = snapshot.get("messages", [{"role": "model", "content": GREETING}])
    st.session_state["suggestions"] = snapshot.get("suggestions", list(INITIAL_SUGGESTIONS))
    st.session_state["help"] = snapshot.get("help", [])
    st.session_state["loaded_session"] = session_id

health = fetch_json(f"{_http_base(ws_url)}/health") or {}
for warning in health.get("warnings", []):
    st.warning(warning)

with st.sidebar:
    st.markdown("---")
    with st.expander("Helpful info", expanded=True):
        for item in st.session_state.get("help", []):
            st.markdown(f"**{item['title']}**  \n{item['content']}")

for m in st.session_state["messages"]:
    with st.chat_message("user" if m["role"] == "user" else "assistant"):
        st.markdown(m["content"])

picked = None
columns = st.columns(max(1, len(st.session_state.get("suggestions", []))))
for col, suggestion in zip(columns, st.session_state.get("suggestions", [])):
    if col.button(suggestion, key=f"suggestion-{suggestion}"):
        picked = suggestion

prompt = st.chat_input("Type your message…") or picked
if prompt:
    st.session_state["messages"].append({"role": "user", "content": prompt})
    with st.chat_message("user"):
        st.markdown(prompt)

    done: dict[str, Any] = {}
    with st.chat_message("assistant"):
        with st.spinner("Typing…"):
            try:
                full = st.write_stream(ws_token_stream(ws_url, session_id, prompt, done))
            except (RuntimeError, WebSocketException, OSError) as e:
                full = f"Error: {e}"
                st.error(full)

    st.session_state["messages"].append({"role": "model", "content": full})
    if done:
        st.session_state["suggestions"] = done.get("suggestions", [])
        st.session_state["help"] = done.get("help", [])
    st.rerun()
