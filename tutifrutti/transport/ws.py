# tutifrutti/transport/ws.py
from __future__ import annotations

import json
import uuid
import ipaddress
from urllib.parse import urlparse

import structlog
from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from tutifrutti.domain.lifecycle.handlers import handle_disconnect
from tutifrutti.transport.dispatcher import dispatch_message
from tutifrutti.transport.protocols import OutError

logger = structlog.get_logger()

router = APIRouter()


def _is_private_ip(host: str) -> bool:
    """Return True if host is a private IP (192.168.x.x, 10.x.x.x, 172.16-31.x.x)."""
    try:
        ip = ipaddress.ip_address(host)
        return ip.is_private
    except ValueError:
        return False


def origin_allowed(origin: str | None, settings) -> bool:
    if origin is None:
        # non-browser clients send no Origin header
        return True
    allowed = {o.strip() for o in settings.WS_ALLOWED_ORIGINS.split(",") if o.strip()}
    if origin in allowed:
        return True
    if settings.WS_ALLOW_LAN_ORIGINS:
        o = urlparse(origin)
        return _is_private_ip(o.hostname or "") and o.port == settings.WS_DEV_PORT
    return False


@router.websocket("/ws")
async def ws_endpoint(websocket: WebSocket):
    app = websocket.app
    settings = app.state.settings

    if not origin_allowed(websocket.headers.get("origin"), settings):
        logger.warning("ws_origin_rejected", origin=websocket.headers.get("origin"))
        await websocket.close(code=1008)
        return

    await websocket.accept()

    sid = uuid.uuid4().hex[:12]
    wsman = app.state.wsman
    await wsman.add(sid, websocket)
    logger.info("ws_connected", sid=sid)

    try:
        while True:
            text = await websocket.receive_text()

            if len(text.encode("utf-8")) > settings.WS_MAX_MESSAGE_BYTES:
                err = OutError(code="MESSAGE_TOO_LARGE", message="Payload too large")
                await websocket.send_json(err.to_wire())
                continue
            try:
                raw = json.loads(text)
            except ValueError:
                await websocket.send_json(OutError(code="BAD_MESSAGE", message="Invalid JSON").to_wire())
                continue

            to_sender, to_everyone = await dispatch_message(app=app, sid=sid, raw=raw)

            # unicast
            for e in to_sender:
                await websocket.send_json(e)

            # directory-wide (room list changes)
            for e in to_everyone:
                await wsman.broadcast_all(e)

    except WebSocketDisconnect:
        logger.info("ws_disconnected", sid=sid)

    finally:
        await handle_disconnect(app=app, sid=sid)
        limiter = getattr(app.state, "limiter", None)
        if limiter is not None:
            limiter.forget(sid)
        await wsman.remove(sid)
