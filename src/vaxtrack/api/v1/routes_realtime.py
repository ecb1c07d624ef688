from __future__ import annotations

import json
import logging
from typing import Any, Dict, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from src.vaxtrack.domain.errors import DomainError
from src.vaxtrack.domain.models.user import User
from src.vaxtrack.infra.realtime.registry import connection_registry
from src.vaxtrack.security import IdentityProvider, InvalidTokenError, get_identity_provider
from src.vaxtrack.services.messaging.service import messaging_service
from src.vaxtrack.services.users.service import user_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])


async def _send_error(websocket: WebSocket, detail: str) -> None:
    await websocket.send_json({"event": "error", "data": {"detail": detail}})


def _authenticate(provider: IdentityProvider, token: Any) -> Optional[User]:
    if not isinstance(token, str) or not token:
        return None
    try:
        claims = provider.verify(token)
    except InvalidTokenError:
        return None
    user = user_service.get_user_by_subject(claims.subject)
    if user is None or not user.is_active:
        return None
    return user


def _uuid(value: Any) -> Optional[UUID]:
    try:
        return UUID(str(value))
    except (TypeError, ValueError):
        return None


@router.websocket("/ws")
async def realtime_socket(
    websocket: WebSocket,
    provider: IdentityProvider = Depends(get_identity_provider),
) -> None:
    """Realtime channel for chat events.

    Frames are JSON objects ``{"event": <name>, "data": {...}}``. The first
    useful event must be ``join`` with a session token; it places the
    connection in the caller's room. Afterwards the client may send
    ``typing`` and ``message_read``. The server pushes ``joined``,
    ``new_message``, ``user_typing``, ``message_read_receipt`` and ``error``.
    """

    await websocket.accept()
    user: Optional[User] = None
    room: Optional[str] = None

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                await _send_error(websocket, "Invalid JSON frame")
                continue
            if not isinstance(frame, dict):
                await _send_error(websocket, "Invalid frame")
                continue

            event = frame.get("event")
            data: Dict[str, Any] = frame.get("data") if isinstance(frame.get("data"), dict) else {}

            if event == "join":
                joined = _authenticate(provider, data.get("token"))
                if joined is None:
                    await _send_error(websocket, "Authentication failed")
                    continue
                if room is not None and room != str(joined.id):
                    connection_registry.leave(room, websocket)
                user, room = joined, str(joined.id)
                connection_registry.join(room, websocket)
                logger.info("User %s joined their room", room)
                await websocket.send_json({"event": "joined", "data": {"user_id": room}})
                continue

            if user is None:
                await _send_error(websocket, "Join before sending events")
                continue

            if event == "typing":
                receiver_id = _uuid(data.get("receiver_id"))
                if receiver_id is None:
                    await _send_error(websocket, "receiver_id is required")
                    continue
                await messaging_service.relay_typing(user.id, receiver_id, bool(data.get("is_typing")))
            elif event == "message_read":
                message_id = _uuid(data.get("message_id"))
                if message_id is None:
                    await _send_error(websocket, "message_id is required")
                    continue
                try:
                    await messaging_service.mark_read(message_id, user.id)
                except DomainError as exc:
                    await _send_error(websocket, exc.detail)
            else:
                await _send_error(websocket, f"Unknown event: {event}")
    except WebSocketDisconnect:
        pass
    finally:
        if room is not None:
            connection_registry.leave(room, websocket)
            logger.info("User %s disconnected", room)
