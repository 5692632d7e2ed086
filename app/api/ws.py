"""
WebSocket manager for real-time guest list updates
"""

import json
import logging
from typing import Dict, List, Optional
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends, Query
from sqlalchemy.orm import Session

from app.core.db import get_db
from app.services.repositories import EventRepo, PersistenceError, UserRepo
from app.utils.security import resolve_user_id

logger = logging.getLogger(__name__)

# Close codes for refused viewers
WS_UNAUTHORIZED = 4401
WS_FORBIDDEN = 4403
WS_EVENT_NOT_FOUND = 4004
WS_TRY_AGAIN_LATER = 1013

class WebSocketManager:
    """Keeps one room of viewers per event"""

    def __init__(self):
        # event_id -> list of websockets
        self.active_connections: Dict[str, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, event_id: str):
        await websocket.accept()
        self.active_connections.setdefault(event_id, []).append(websocket)
        logger.info(f"WebSocket connected to event {event_id}. Total connections: {len(self.active_connections[event_id])}")

    def disconnect(self, websocket: WebSocket, event_id: str):
        room = self.active_connections.get(event_id)
        if room is None or websocket not in room:
            return

        room.remove(websocket)
        logger.info(f"WebSocket disconnected from event {event_id}. Remaining connections: {len(room)}")
        if not room:
            del self.active_connections[event_id]

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        try:
            await websocket.send_text(json.dumps(message))
        except (RuntimeError, WebSocketDisconnect) as e:
            logger.error(f"Error sending personal message: {e}")

    async def broadcast_to_event(self, event_id: str, message: dict):
        """Send ``message`` to every viewer of an event, dropping dead sockets"""
        if event_id not in self.active_connections:
            logger.debug(f"No active connections for event {event_id}")
            return

        disconnected = []
        for websocket in list(self.active_connections[event_id]):
            try:
                await websocket.send_text(json.dumps(message))
            except (RuntimeError, WebSocketDisconnect) as e:
                logger.warning(f"Error broadcasting to websocket on event {event_id}: {e}")
                disconnected.append(websocket)

        for websocket in disconnected:
            self.disconnect(websocket, event_id)

    def get_connection_count(self, event_id: str) -> int:
        return len(self.active_connections.get(event_id, []))

    def get_all_connection_counts(self) -> Dict[str, int]:
        return {
            event_id: len(connections)
            for event_id, connections in self.active_connections.items()
        }

# Global WebSocket manager instance
websocket_manager = WebSocketManager()

router = APIRouter()

@router.websocket("/events/{event_id}")
async def websocket_endpoint(
    websocket: WebSocket,
    event_id: str,
    token: Optional[str] = Query(None),
    db: Session = Depends(get_db)
):
    """Live feed of an event's guest list changes, for approved members only.

    Browsers cannot set headers on a WebSocket handshake, so the bearer token
    comes in the ``token`` query parameter.
    """
    user_id = resolve_user_id(token)
    if user_id is None:
        await websocket.close(code=WS_UNAUTHORIZED, reason="Invalid authentication token")
        return

    try:
        user = UserRepo.get(db, user_id)
        event = EventRepo.get(db, event_id)
    except PersistenceError as e:
        logger.error(f"Error loading websocket viewer {user_id} on event {event_id}: {e}")
        await websocket.close(code=WS_TRY_AGAIN_LATER, reason="Failed to load the event")
        return

    if user is None or not user.approved:
        await websocket.close(code=WS_FORBIDDEN, reason="Approved members only")
        return
    if event is None:
        await websocket.close(code=WS_EVENT_NOT_FOUND, reason="Event not found")
        return

    await websocket_manager.connect(websocket, event_id)

    try:
        welcome_message = {
            "type": "connection",
            "message": f"Connected to event: {event.name}",
            "event_id": event_id,
            "version": event.version,
            "connection_count": websocket_manager.get_connection_count(event_id)
        }
        await websocket_manager.send_personal_message(welcome_message, websocket)

        while True:
            data = await websocket.receive_text()
            try:
                client_message = json.loads(data)
            except json.JSONDecodeError:
                logger.warning(f"Invalid JSON received from WebSocket: {data}")
                continue

            if isinstance(client_message, dict) and client_message.get("type") == "ping":
                pong_message = {
                    "type": "pong",
                    "timestamp": client_message.get("timestamp")
                }
                await websocket_manager.send_personal_message(pong_message, websocket)

    except WebSocketDisconnect:
        pass
    finally:
        websocket_manager.disconnect(websocket, event_id)

@router.get("/stats")
async def websocket_stats():
    """Connection counts per event (for debugging)"""
    counts = websocket_manager.get_all_connection_counts()
    return {
        "total_events_with_connections": len(counts),
        "connection_counts": counts,
        "total_connections": sum(counts.values())
    }
