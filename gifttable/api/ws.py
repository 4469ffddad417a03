"""
WebSocket manager for live claim updates
"""

import json
import logging
from typing import Dict, List
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Depends
from sqlalchemy.orm import Session

from gifttable.core.db import get_db
from gifttable.core.exceptions import EventGoneError, NotFoundError
from gifttable.services.access_gate import AccessGate

logger = logging.getLogger(__name__)

class WebSocketManager:
    """Manages WebSocket connections, one room per event"""

    def __init__(self):
        # event_id -> list of websockets
        self.active_connections: Dict[int, List[WebSocket]] = {}

    async def connect(self, websocket: WebSocket, event_id: int):
        """Accept WebSocket connection and add to event room"""
        await websocket.accept()

        if event_id not in self.active_connections:
            self.active_connections[event_id] = []

        self.active_connections[event_id].append(websocket)
        logger.info(f"WebSocket connected to event {event_id}. Total connections: {len(self.active_connections[event_id])}")

    def disconnect(self, websocket: WebSocket, event_id: int):
        """Remove WebSocket connection from event room"""
        if event_id in self.active_connections:
            try:
                self.active_connections[event_id].remove(websocket)
                logger.info(f"WebSocket disconnected from event {event_id}. Remaining connections: {len(self.active_connections[event_id])}")

                # Clean up empty rooms
                if not self.active_connections[event_id]:
                    del self.active_connections[event_id]
            except ValueError:
                # WebSocket was not in the list
                pass

    async def send_personal_message(self, message: dict, websocket: WebSocket):
        """Send message to specific WebSocket"""
        try:
            await websocket.send_text(json.dumps(message))
        except (RuntimeError, WebSocketDisconnect) as e:
            logger.error(f"Error sending personal message: {e}")

    async def broadcast_to_event(self, event_id: int, message: dict):
        """Broadcast message to all WebSockets connected to an event"""
        if event_id not in self.active_connections:
            return

        # Create list copy to avoid modification during iteration
        connections = self.active_connections[event_id].copy()

        disconnected = []
        for websocket in connections:
            try:
                await websocket.send_text(json.dumps(message))
            except (RuntimeError, WebSocketDisconnect) as e:
                logger.error(f"Error broadcasting to websocket: {e}")
                disconnected.append(websocket)

        # Clean up disconnected websockets
        for websocket in disconnected:
            self.disconnect(websocket, event_id)

    async def broadcast_claim_change(self, event_id: int, gift_item_id: int, claimed: bool, claimed_by_name: str = None):
        await self.broadcast_to_event(event_id, {
            "type": "gift_claimed" if claimed else "gift_released",
            "gift_item_id": gift_item_id,
            "claimed_by_name": claimed_by_name,
        })

    def get_connection_count(self, event_id: int) -> int:
        """Get number of active connections for an event"""
        return len(self.active_connections.get(event_id, []))

# Global WebSocket manager instance
websocket_manager = WebSocketManager()

# Router for WebSocket endpoints
router = APIRouter()

@router.websocket("/events/{token}")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str,
    db: Session = Depends(get_db)
):
    """Live gift list updates for the attendee holding ``token``"""
    try:
        attendee, event = AccessGate.resolve_attendee(db, token)
    except NotFoundError:
        await websocket.close(code=4004, reason="Not found")
        return
    except EventGoneError:
        await websocket.close(code=4010, reason="Event archived")
        return

    event_id = event.id
    welcome_message = {
        "type": "connection",
        "message": f"Connected to event: {event.subject}",
        "attendee": attendee.name,
    }
    # the session is not needed while the socket idles
    db.close()

    await websocket_manager.connect(websocket, event_id)

    try:
        welcome_message["connection_count"] = websocket_manager.get_connection_count(event_id)
        await websocket_manager.send_personal_message(welcome_message, websocket)

        # Keep connection alive and answer heartbeats
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
