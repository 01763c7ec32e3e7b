import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List

from fastapi import WebSocket

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class SpeechClient:
    """A connected browser tab that synthesizes speech for the engine."""

    client_id: str
    websocket: WebSocket
    voice_count: int = 0
    connected_at: datetime = field(default_factory=_utcnow)
    last_activity: datetime = field(default_factory=_utcnow)

    def update_activity(self):
        """Update the last activity timestamp."""
        self.last_activity = _utcnow()


class SpeechConnectionManager:
    """Manages the WebSocket clients acting as speech output devices."""

    def __init__(self):
        self.active_connections: Dict[str, SpeechClient] = {}

    async def connect(self, websocket: WebSocket, client_id: str) -> SpeechClient:
        """Accept a new WebSocket connection and register the client."""
        await websocket.accept()
        client = SpeechClient(client_id=client_id, websocket=websocket)
        self.active_connections[client_id] = client
        logger.info(f"Speech client connected: {client_id}")
        return client

    def disconnect(self, client_id: str):
        """Remove a client."""
        if self.active_connections.pop(client_id, None) is not None:
            logger.info(f"Speech client disconnected: {client_id}")

    @property
    def client_ids(self) -> List[str]:
        return list(self.active_connections.keys())

    async def send_message(self, client_id: str, message: dict):
        """Send a JSON message to a specific client, dropping it on failure."""
        client = self.active_connections.get(client_id)
        if client:
            try:
                await client.websocket.send_json(message)
            except Exception as e:
                logger.warning(f"Error sending to {client_id}: {e}")
                self.disconnect(client_id)

    async def broadcast(self, message: dict):
        """Broadcast a message to all connected clients."""
        clients = self.client_ids
        logger.debug(f"Broadcasting {message.get('type')} to {len(clients)} clients")
        for client_id in clients:
            await self.send_message(client_id, message)
