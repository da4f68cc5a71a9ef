"""
Realtime hub for live dashboard updates.

Keeps the explicit set of connected subscribers per topic and pushes JSON
messages to them. Delivery is best-effort: a subscriber that fails to
receive is dropped, and publishing to a topic nobody listens to is a
successful no-op.
"""

import asyncio
import json
import logging
from datetime import datetime, timezone
from typing import Dict, Iterable, Protocol, Set

logger = logging.getLogger(__name__)

TOPICS = ("audits", "reports", "metrics", "activity", "all")


class Subscriber(Protocol):
    """Anything that can receive a text frame (a Starlette WebSocket does)."""

    async def send_text(self, data: str) -> None: ...


class ConnectionManager:
    """Manages subscriber connections for real-time updates."""

    def __init__(self, topics: Iterable[str] = TOPICS):
        # Active connections by topic
        self.connections: Dict[str, Set[Subscriber]] = {topic: set() for topic in topics}
        self.connections.setdefault("all", set())
        self._lock = asyncio.Lock()

    async def connect(self, subscriber: Subscriber, topics: Iterable[str]) -> list[str]:
        """
        Register a new connection.

        A connection that names no known topic listens on "all".
        """
        accepted = await self.subscribe(subscriber, topics)
        if not accepted:
            accepted = await self.subscribe(subscriber, ["all"])
        return accepted

    async def subscribe(self, subscriber: Subscriber, topics: Iterable[str]) -> list[str]:
        """Add subscriber to the known topics it asked for. Returns those topics."""
        accepted = []
        async with self._lock:
            for topic in topics:
                if topic in self.connections and topic not in accepted:
                    self.connections[topic].add(subscriber)
                    accepted.append(topic)
        return accepted

    async def unsubscribe(self, subscriber: Subscriber, topics: Iterable[str]) -> None:
        async with self._lock:
            for topic in topics:
                if topic in self.connections:
                    self.connections[topic].discard(subscriber)

    async def disconnect(self, subscriber: Subscriber) -> None:
        """Remove subscriber from all topics."""
        async with self._lock:
            for topic_connections in self.connections.values():
                topic_connections.discard(subscriber)

    async def broadcast(self, topic: str, message: dict) -> int:
        """
        Send message to every subscriber of topic plus the "all" listeners.

        Returns the number of subscribers that received it.
        """
        async with self._lock:
            targets = set(self.connections.get(topic, set())) | self.connections["all"]

        if not targets:
            return 0

        message = dict(message)
        message.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
        message["topic"] = topic
        message_json = json.dumps(message, default=str)

        delivered = 0
        disconnected = []
        for connection in targets:
            try:
                await connection.send_text(message_json)
                delivered += 1
            except Exception as exc:
                logger.debug("Dropping subscriber after failed send: %s", exc)
                disconnected.append(connection)

        # Clean up disconnected
        for conn in disconnected:
            await self.disconnect(conn)

        return delivered

    async def send_personal(self, subscriber: Subscriber, message: dict) -> None:
        """Send message to a specific connection."""
        await subscriber.send_text(json.dumps(message, default=str))

    def has_subscribers(self, topic: str) -> bool:
        return bool(self.connections.get(topic)) or bool(self.connections["all"])

    def get_connection_count(self) -> Dict[str, int]:
        """Get count of connections per topic."""
        return {topic: len(conns) for topic, conns in self.connections.items()}


# Global connection manager
manager = ConnectionManager()


def get_notifier() -> ConnectionManager:
    """Dependency for getting the process-wide realtime hub."""
    return manager
