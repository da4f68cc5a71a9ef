"""
WebSocket endpoint for real-time dashboard updates.

Provides live streaming of:
- Audit lifecycle changes
- Report generation and deletion
- Dashboard metric snapshots
- The activity feed
"""

import asyncio
import json
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query

from app.services.realtime import TOPICS, manager

logger = logging.getLogger(__name__)

router = APIRouter()

HEARTBEAT_SECONDS = 30.0


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _requested_topics(message: dict):
    """Topic names from a subscribe/unsubscribe frame, or None if malformed."""
    topics = message.get("topics", [])
    if not isinstance(topics, list) or not all(isinstance(t, str) for t in topics):
        return None
    return topics


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    topics: str = Query("all", description="Comma-separated topics: audits,reports,metrics,activity,all"),
):
    """
    WebSocket endpoint for real-time updates.

    Connect and subscribe to topics:
    - `audits`: Audit created/updated/started/completed/deleted
    - `reports`: Report created/generated/deleted
    - `metrics`: Dashboard counters
    - `activity`: New activity log entries
    - `all`: All updates

    Messages are JSON with format:
    ```json
    {
        "type": "audit_update" | "report_update" | "metrics_update" | "activity" | "heartbeat",
        "topic": "audits" | "reports" | "metrics" | "activity",
        "data": { ... },
        "timestamp": "2024-01-01T00:00:00Z"
    }
    ```
    """
    topic_list = [t.strip() for t in topics.split(",") if t.strip()]

    await websocket.accept()
    accepted = await manager.connect(websocket, topic_list)

    await manager.send_personal(websocket, {
        "type": "connected",
        "topics": accepted,
        "message": "Connected to AuditDesk real-time updates",
        "timestamp": _now(),
    })

    try:
        while True:
            # Wait for messages from client (ping/pong or commands)
            try:
                data = await asyncio.wait_for(websocket.receive_text(), timeout=HEARTBEAT_SECONDS)
            except asyncio.TimeoutError:
                await manager.send_personal(websocket, {"type": "heartbeat", "timestamp": _now()})
                continue

            try:
                message = json.loads(data)
            except json.JSONDecodeError:
                logger.debug("Ignoring malformed websocket message")
                continue
            if not isinstance(message, dict):
                continue

            msg_type = message.get("type")

            if msg_type in ("subscribe", "unsubscribe"):
                requested = _requested_topics(message)
                if requested is None:
                    await manager.send_personal(websocket, {
                        "type": "error",
                        "message": "topics must be a list of topic names",
                    })
                    continue

            if msg_type == "ping":
                await manager.send_personal(websocket, {"type": "pong", "timestamp": _now()})

            elif msg_type == "subscribe":
                new_topics = await manager.subscribe(websocket, requested)
                await manager.send_personal(websocket, {
                    "type": "subscribed",
                    "topics": new_topics,
                })

            elif msg_type == "unsubscribe":
                old_topics = [t for t in requested if t in TOPICS]
                await manager.unsubscribe(websocket, old_topics)
                await manager.send_personal(websocket, {
                    "type": "unsubscribed",
                    "topics": old_topics,
                })

    except WebSocketDisconnect:
        pass
    finally:
        await manager.disconnect(websocket)


@router.get("/ws/stats")
async def websocket_stats():
    """Get WebSocket connection statistics."""
    return {
        "connections": manager.get_connection_count(),
        "topics_available": list(TOPICS),
    }
