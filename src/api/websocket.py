"""WebSocket endpoint for real-time notifications."""

import asyncio
import logging

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from src.api.dependencies import get_user_from_token
from src.database import SessionLocal
from src.services.realtime import (
    RealtimeService,
    drain_pending_notifications,
    notification_channel,
)

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/v1/ws", tags=["websocket"])

PING_INTERVAL_SECONDS = 30


@router.websocket("/notifications")
async def websocket_notifications(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    """WebSocket endpoint for live notifications.

    Authentication via token query parameter (WebSocket doesn't support headers).
    Notifications queued while the user was offline are sent first, then the
    user's Redis pub/sub channel is forwarded as it arrives.
    """
    # Manual DB session for WebSocket (can't use Depends normally)
    db = SessionLocal()
    realtime_service = RealtimeService()
    user_id: int | None = None

    try:
        user = get_user_from_token(db, token)
        if not user:
            await websocket.close(code=4001, reason="Invalid token")
            return
        user_id = user.id
        db.close()

        await websocket.accept()
        logger.info(f"WebSocket connected: user={user_id}")

        # Subscribe before flushing so nothing published meanwhile is queued unseen
        await realtime_service.subscribe(notification_channel(user_id))
        for pending in drain_pending_notifications(user_id):
            await websocket.send_json({"type": "notification", "data": pending})

        async def handle_messages() -> None:
            """Receive messages from Redis and forward to WebSocket."""
            async for message in realtime_service.listen():
                try:
                    await websocket.send_json({"type": "notification", "data": message})
                except WebSocketDisconnect:
                    break
                except Exception as e:
                    logger.error(f"Error sending WebSocket message: {e}")
                    break

        async def handle_ping() -> None:
            """Send periodic pings to keep connection alive."""
            while True:
                try:
                    await asyncio.sleep(PING_INTERVAL_SECONDS)
                    await websocket.send_json({"type": "ping"})
                except Exception:
                    break

        async def handle_client() -> None:
            """Handle incoming messages from client (pong responses)."""
            while True:
                try:
                    data = await websocket.receive_json()
                    if data.get("type") == "pong":
                        continue  # Keepalive acknowledgment
                except WebSocketDisconnect:
                    break
                except Exception:
                    break

        tasks = [
            asyncio.create_task(handle_messages()),
            asyncio.create_task(handle_ping()),
            asyncio.create_task(handle_client()),
        ]
        # The client going away ends the session
        await tasks[2]
        for task in tasks[:2]:
            task.cancel()
        await asyncio.gather(*tasks[:2], return_exceptions=True)

    except WebSocketDisconnect:
        logger.info(f"WebSocket disconnected: user={user_id}")
    except Exception as e:
        logger.error(f"WebSocket error: {e}", exc_info=True)
    finally:
        db.close()
        await realtime_service.cleanup()
