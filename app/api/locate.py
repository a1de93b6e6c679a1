# app/api/locate.py
import asyncio
import logging
from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from app.core.registry import get_context

logger = logging.getLogger(__name__)

router = APIRouter(tags=["geolocation"])


async def _drain(websocket: WebSocket, outbox: asyncio.Queue) -> None:
    while True:
        message = await outbox.get()
        await websocket.send_json(message)


@router.websocket("/ws/locate")
async def locate(websocket: WebSocket):
    """
    Drive a tracker from positions the page reports.

    The page answers 'get_position' / 'watch' / 'clear_watch' commands with
    'position' and 'position_error' messages, and sends 'start' / 'stop'.
    """
    await websocket.accept()
    session = get_context().new_location_session()
    sender = asyncio.create_task(_drain(websocket, session.outbox))
    try:
        while True:
            msg = await websocket.receive_json()
            if not isinstance(msg, dict):
                session.send_status("bad_request", "Expected a JSON object")
                continue
            session.handle_message(msg)
    except WebSocketDisconnect:
        logger.info("locate socket closed")
    finally:
        await session.close()
        sender.cancel()
