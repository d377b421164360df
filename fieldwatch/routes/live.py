"""
Bridge between a live subscription and a WebSocket client.

Subscription callbacks run on the event loop and only enqueue; one task
drains the queue to the socket while another reads client messages, and
whichever finishes first (usually the client disconnecting) ends both.
"""

import asyncio
import json
import logging
from typing import Any, Callable, Optional

from fastapi import WebSocket, WebSocketDisconnect

logger = logging.getLogger(__name__)


async def _pump(websocket: WebSocket, queue: asyncio.Queue, serialize: Callable[[Any], dict]) -> None:
    while True:
        payload = await queue.get()
        await websocket.send_json(serialize(payload))


async def _listen(websocket: WebSocket, on_message: Optional[Callable[[dict], None]]) -> None:
    while True:
        frame = await websocket.receive()
        if frame["type"] == "websocket.disconnect":
            raise WebSocketDisconnect(frame.get("code", 1000), frame.get("reason"))
        text = frame.get("text")
        if text is None:
            await websocket.send_json({"type": "error", "detail": "Messages must be JSON text frames"})
            continue
        try:
            message = json.loads(text)
        except json.JSONDecodeError:
            await websocket.send_json({"type": "error", "detail": "Messages must be JSON objects"})
            continue
        if on_message is not None and isinstance(message, dict):
            on_message(message)


async def run_live_socket(
    websocket: WebSocket,
    subscribe: Callable[[Callable[[Any], None]], Any],
    serialize: Callable[[Any], dict],
    on_message: Optional[Callable[[Any, dict], None]] = None,
) -> None:
    """
    Stream every update of a live subscription to an accepted WebSocket.

    Args:
        subscribe: opens the subscription given a callback, returns its handle
        serialize: turns one update into a JSON-safe dict
        on_message: optional handler(subscription, message) for client messages
    """
    queue: asyncio.Queue = asyncio.Queue()
    subscription = subscribe(queue.put_nowait)

    handler = None
    if on_message is not None:
        def handler(message: dict) -> None:
            on_message(subscription, message)

    tasks = [
        asyncio.create_task(_pump(websocket, queue, serialize)),
        asyncio.create_task(_listen(websocket, handler)),
    ]
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            error = task.exception()
            if error is not None and not isinstance(error, WebSocketDisconnect):
                raise error
    finally:
        subscription.close()
        logger.debug("Live socket closed, subscription released")
