import asyncio
import json
import logging
from asyncio import Queue, Task
from typing import Any, Dict, List

from fastapi import WebSocket, WebSocketDisconnect


class WebSocketManager:
    """Holds WebSocket connections and broadcasts queued messages to all of them."""

    def __init__(self):
        self._connections: List[WebSocket] = []
        self._message_queue: Queue = Queue()
        self._sender_task: Task | None = None
        logging.info("WebSocketManager initialiseret")

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    def start_sender_task(self) -> None:
        if self._sender_task is None:
            self._sender_task = asyncio.create_task(self._message_sender_task())
            logging.info("WebSocket message sender task started.")

    async def stop_sender_task(self) -> None:
        if self._sender_task:
            self._sender_task.cancel()
            try:
                await self._sender_task
            except asyncio.CancelledError:
                pass
            self._sender_task = None
            logging.info("WebSocket message sender task stopped.")

    async def _message_sender_task(self) -> None:
        while True:
            try:
                message_data = await self._message_queue.get()
                await self._broadcast_to_connections(message_data)
                self._message_queue.task_done()
            except asyncio.CancelledError:
                logging.debug("Message sender task cancelled.")
                raise
            except Exception as e:
                logging.error(f"Error in message sender task: {e}")

    async def _broadcast_to_connections(self, message_data: Dict[str, Any]) -> None:
        if not self._connections:
            return

        message_json = json.dumps(message_data)
        disconnected_clients = []

        for websocket in list(self._connections):
            try:
                await websocket.send_text(message_json)
            except WebSocketDisconnect:
                disconnected_clients.append(websocket)
                logging.debug("Client disconnected during broadcast")
            except Exception as e:
                disconnected_clients.append(websocket)
                logging.warning(f"Fejl ved sending til client: {e}")

        for websocket in disconnected_clients:
            self.disconnect(websocket)

    async def connect(self, websocket: WebSocket) -> None:
        await websocket.accept()
        self._connections.append(websocket)
        logging.info(f"WebSocket client connected. Total connections: {len(self._connections)}")

    def disconnect(self, websocket: WebSocket) -> None:
        if websocket in self._connections:
            self._connections.remove(websocket)
        logging.info(f"WebSocket client disconnected. Total connections: {len(self._connections)}")

    def broadcast_message(self, message_data: Dict[str, Any]) -> None:
        """Queue a message for every connected client."""
        self._message_queue.put_nowait(message_data)
