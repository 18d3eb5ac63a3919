"""
WebSocket (Socket.IO) event handlers for live capture updates.

Events sent to clients:
- captures_count: number of stored captures, sent on connect and on request
- capture_saved: a new capture was written to disk
- captures_update: full listing, sent on request_captures
- captures_error: the listing could not be read
"""

import logging
import time
from typing import Any, Dict

from flask import request
from flask_socketio import SocketIO, emit


logger = logging.getLogger(__name__)


def setup_websocket_handlers(
    socketio: SocketIO,
    app_context: Dict[str, Any]
) -> None:
    """
    Setup Socket.IO event handlers.

    Args:
        socketio: Flask-SocketIO instance
        app_context: Dictionary containing:
            - store: CaptureStore instance
    """
    store = app_context['store']

    @socketio.on('connect')
    def handle_connect(auth=None):
        """Handle client connection."""
        logger.info("Client connected: %s", getattr(request, 'sid', 'unknown'))
        emit('captures_count', {'count': store.count()})

    @socketio.on('disconnect')
    def handle_disconnect(*args):
        """Handle client disconnection."""
        logger.info("Client disconnected: %s", getattr(request, 'sid', 'unknown'))

    @socketio.on('request_captures')
    def handle_request_captures():
        """Send the current capture listing to the requesting client."""
        try:
            captures = store.list_captures()
        except OSError as e:
            logger.error("Error listing captures: %s", e)
            emit('captures_error', {'message': 'Failed to list captures'})
            return
        emit('captures_update', [c.to_dict() for c in captures])

    @socketio.on('ping')
    def handle_ping():
        """Handle ping from client."""
        emit('pong', {'timestamp': time.time()})


class CaptureBroadcaster:
    """
    Helper class to broadcast capture events to all connected clients.

    Usage:
        broadcaster = CaptureBroadcaster(socketio)
        broadcaster.broadcast_capture({'filename': ..., 'path': ...})
    """

    def __init__(self, socketio: SocketIO):
        self.socketio = socketio

    def broadcast_capture(self, capture: dict) -> None:
        """Broadcast a newly saved capture to all clients."""
        try:
            self.socketio.emit('capture_saved', capture)
        except Exception as e:
            logger.error("Capture broadcast error: %s", e)
