"""
API module for the capture service.

Components:
- routes: REST endpoints (capture upload, listing, health)
- websocket: Socket.IO handlers and capture broadcaster
"""

from .routes import create_api_blueprint
from .websocket import setup_websocket_handlers, CaptureBroadcaster

__all__ = ['create_api_blueprint', 'setup_websocket_handlers', 'CaptureBroadcaster']
