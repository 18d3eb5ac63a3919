"""
REST API routes for the capture service.

Endpoints:
- POST /capture              store one runner snapshot
- GET  /captures             list stored snapshots, newest first
- GET  /captures/<filename>  raw JPEG bytes
- GET  /health               service status and capture count
"""

import logging
import time

from flask import Blueprint, abort, jsonify, request, send_file

from ..capture.types import isoformat_utc
from ..errors import InvalidCaptureError
from ..storage import CaptureStore, decode_image


logger = logging.getLogger(__name__)


def create_api_blueprint(app_context: dict) -> Blueprint:
    """
    Create Flask Blueprint with all capture routes.

    Args:
        app_context: Dictionary containing:
            - store: CaptureStore instance
            - broadcaster: CaptureBroadcaster instance (optional)

    Returns:
        Blueprint: Flask blueprint with routes
    """
    api = Blueprint('api', __name__)

    store: CaptureStore = app_context['store']
    broadcaster = app_context.get('broadcaster')

    # =========================================================================
    # Capture Endpoints
    # =========================================================================

    @api.route('/capture', methods=['POST'])
    def capture():
        """Store a runner snapshot sent by the watcher."""
        data = request.get_json(silent=True)
        if not isinstance(data, dict) or not data.get('image'):
            return jsonify({'error': 'No image data provided'}), 400

        motion_speed = data.get('motionSpeed')
        client_timestamp = data.get('timestamp')

        try:
            image_bytes = decode_image(data['image'])
        except InvalidCaptureError as e:
            return jsonify({'error': 'Invalid image data', 'details': str(e)}), 400

        received_at = time.time()
        try:
            filename = store.save(image_bytes, received_at)
        except Exception as e:
            logger.error("Error capturing runner: %s", e)
            return jsonify({
                'error': 'Failed to capture runner',
                'details': str(e),
            }), 500

        logger.info("Runner captured: %s", filename)
        logger.info("Motion speed: %s px/s", motion_speed)
        logger.info("Timestamp: %s", client_timestamp)

        if broadcaster:
            broadcaster.broadcast_capture({
                'filename': filename,
                'path': f"/captures/{filename}",
                'motionSpeed': motion_speed,
                'timestamp': isoformat_utc(received_at),
            })

        return jsonify({
            'success': True,
            'filename': filename,
            'message': 'Runner captured successfully',
        })

    @api.route('/captures')
    def list_captures():
        """List all captured images, newest first."""
        try:
            captures = store.list_captures()
        except OSError as e:
            logger.error("Error listing captures: %s", e)
            return jsonify({'error': 'Failed to list captures'}), 500

        return jsonify([c.to_dict() for c in captures])

    @api.route('/captures/<path:filename>')
    def get_capture(filename):
        """Serve a captured image."""
        path = store.resolve(filename)
        if path is None:
            abort(404)
        return send_file(path, mimetype='image/jpeg')

    # =========================================================================
    # Status Endpoints
    # =========================================================================

    @api.route('/health')
    def health_check():
        """Health check endpoint for monitoring."""
        return jsonify({
            'status': 'OK',
            'timestamp': isoformat_utc(time.time()),
            'capturesCount': store.count(),
        })

    return api
