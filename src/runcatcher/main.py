"""
RunCatcher - entry point for the capture service and the webcam watcher.

Usage:
    runcatcher serve [options]
    runcatcher watch [options]

Serve options:
    --config PATH        Path to config file (default: runcatcher.json)
    --port PORT          Server port (default: 3000, or $PORT)
    --host HOST          Server host (default: 0.0.0.0)
    --captures-dir DIR   Where snapshots are stored (default: captures)
    --debug              Enable debug mode

Watch options:
    --server URL         Capture service URL (default: http://localhost:3000)
    --source SRC         Camera index, video file or stream URL
    --threshold PX_S     Running speed threshold in pixels/second
    --cooldown SECONDS   Minimum time between captures
    --detector NAME      haar or yolo
    --model PATH         YOLO face model (repeatable, tried in order)
    --display            Show the annotated preview window
"""

import argparse
import logging
import signal
import sys
from typing import Optional

from flask import Flask, jsonify
from flask_cors import CORS
from flask_socketio import SocketIO
from werkzeug.exceptions import HTTPException, RequestEntityTooLarge

from .api.routes import create_api_blueprint
from .api.websocket import setup_websocket_handlers, CaptureBroadcaster
from .capture.stream_capture import StreamCapture
from .capture.uploader import CaptureUploader
from .config import load_config, ServerConfig, ClientConfig
from .storage import CaptureStore


logger = logging.getLogger(__name__)


def setup_logging(debug: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if debug else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )
    logging.getLogger("werkzeug").setLevel(logging.INFO)


# ==============================================================================
# Flask App Factory
# ==============================================================================

def create_app(config: ServerConfig) -> tuple:
    """
    Create and configure Flask application.

    Args:
        config: Server configuration

    Returns:
        tuple: (app, socketio, app_context)
    """
    app = Flask(__name__)
    app.config['MAX_CONTENT_LENGTH'] = config.max_content_length
    CORS(app)

    socketio = SocketIO(
        app,
        cors_allowed_origins="*",
        async_mode="threading",
    )

    store = CaptureStore(config.captures_dir)

    app_context = {
        'store': store,
        'broadcaster': CaptureBroadcaster(socketio),
        'socketio': socketio,
        'config': config,
    }

    app.register_blueprint(create_api_blueprint(app_context))
    setup_websocket_handlers(socketio, app_context)
    _register_error_handlers(app)

    app.app_context_data = app_context

    return app, socketio, app_context


def _register_error_handlers(app: Flask) -> None:

    @app.errorhandler(RequestEntityTooLarge)
    def handle_too_large(e):
        return jsonify({
            'error': 'Request too large',
            'message': f"Body exceeds {app.config['MAX_CONTENT_LENGTH']} bytes",
        }), 413

    @app.errorhandler(Exception)
    def handle_error(e):
        if isinstance(e, HTTPException):
            return e
        logger.exception("Server error: %s", e)
        return jsonify({
            'error': 'Internal server error',
            'message': str(e),
        }), 500


# ==============================================================================
# Runners
# ==============================================================================

def run_server(config: ServerConfig) -> None:
    """
    Run the capture service.

    Args:
        config: Server configuration
    """
    app, socketio, app_context = create_app(config)
    store = app_context['store']

    def shutdown_handler(signum, frame):
        print("\nShutting down RunCatcher server...")
        sys.exit(0)

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)

    print("=" * 60)
    print(f"RunCatcher server running on http://localhost:{config.port}")
    print(f"Captures directory: {store.directory}")
    print(f"Health check: http://localhost:{config.port}/health")
    print("Press Ctrl+C to stop")
    print("=" * 60)

    socketio.run(
        app,
        host=config.host,
        port=config.port,
        debug=config.debug,
        allow_unsafe_werkzeug=True
    )


def run_watcher(config: ClientConfig) -> int:
    """
    Run the webcam watcher in the foreground.

    Returns:
        int: Process exit code
    """
    uploader = CaptureUploader(config.server_url, timeout=config.upload_timeout)
    capture = StreamCapture(config, uploader=uploader, on_capture=_print_capture)

    def shutdown_handler(signum, frame):
        print("\nStopping detection...")
        capture.stop()

    signal.signal(signal.SIGINT, shutdown_handler)
    signal.signal(signal.SIGTERM, shutdown_handler)

    if uploader.health() is None:
        print(f"[Watch] Capture service not reachable at {config.server_url}, captures will be lost")

    print("=" * 60)
    print("RunCatcher watcher")
    print(f"  - Camera: {config.camera.source} ({config.camera.width}x{config.camera.height})")
    print(f"  - Detector: {config.detector.backend}")
    print(f"  - Motion threshold: {config.motion.threshold} px/s")
    print(f"  - Cooldown: {config.capture.cooldown}s")
    print(f"  - Server: {config.server_url}")
    print("=" * 60)

    try:
        capture.run()
    finally:
        uploader.close()

    print(f"[Watch] {capture.status}")
    stats = capture.get_stats()
    print(f"[Watch] Frames: {stats['frames_processed']}, runners: {stats['runner_count']}")
    return 1 if capture.error else 0


def _print_capture(event) -> None:
    print(f"[Watch] {event.label} - Motion Speed: {event.motion_speed:.2f} px/s - Captured: {event.iso_timestamp}")


# ==============================================================================
# CLI Entry Point
# ==============================================================================

def parse_args(argv: Optional[list] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="runcatcher",
        description="RunCatcher - catch running faces on a webcam",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  runcatcher serve
  runcatcher serve --port 8080 --captures-dir /data/captures
  runcatcher watch --display
  runcatcher watch --detector yolo --model weights/yolov8n-face.pt
        """
    )
    parser.add_argument('--config', '-c', type=str, default=None,
                        help='Path to configuration file (JSON)')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')

    # Also accepted after the command; SUPPRESS keeps a leading --debug intact
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--debug', action='store_true', default=argparse.SUPPRESS,
                        help='Enable debug logging')

    commands = parser.add_subparsers(dest='command', required=True)

    serve = commands.add_parser('serve', parents=[common], help='Run the capture service')
    serve.add_argument('--port', '-p', type=int, default=None, help='Server port (default: 3000)')
    serve.add_argument('--host', '-H', type=str, default=None, help='Server host (default: 0.0.0.0)')
    serve.add_argument('--captures-dir', type=str, default=None, help='Captures directory')

    watch = commands.add_parser('watch', parents=[common], help='Watch the webcam for running faces')
    watch.add_argument('--server', type=str, default=None, help='Capture service URL')
    watch.add_argument('--source', '-s', type=str, default=None, help='Camera index, file or stream URL')
    watch.add_argument('--threshold', type=float, default=None, help='Running threshold (px/s)')
    watch.add_argument('--cooldown', type=float, default=None, help='Seconds between captures')
    watch.add_argument('--detector', choices=['haar', 'yolo'], default=None, help='Detector backend')
    watch.add_argument('--model', '-m', action='append', default=None, help='YOLO face model path')
    watch.add_argument('--display', action='store_true', help='Show the annotated preview window')

    return parser.parse_args(argv)


def main(argv: Optional[list] = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = load_config(args.config)

    if args.debug:
        config.server.debug = True
        config.client.debug = True

    if args.command == 'serve':
        if args.port is not None:
            config.server.port = args.port
        if args.host is not None:
            config.server.host = args.host
        if args.captures_dir is not None:
            config.server.captures_dir = args.captures_dir

        setup_logging(config.server.debug)
        run_server(config.server)
        return 0

    client = config.client
    if args.server is not None:
        client.server_url = args.server
    if args.source is not None:
        client.camera.source = args.source
    if args.threshold is not None:
        client.motion.threshold = args.threshold
    if args.cooldown is not None:
        client.capture.cooldown = args.cooldown
    if args.model:
        client.detector.model_sources = args.model
        client.detector.backend = 'yolo'
    if args.detector is not None:
        client.detector.backend = args.detector
    if args.display:
        client.camera.display = True

    setup_logging(client.debug)
    return run_watcher(client)


if __name__ == '__main__':
    sys.exit(main())
