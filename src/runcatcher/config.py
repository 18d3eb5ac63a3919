"""
Configuration module for RunCatcher.

Handles loading and validating configuration from:
1. JSON config file
2. Environment variables
3. CLI arguments (applied by runcatcher.main)
"""

import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Dict, Any, List


logger = logging.getLogger(__name__)


@dataclass
class ServerConfig:
    """Configuration for the capture service."""
    host: str = "0.0.0.0"
    port: int = 3000
    debug: bool = False
    captures_dir: str = "captures"

    # Blanket request body cap shared by every route
    max_content_length: int = 10 * 1024 * 1024


@dataclass
class MotionConfig:
    """Configuration for the motion classifier."""
    # Pixels per second. The legacy value of 0.1 px/s flags almost any
    # detector jitter as running; see DESIGN.md for the recalibration.
    threshold: float = 100.0
    matcher: str = "greedy"


@dataclass
class CaptureConfig:
    """Configuration for the capture pipeline."""
    cooldown: float = 2.0          # seconds between accepted captures
    padding: int = 50              # pixels added around the face box
    jpeg_quality: int = 80
    recent_limit: int = 20         # captures kept for display


@dataclass
class CameraConfig:
    """Configuration for the webcam source."""
    source: str = "0"
    width: int = 640
    height: int = 480
    display: bool = False


@dataclass
class DetectorConfig:
    """Configuration for the face detector adapter."""
    # "haar" (bundled with OpenCV) or "yolo" (ultralytics face model)
    backend: str = "haar"
    # Tried in order for the yolo backend, Haar cascade is the fallback
    model_sources: List[str] = field(default_factory=list)
    confidence: float = 0.4


@dataclass
class ClientConfig:
    """Main client (watcher) configuration."""
    server_url: str = "http://localhost:3000"
    upload_timeout: float = 10.0
    debug: bool = False

    motion: MotionConfig = field(default_factory=MotionConfig)
    capture: CaptureConfig = field(default_factory=CaptureConfig)
    camera: CameraConfig = field(default_factory=CameraConfig)
    detector: DetectorConfig = field(default_factory=DetectorConfig)


@dataclass
class RunCatcherConfig:
    """Combined configuration for both sides."""
    server: ServerConfig = field(default_factory=ServerConfig)
    client: ClientConfig = field(default_factory=ClientConfig)


def load_config(config_path: Optional[str] = None) -> RunCatcherConfig:
    """
    Load configuration from file and environment.

    Priority:
    1. Environment variables (highest)
    2. Config file
    3. Defaults (lowest)

    Args:
        config_path: Path to JSON config file

    Returns:
        RunCatcherConfig: Validated configuration
    """
    config = RunCatcherConfig()

    if config_path:
        file_config = _load_json_config(config_path)
        config = _merge_config(config, file_config)
    else:
        default_paths = [
            Path("runcatcher.json"),
            Path("config.json"),
        ]
        for path in default_paths:
            if path.exists():
                file_config = _load_json_config(str(path))
                config = _merge_config(config, file_config)
                break

    config = _apply_env_overrides(config)
    _validate(config)

    return config


def _load_json_config(path: str) -> Dict[str, Any]:
    """Load configuration from JSON file."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            return json.load(f)
    except FileNotFoundError:
        logger.warning("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid JSON in config file: %s", e)
        return {}


def _merge_config(config: RunCatcherConfig, file_data: Dict[str, Any]) -> RunCatcherConfig:
    """Merge file configuration into RunCatcherConfig."""
    # Server settings
    server_data = file_data.get('server', {})
    config.server.host = server_data.get('host', config.server.host)
    config.server.port = server_data.get('port', file_data.get('port', config.server.port))
    config.server.debug = server_data.get('debug', config.server.debug)
    config.server.captures_dir = server_data.get('captures_dir', config.server.captures_dir)
    config.server.max_content_length = server_data.get(
        'max_content_length', config.server.max_content_length
    )

    # Client settings
    client_data = file_data.get('client', {})
    config.client.server_url = client_data.get('server_url', config.client.server_url)
    config.client.upload_timeout = client_data.get('upload_timeout', config.client.upload_timeout)
    config.client.debug = client_data.get('debug', config.client.debug)

    motion_data = client_data.get('motion', {})
    config.client.motion.threshold = motion_data.get('threshold', config.client.motion.threshold)
    config.client.motion.matcher = motion_data.get('matcher', config.client.motion.matcher)

    capture_data = client_data.get('capture', {})
    config.client.capture.cooldown = capture_data.get('cooldown', config.client.capture.cooldown)
    config.client.capture.padding = capture_data.get('padding', config.client.capture.padding)
    config.client.capture.jpeg_quality = capture_data.get('jpeg_quality', config.client.capture.jpeg_quality)
    config.client.capture.recent_limit = capture_data.get('recent_limit', config.client.capture.recent_limit)

    camera_data = client_data.get('camera', {})
    config.client.camera.source = str(camera_data.get('source', config.client.camera.source))
    config.client.camera.width = camera_data.get('width', config.client.camera.width)
    config.client.camera.height = camera_data.get('height', config.client.camera.height)
    config.client.camera.display = camera_data.get('display', config.client.camera.display)

    detector_data = client_data.get('detector', {})
    config.client.detector.backend = detector_data.get('backend', config.client.detector.backend)
    config.client.detector.model_sources = list(
        detector_data.get('model_sources', config.client.detector.model_sources)
    )
    config.client.detector.confidence = detector_data.get('confidence', config.client.detector.confidence)

    return config


def _apply_env_overrides(config: RunCatcherConfig) -> RunCatcherConfig:
    """Apply environment variable overrides."""
    # Server
    config.server.host = os.getenv('RUNCATCHER_HOST', config.server.host)
    config.server.port = int(os.getenv('PORT', config.server.port))
    config.server.captures_dir = os.getenv('CAPTURES_DIR', config.server.captures_dir)
    debug = os.getenv('RUNCATCHER_DEBUG', '').lower()
    if debug:
        config.server.debug = debug in ('true', '1', 'yes')
        config.client.debug = config.server.debug

    # Client
    config.client.server_url = os.getenv('RUNCATCHER_SERVER_URL', config.client.server_url)
    config.client.camera.source = os.getenv('CAMERA_SOURCE', config.client.camera.source)
    config.client.motion.threshold = float(os.getenv('MOTION_THRESHOLD', config.client.motion.threshold))
    config.client.capture.cooldown = float(os.getenv('CAPTURE_COOLDOWN', config.client.capture.cooldown))
    config.client.detector.backend = os.getenv('DETECTOR_BACKEND', config.client.detector.backend)

    model_path = os.getenv('MODEL_PATH', '')
    if model_path:
        config.client.detector.model_sources = [model_path]

    return config


def _validate(config: RunCatcherConfig) -> None:
    """Reject values the pipeline cannot work with."""
    if not 0 < config.server.port < 65536:
        raise ValueError(f"Invalid port: {config.server.port}")
    if config.client.capture.cooldown < 0:
        raise ValueError("Capture cooldown must not be negative")
    if config.client.capture.padding < 0:
        raise ValueError("Capture padding must not be negative")
    if not 1 <= config.client.capture.jpeg_quality <= 100:
        raise ValueError("JPEG quality must be between 1-100")
    if config.client.detector.backend not in ('haar', 'yolo'):
        raise ValueError(f"Unknown detector backend: {config.client.detector.backend}")


def save_config(config: RunCatcherConfig, path: str) -> bool:
    """Save configuration to JSON file."""
    try:
        data = {
            'server': {
                'host': config.server.host,
                'port': config.server.port,
                'debug': config.server.debug,
                'captures_dir': config.server.captures_dir,
                'max_content_length': config.server.max_content_length,
            },
            'client': {
                'server_url': config.client.server_url,
                'upload_timeout': config.client.upload_timeout,
                'debug': config.client.debug,
                'motion': {
                    'threshold': config.client.motion.threshold,
                    'matcher': config.client.motion.matcher,
                },
                'capture': {
                    'cooldown': config.client.capture.cooldown,
                    'padding': config.client.capture.padding,
                    'jpeg_quality': config.client.capture.jpeg_quality,
                    'recent_limit': config.client.capture.recent_limit,
                },
                'camera': {
                    'source': config.client.camera.source,
                    'width': config.client.camera.width,
                    'height': config.client.camera.height,
                    'display': config.client.camera.display,
                },
                'detector': {
                    'backend': config.client.detector.backend,
                    'model_sources': config.client.detector.model_sources,
                    'confidence': config.client.detector.confidence,
                },
            },
        }

        with open(path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)
        return True
    except OSError as e:
        logger.error("Failed to save config: %s", e)
        return False
