import base64

import cv2
import numpy as np
import pytest

from runcatcher.capture.types import Box
from runcatcher.config import ServerConfig
from runcatcher.main import create_app


@pytest.fixture
def frame():
    """640x480 BGR frame with some structure so JPEG output is not trivial."""
    image = np.full((480, 640, 3), 90, dtype=np.uint8)
    cv2.rectangle(image, (200, 150), (320, 300), (200, 180, 160), -1)
    cv2.circle(image, (260, 210), 20, (30, 30, 30), -1)
    return image


@pytest.fixture
def jpeg_bytes(frame):
    success, jpeg = cv2.imencode('.jpg', frame[100:300, 150:350])
    assert success
    return jpeg.tobytes()


@pytest.fixture
def data_uri(jpeg_bytes):
    return "data:image/jpeg;base64," + base64.b64encode(jpeg_bytes).decode('ascii')


@pytest.fixture
def captures_dir(tmp_path):
    return tmp_path / "captures"


@pytest.fixture
def server(captures_dir):
    config = ServerConfig(captures_dir=str(captures_dir), max_content_length=1024 * 1024)
    app, socketio, app_context = create_app(config)
    app.config['TESTING'] = True
    return app, socketio, app_context


@pytest.fixture
def client(server):
    app, _, _ = server
    return app.test_client()


@pytest.fixture
def face():
    return Box(200.0, 150.0, 120.0, 150.0)
