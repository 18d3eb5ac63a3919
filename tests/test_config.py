import json

import pytest

from runcatcher.config import load_config, save_config


ENV_VARS = (
    'PORT', 'RUNCATCHER_HOST', 'RUNCATCHER_DEBUG', 'CAPTURES_DIR', 'RUNCATCHER_SERVER_URL',
    'CAMERA_SOURCE', 'MOTION_THRESHOLD', 'CAPTURE_COOLDOWN', 'DETECTOR_BACKEND', 'MODEL_PATH',
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def test_defaults():
    config = load_config()

    assert config.server.port == 3000
    assert config.server.max_content_length == 10 * 1024 * 1024
    assert config.client.capture.cooldown == 2.0
    assert config.client.capture.padding == 50
    assert config.client.capture.jpeg_quality == 80
    assert config.client.detector.backend == "haar"


def test_port_from_environment(monkeypatch):
    monkeypatch.setenv('PORT', '8123')
    assert load_config().server.port == 8123


def test_file_then_environment(tmp_path, monkeypatch):
    path = tmp_path / "custom.json"
    path.write_text(json.dumps({
        'server': {'port': 4000, 'captures_dir': '/data/captures'},
        'client': {'motion': {'threshold': 250.0}, 'camera': {'source': 1}},
    }))
    monkeypatch.setenv('MOTION_THRESHOLD', '300')

    config = load_config(str(path))

    assert config.server.port == 4000
    assert config.server.captures_dir == '/data/captures'
    assert config.client.camera.source == '1'
    assert config.client.motion.threshold == 300.0


def test_model_path_env_replaces_sources(monkeypatch):
    monkeypatch.setenv('DETECTOR_BACKEND', 'yolo')
    monkeypatch.setenv('MODEL_PATH', 'weights/face.pt')

    config = load_config()

    assert config.client.detector.backend == 'yolo'
    assert config.client.detector.model_sources == ['weights/face.pt']


def test_invalid_backend(monkeypatch):
    monkeypatch.setenv('DETECTOR_BACKEND', 'mediapipe')
    with pytest.raises(ValueError):
        load_config()


def test_invalid_json_keeps_defaults(tmp_path):
    path = tmp_path / "broken.json"
    path.write_text("{not json")
    assert load_config(str(path)).server.port == 3000


def test_saved_config_is_picked_up_from_working_directory(tmp_path):
    config = load_config()
    config.client.capture.cooldown = 5.0
    assert save_config(config, str(tmp_path / "runcatcher.json"))

    assert load_config().client.capture.cooldown == 5.0
