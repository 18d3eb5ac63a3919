import pytest

from runcatcher.errors import InvalidCaptureError
from runcatcher.storage import CaptureStore, decode_image, timestamp_filename


def test_filename_from_server_time():
    # 2024-05-01T12:30:45.123Z
    assert timestamp_filename(1714566645.123) == "runner_2024-05-01T12-30-45-123Z.jpg"


def test_decode_strips_jpeg_prefix(data_uri, jpeg_bytes):
    assert decode_image(data_uri) == jpeg_bytes


def test_decode_missing_image():
    with pytest.raises(InvalidCaptureError):
        decode_image("")


def test_save_writes_exact_bytes(captures_dir, jpeg_bytes):
    store = CaptureStore(str(captures_dir))

    filename = store.save(jpeg_bytes, received_at=1714566645.123)

    assert filename == "runner_2024-05-01T12-30-45-123Z.jpg"
    assert (captures_dir / filename).read_bytes() == jpeg_bytes


def test_same_millisecond_does_not_overwrite(captures_dir):
    store = CaptureStore(str(captures_dir))

    first = store.save(b"first", received_at=1714566645.123)
    second = store.save(b"second", received_at=1714566645.123)

    assert first != second
    assert second == "runner_2024-05-01T12-30-45-123Z_1.jpg"
    assert (captures_dir / first).read_bytes() == b"first"
    assert (captures_dir / second).read_bytes() == b"second"


def test_list_captures_newest_first(captures_dir, jpeg_bytes):
    store = CaptureStore(str(captures_dir))
    saved = [store.save(jpeg_bytes, received_at=1714566645.0 + i) for i in range(3)]
    (captures_dir / "notes.txt").write_text("not a capture")

    listed = store.list_captures()

    assert [c.filename for c in listed] == list(reversed(saved))
    assert listed[0].to_dict()['path'] == f"/captures/{saved[-1]}"
    assert listed[0].to_dict()['created'].endswith("Z")
    assert store.count() == 4


def test_resolve_rejects_paths_outside_directory(captures_dir, jpeg_bytes):
    store = CaptureStore(str(captures_dir))
    (captures_dir.parent / "secret.jpg").write_bytes(b"secret")
    filename = store.save(jpeg_bytes)

    assert store.resolve(filename) == captures_dir.resolve() / filename
    assert store.resolve("../secret.jpg") is None
    assert store.resolve("missing.jpg") is None


def test_decode_rejects_non_string():
    with pytest.raises(InvalidCaptureError):
        decode_image(12345)
