from __future__ import annotations

import pytest

from tests.utils_env import set_test_env


@pytest.fixture()
def store(monkeypatch, tmp_path):
    set_test_env(monkeypatch, tmp_path)
    import mindbank.storage.object_store as object_store

    monkeypatch.setattr(object_store.time, "sleep", lambda s: None)
    monkeypatch.setattr(object_store, "_bucket_ok", False)
    return object_store


def test_local_directory_when_minio_is_off(store, tmp_path):
    key = store.put_bytes(object_key="audio/abc.mp3", data=b"ID3", content_type="audio/mpeg")
    assert key == "audio/abc.mp3"
    assert (tmp_path / "obj" / "audio" / "abc.mp3").read_bytes() == b"ID3"
    assert store.get_bytes(object_key="audio/abc.mp3") == b"ID3"
    assert store.get_bytes(object_key="audio/missing.mp3") is None
    assert store.minio_ready() is True


def test_keys_outside_the_local_directory_are_refused(store, tmp_path):
    with pytest.raises(PermissionError):
        store.put_bytes(object_key="../outside.bin", data=b"x")
    assert not (tmp_path / "outside.bin").exists()
    assert store.get_bytes(object_key="../../etc/passwd") is None


def test_unreachable_minio_falls_back_to_local(store, monkeypatch):
    from mindbank.core.config import settings

    attempts: list[int] = []

    def _down():
        attempts.append(1)
        raise ConnectionError("connection refused")

    monkeypatch.setattr(settings, "MINIO_ENABLED", True)
    monkeypatch.setattr(store, "_client", _down)

    store.put_bytes(object_key="audio/k.mp3", data=b"clip")
    assert len(attempts) == 2
    assert store.get_bytes(object_key="audio/k.mp3") == b"clip"
    assert store.minio_ready() is False


def test_bucket_is_created_once(store, monkeypatch):
    from mindbank.core.config import settings

    class _Minio:
        def __init__(self) -> None:
            self.made: list[str] = []
            self.checks = 0
            self.objects: dict[str, bytes] = {}

        def bucket_exists(self, bucket):
            self.checks += 1
            return bool(self.made)

        def make_bucket(self, bucket):
            self.made.append(bucket)

        def put_object(self, bucket, key, stream, length, content_type):
            self.objects[key] = stream.read(length)

    fake = _Minio()
    monkeypatch.setattr(settings, "MINIO_ENABLED", True)
    monkeypatch.setattr(store, "_client", lambda: fake)

    store.put_bytes(object_key="audio/a.mp3", data=b"a")
    store.put_bytes(object_key="audio/b.mp3", data=b"b")
    assert fake.made == [settings.MINIO_BUCKET]
    assert fake.checks == 1
    assert fake.objects == {"audio/a.mp3": b"a", "audio/b.mp3": b"b"}
