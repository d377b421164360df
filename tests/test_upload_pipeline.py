"""Upload pipeline tests."""

import asyncio
import io

import pytest
import requests

from fieldwatch.core.errors import UploadError, UploadFailureCause
from fieldwatch.models.upload import MediaKind
from fieldwatch.services.memory_store import InMemoryObjectStore
from fieldwatch.services.upload_pipeline import ObjectKeyFactory, UploadPipeline

JPEG_BYTES = b"\xff\xd8\xff\xe0fake-jpeg"


class RecordingObjectStore(InMemoryObjectStore):
    def __init__(self, fail_put=None, fail_url=None):
        super().__init__()
        self.calls = []
        self.fail_put = fail_put
        self.fail_url = fail_url

    async def put(self, key, data, content_type, metadata):
        self.calls.append(("put", key))
        if self.fail_put is not None:
            raise self.fail_put
        await super().put(key, data, content_type, metadata)

    async def durable_url(self, key):
        self.calls.append(("durable_url", key))
        if self.fail_url is not None:
            raise self.fail_url
        return await super().durable_url(key)


def test_image_upload_returns_durable_url_after_write() -> None:
    store = RecordingObjectStore()
    pipeline = UploadPipeline(store)

    result = asyncio.run(pipeline.upload(JPEG_BYTES, MediaKind.IMAGE))

    assert result.content_type == "image/jpeg"
    assert result.object_key.startswith("images/")
    assert result.object_key.endswith(".jpg")
    assert result.durable_url.startswith("memory://fieldwatch/")
    assert store.calls == [("put", result.object_key), ("durable_url", result.object_key)]

    data, content_type, metadata = store.objects[result.object_key]
    assert data == JPEG_BYTES
    assert content_type == "image/jpeg"
    assert "createdAt" in metadata


def test_audio_upload_uses_recordings_prefix() -> None:
    store = RecordingObjectStore()
    pipeline = UploadPipeline(store)

    result = asyncio.run(pipeline.upload(io.BytesIO(b"voice-note"), MediaKind.AUDIO))

    assert result.content_type == "audio/mpeg"
    assert result.object_key.startswith("recordings/audio_")
    assert result.object_key.endswith(".m4a")
    _, _, metadata = store.objects[result.object_key]
    assert metadata["originalName"] == result.object_key.split("/")[-1]


def test_store_failure_yields_upload_error_and_no_url() -> None:
    store = RecordingObjectStore(fail_put=ConnectionError("bucket unreachable"))
    pipeline = UploadPipeline(store)

    with pytest.raises(UploadError) as excinfo:
        asyncio.run(pipeline.upload(JPEG_BYTES, MediaKind.IMAGE))

    assert excinfo.value.cause == UploadFailureCause.NETWORK_FAILURE
    assert [call for call, _ in store.calls] == ["put"]
    assert store.objects == {}


def test_store_permission_error_maps_to_permission_denied() -> None:
    store = RecordingObjectStore(fail_put=PermissionError("forbidden"))
    pipeline = UploadPipeline(store)

    with pytest.raises(UploadError) as excinfo:
        asyncio.run(pipeline.upload(JPEG_BYTES, MediaKind.IMAGE))

    assert excinfo.value.cause == UploadFailureCause.PERMISSION_DENIED


def test_url_resolution_failure_is_network_failure() -> None:
    store = RecordingObjectStore(fail_url=ConnectionError("metadata lookup failed"))
    pipeline = UploadPipeline(store)

    with pytest.raises(UploadError) as excinfo:
        asyncio.run(pipeline.upload(JPEG_BYTES, MediaKind.IMAGE))

    assert excinfo.value.cause == UploadFailureCause.NETWORK_FAILURE


def test_empty_media_is_rejected_before_upload() -> None:
    store = RecordingObjectStore()
    pipeline = UploadPipeline(store)

    with pytest.raises(UploadError) as excinfo:
        asyncio.run(pipeline.upload(b"", MediaKind.IMAGE))

    assert excinfo.value.cause == UploadFailureCause.ENCODING_FAILURE
    assert store.calls == []


def test_oversized_media_is_rejected() -> None:
    store = RecordingObjectStore()
    pipeline = UploadPipeline(store, max_bytes=4)

    with pytest.raises(UploadError) as excinfo:
        asyncio.run(pipeline.upload(b"12345", MediaKind.AUDIO))

    assert excinfo.value.cause == UploadFailureCause.ENCODING_FAILURE
    assert store.calls == []


def test_reads_local_file_and_file_uri(tmp_path) -> None:
    photo = tmp_path / "photo 1.jpg"
    photo.write_bytes(JPEG_BYTES)
    store = RecordingObjectStore()
    pipeline = UploadPipeline(store)

    from_path = asyncio.run(pipeline.upload(str(photo), MediaKind.IMAGE))
    from_uri = asyncio.run(pipeline.upload(photo.as_uri(), MediaKind.IMAGE))

    assert store.objects[from_path.object_key][0] == JPEG_BYTES
    assert store.objects[from_uri.object_key][0] == JPEG_BYTES
    assert from_path.object_key != from_uri.object_key


def test_missing_local_file_is_encoding_failure(tmp_path) -> None:
    pipeline = UploadPipeline(RecordingObjectStore())

    with pytest.raises(UploadError) as excinfo:
        asyncio.run(pipeline.upload(tmp_path / "missing.jpg", MediaKind.IMAGE))

    assert excinfo.value.cause == UploadFailureCause.ENCODING_FAILURE


def test_remote_fetch_failure_is_network_failure(monkeypatch) -> None:
    def broken_get(url, timeout):
        raise requests.ConnectionError("no route to host")

    monkeypatch.setattr(requests, "get", broken_get)
    store = RecordingObjectStore()
    pipeline = UploadPipeline(store)

    with pytest.raises(UploadError) as excinfo:
        asyncio.run(pipeline.upload("https://device.local/capture.jpg", MediaKind.IMAGE))

    assert excinfo.value.cause == UploadFailureCause.NETWORK_FAILURE
    assert store.calls == []


def test_object_keys_are_unique_under_a_frozen_clock() -> None:
    factory = ObjectKeyFactory(clock=lambda: 1700000000.0)

    stamps = [factory.next_timestamp_ms() for _ in range(5)]
    keys = {factory.key_for(MediaKind.IMAGE) for _ in range(50)}

    assert stamps == sorted(set(stamps))
    assert stamps[0] == 1700000000000
    assert len(keys) == 50
    suffix = next(iter(keys)).split("_")[1].split(".")[0]
    assert len(suffix) == 9
    assert suffix.isalnum()
