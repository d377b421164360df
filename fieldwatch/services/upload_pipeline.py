"""
Upload pipeline - turn a local media handle into a durable, addressable URL.

Flow:
1. Read the media into memory (path, file:// or http(s):// URI, bytes, file object)
2. Generate a unique object key (monotonic millisecond timestamp + random suffix)
3. Write the object once with content type and a createdAt metadata tag
4. Resolve the durable URL, only after the write was confirmed

No retries here: a failed attempt surfaces as UploadError and the caller
re-runs the whole upload.
"""

import asyncio
import logging
import os
import secrets
import string
import time
from datetime import datetime, timezone
from pathlib import Path
from typing import BinaryIO, Callable, Dict, Optional, Union
from urllib.parse import unquote, urlparse

import requests

from fieldwatch.core.errors import UploadError, UploadFailureCause
from fieldwatch.core.settings import settings
from fieldwatch.models.upload import MediaKind, UploadResult
from fieldwatch.services.contracts import ObjectStore

logger = logging.getLogger(__name__)

MediaHandle = Union[bytes, bytearray, memoryview, str, os.PathLike, BinaryIO]

CONTENT_TYPES: Dict[MediaKind, str] = {
    MediaKind.IMAGE: "image/jpeg",
    MediaKind.AUDIO: "audio/mpeg",
}

_SUFFIX_ALPHABET = string.digits + string.ascii_lowercase
_SUFFIX_LENGTH = 9


class ObjectKeyFactory:
    """
    Generates object keys that are unique without asking the store.

    The millisecond timestamp never repeats within a process, and the
    9-character base36 suffix (~46 bits) separates concurrent devices.
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last_ms = 0

    def next_timestamp_ms(self) -> int:
        now_ms = int(self._clock() * 1000)
        if now_ms <= self._last_ms:
            now_ms = self._last_ms + 1
        self._last_ms = now_ms
        return now_ms

    @staticmethod
    def random_suffix() -> str:
        return "".join(secrets.choice(_SUFFIX_ALPHABET) for _ in range(_SUFFIX_LENGTH))

    def key_for(self, kind: MediaKind) -> str:
        stamp = self.next_timestamp_ms()
        suffix = self.random_suffix()
        if kind == MediaKind.IMAGE:
            return f"images/{stamp}_{suffix}.jpg"
        if kind == MediaKind.AUDIO:
            return f"recordings/audio_{stamp}_{suffix}.m4a"
        raise ValueError(f"Unsupported media kind: {kind}")


class UploadPipeline:
    """Uploads one media item per call to the object store."""

    def __init__(
        self,
        object_store: ObjectStore,
        key_factory: Optional[ObjectKeyFactory] = None,
        fetch_timeout: Optional[float] = None,
        max_bytes: Optional[int] = None,
    ):
        self._store = object_store
        self._keys = key_factory or ObjectKeyFactory()
        self._fetch_timeout = fetch_timeout if fetch_timeout is not None else settings.MEDIA_FETCH_TIMEOUT_SECONDS
        self._max_bytes = max_bytes if max_bytes is not None else settings.MAX_UPLOAD_BYTES

    async def upload(self, media: MediaHandle, kind: MediaKind) -> UploadResult:
        """
        Upload a media item and return its durable URL.

        Args:
            media: Local media handle
            kind: MediaKind.IMAGE or MediaKind.AUDIO

        Returns:
            UploadResult with durable_url and content_type

        Raises:
            UploadError: cause PermissionDenied, NetworkFailure or EncodingFailure
        """
        kind = MediaKind(kind)
        data = await self._read_media(media)

        key = self._keys.key_for(kind)
        content_type = CONTENT_TYPES[kind]
        metadata = {"createdAt": datetime.now(timezone.utc).isoformat()}
        if kind == MediaKind.AUDIO:
            metadata["originalName"] = key.rsplit("/", 1)[-1]

        try:
            await self._store.put(key, data, content_type, metadata)
        except PermissionError as e:
            logger.error(f"Upload of {key} rejected by object store: {e}")
            raise UploadError(UploadFailureCause.PERMISSION_DENIED) from e
        except Exception as e:
            logger.error(f"Upload of {key} failed: {e}", exc_info=True)
            raise UploadError(UploadFailureCause.NETWORK_FAILURE) from e

        try:
            durable_url = await self._store.durable_url(key)
        except Exception as e:
            logger.error(f"Could not resolve durable URL for {key}: {e}", exc_info=True)
            raise UploadError(UploadFailureCause.NETWORK_FAILURE) from e

        logger.info(f"✅ {kind.value} uploaded: {key}")
        return UploadResult(durable_url=durable_url, content_type=content_type, object_key=key)

    async def _read_media(self, media: MediaHandle) -> bytes:
        if isinstance(media, (bytes, bytearray, memoryview)):
            data = bytes(media)
        elif hasattr(media, "read"):
            data = media.read()
            if not isinstance(data, (bytes, bytearray)):
                raise UploadError(UploadFailureCause.ENCODING_FAILURE, "Media stream must be opened in binary mode.")
            data = bytes(data)
        elif isinstance(media, str) and media.startswith(("http://", "https://")):
            data = await self._fetch_remote(media)
        elif isinstance(media, (str, os.PathLike)):
            data = await self._read_file(_to_path(media))
        else:
            raise UploadError(UploadFailureCause.ENCODING_FAILURE, f"Unsupported media handle: {type(media).__name__}")

        if not data:
            raise UploadError(UploadFailureCause.ENCODING_FAILURE, "Media is empty.")
        if len(data) > self._max_bytes:
            raise UploadError(
                UploadFailureCause.ENCODING_FAILURE,
                f"Media is {len(data)} bytes, the limit is {self._max_bytes}.",
            )
        return data

    async def _read_file(self, path: Path) -> bytes:
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, path.read_bytes)
        except PermissionError as e:
            raise UploadError(UploadFailureCause.PERMISSION_DENIED, f"No permission to read {path}.") from e
        except OSError as e:
            raise UploadError(UploadFailureCause.ENCODING_FAILURE, f"Could not read media at {path}.") from e

    async def _fetch_remote(self, url: str) -> bytes:
        def fetch() -> bytes:
            response = requests.get(url, timeout=self._fetch_timeout)
            response.raise_for_status()
            return response.content

        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, fetch)
        except requests.RequestException as e:
            logger.warning(f"Fetching media from {url} failed: {e}")
            raise UploadError(UploadFailureCause.NETWORK_FAILURE) from e


def _to_path(handle: Union[str, os.PathLike]) -> Path:
    if isinstance(handle, str) and handle.startswith("file://"):
        return Path(unquote(urlparse(handle).path))
    return Path(handle)
