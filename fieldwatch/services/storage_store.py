"""
Firebase Storage-backed object store.

Objects are written once (generation precondition 0) and carry a Firebase
download token, so the durable URL is the same token URL the Firebase
client SDKs hand out.
"""

import asyncio
import functools
import logging
from typing import Dict
from urllib.parse import quote
from uuid import uuid4

from google.api_core import exceptions as google_exceptions

logger = logging.getLogger(__name__)

DOWNLOAD_TOKEN_KEY = "firebaseStorageDownloadTokens"
DOWNLOAD_URL_TEMPLATE = "https://firebasestorage.googleapis.com/v0/b/{bucket}/o/{path}?alt=media&token={token}"


class FirebaseObjectStore:
    """ObjectStore over a google-cloud-storage bucket."""

    def __init__(self, bucket):
        self._bucket = bucket

    async def put(
        self,
        key: str,
        data: bytes,
        content_type: str,
        metadata: Dict[str, str],
    ) -> None:
        blob = self._bucket.blob(key)
        blob.metadata = {**metadata, DOWNLOAD_TOKEN_KEY: str(uuid4())}
        upload = functools.partial(
            blob.upload_from_string,
            data,
            content_type=content_type,
            if_generation_match=0,
        )

        loop = asyncio.get_running_loop()
        try:
            await loop.run_in_executor(None, upload)
        except google_exceptions.Forbidden as e:
            raise PermissionError(f"Storage write to {key} forbidden: {e}") from e
        except google_exceptions.GoogleAPIError as e:
            raise ConnectionError(f"Storage write to {key} failed: {e}") from e
        logger.info(f"[STORAGE] Uploaded {key} ({len(data)} bytes, {content_type})")

    async def durable_url(self, key: str) -> str:
        loop = asyncio.get_running_loop()
        try:
            blob = await loop.run_in_executor(None, self._bucket.get_blob, key)
        except google_exceptions.GoogleAPIError as e:
            raise ConnectionError(f"Storage lookup of {key} failed: {e}") from e
        if blob is None:
            raise KeyError(key)

        token = (blob.metadata or {}).get(DOWNLOAD_TOKEN_KEY, "").split(",")[0]
        return DOWNLOAD_URL_TEMPLATE.format(
            bucket=self._bucket.name,
            path=quote(key, safe=""),
            token=token,
        )
