"""Lecture audio storage client (S3-compatible).

Provides download() using boto3 against an S3-compatible endpoint
(Supabase Storage, R2, MinIO). Lecture records store either a public
object URL or a bare object key.
"""

from __future__ import annotations

import asyncio
import logging
import mimetypes
import os
from dataclasses import dataclass
from urllib.parse import unquote, urlparse

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from lecture_processor.utils.errors import AudioFetchError, StorageError

logger = logging.getLogger(__name__)

DEFAULT_BUCKET = "audio"
DEFAULT_MIME_TYPE = "audio/mpeg"
PUBLIC_OBJECT_MARKER = "/storage/v1/object/public/"


@dataclass
class AudioBlob:
    """Downloaded audio bytes with their mime type."""

    data: bytes
    mime_type: str


def object_key_from_location(location: str, bucket: str = DEFAULT_BUCKET) -> str:
    """Resolve a stored audio location to an object key.

    Accepts a public object URL of the form
    ``https://<host>/storage/v1/object/public/<bucket>/<key>`` or a bare key.

    Raises:
        AudioFetchError: If the location is empty or names another bucket.
    """
    if not location:
        raise AudioFetchError("Audio location is empty")

    if "://" not in location:
        return location.lstrip("/")

    path = unquote(urlparse(location).path)
    marker = path.find(PUBLIC_OBJECT_MARKER)
    if marker < 0:
        raise AudioFetchError(
            f"Unrecognized audio location: '{location}'", key=location
        )
    bucket_and_key = path[marker + len(PUBLIC_OBJECT_MARKER):]
    url_bucket, _, key = bucket_and_key.partition("/")
    if url_bucket != bucket or not key:
        raise AudioFetchError(
            f"Audio location is outside bucket '{bucket}': '{location}'",
            key=location,
        )
    return key


def guess_mime_type(key: str) -> str:
    """Guess an audio mime type from the object key's extension."""
    if key.lower().endswith(".m4a"):
        return "audio/mp4"
    guessed, _ = mimetypes.guess_type(key)
    return guessed or DEFAULT_MIME_TYPE


class AudioStorage:
    """S3-compatible client for lecture audio objects.

    Reads configuration from environment variables:
        AUDIO_STORAGE_ENDPOINT, AUDIO_STORAGE_BUCKET,
        AUDIO_STORAGE_ACCESS_KEY_ID, AUDIO_STORAGE_SECRET_ACCESS_KEY,
        AUDIO_STORAGE_REGION
    """

    def __init__(
        self,
        endpoint_url: str | None = None,
        bucket: str | None = None,
        access_key_id: str | None = None,
        secret_access_key: str | None = None,
        region_name: str | None = None,
    ) -> None:
        self.endpoint_url = endpoint_url or os.environ.get(
            "AUDIO_STORAGE_ENDPOINT", ""
        )
        self.bucket = bucket or os.environ.get(
            "AUDIO_STORAGE_BUCKET", DEFAULT_BUCKET
        )
        self.access_key_id = access_key_id or os.environ.get(
            "AUDIO_STORAGE_ACCESS_KEY_ID", ""
        )
        self.secret_access_key = secret_access_key or os.environ.get(
            "AUDIO_STORAGE_SECRET_ACCESS_KEY", ""
        )
        self.region_name = region_name or os.environ.get(
            "AUDIO_STORAGE_REGION", "auto"
        )

        if not self.endpoint_url:
            raise StorageError(
                "AUDIO_STORAGE_ENDPOINT is required", operation="init"
            )

        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint_url,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            region_name=self.region_name,
        )

    def fetch_object(self, key: str) -> AudioBlob:
        """Retrieve an object by key.

        Raises:
            AudioFetchError: If the object cannot be retrieved.
        """
        try:
            response = self._client.get_object(Bucket=self.bucket, Key=key)
            data = response["Body"].read()
        except ClientError as exc:
            error_code = exc.response.get("Error", {}).get("Code", "Unknown")
            raise AudioFetchError(
                f"Failed to download audio file: {error_code}",
                key=key,
            ) from exc
        except BotoCoreError as exc:
            raise AudioFetchError(
                f"Failed to download audio file: {exc}",
                key=key,
            ) from exc

        content_type = response.get("ContentType") or ""
        # Generic binary types carry no useful audio format
        if not content_type or content_type == "application/octet-stream":
            content_type = guess_mime_type(key)
        return AudioBlob(data=data, mime_type=content_type)

    async def download(self, location: str) -> AudioBlob:
        """Download the audio stored at a lecture's audio location.

        The blocking boto3 call runs in a worker thread.

        Raises:
            AudioFetchError: If the location is invalid or the download fails.
        """
        key = object_key_from_location(location, self.bucket)
        blob = await asyncio.to_thread(self.fetch_object, key)
        logger.info(
            "Audio downloaded: %d bytes, type: %s", len(blob.data), blob.mime_type
        )
        return blob
