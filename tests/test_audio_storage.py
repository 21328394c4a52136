"""Tests for lecture_processor.storage.audio_storage module."""

from unittest.mock import MagicMock, patch

import pytest
from botocore.exceptions import ClientError, EndpointConnectionError

from lecture_processor.storage.audio_storage import (
    AudioStorage,
    guess_mime_type,
    object_key_from_location,
)
from lecture_processor.utils.errors import AudioFetchError, StorageError


class TestObjectKeyFromLocation:
    """Tests for resolving stored audio locations."""

    def test_bare_key_is_returned(self):
        assert object_key_from_location("user-1/1700.webm") == "user-1/1700.webm"

    def test_leading_slash_is_stripped(self):
        assert object_key_from_location("/user-1/1700.webm") == "user-1/1700.webm"

    def test_public_url_is_resolved(self):
        url = (
            "https://abc.supabase.co/storage/v1/object/public/audio/"
            "user-1/1700000000.mp3"
        )
        assert object_key_from_location(url) == "user-1/1700000000.mp3"

    def test_url_encoded_key_is_decoded(self):
        url = "https://abc.supabase.co/storage/v1/object/public/audio/user-1/my%20talk.m4a"
        assert object_key_from_location(url) == "user-1/my talk.m4a"

    def test_other_bucket_rejected(self):
        url = "https://abc.supabase.co/storage/v1/object/public/avatars/user-1.png"
        with pytest.raises(AudioFetchError, match="outside bucket"):
            object_key_from_location(url)

    def test_unrecognized_url_rejected(self):
        with pytest.raises(AudioFetchError, match="Unrecognized"):
            object_key_from_location("https://cdn.example.com/file.mp3")

    def test_empty_location_rejected(self):
        with pytest.raises(AudioFetchError):
            object_key_from_location("")


class TestGuessMimeType:
    """Tests for extension-based mime type fallback."""

    def test_m4a_maps_to_mp4(self):
        assert guess_mime_type("user-1/rec.m4a") == "audio/mp4"

    def test_mp3(self):
        assert guess_mime_type("user-1/rec.mp3") == "audio/mpeg"

    def test_unknown_extension_defaults_to_mpeg(self):
        assert guess_mime_type("user-1/rec") == "audio/mpeg"


class TestAudioStorageInit:
    """Tests for AudioStorage initialization."""

    def test_init_with_explicit_params(self):
        with patch("lecture_processor.storage.audio_storage.boto3") as mock_boto:
            storage = AudioStorage(
                endpoint_url="https://abc.supabase.co/storage/v1/s3",
                bucket="audio",
                access_key_id="key-id",
                secret_access_key="secret-key",
            )

        assert storage.bucket == "audio"
        assert storage.region_name == "auto"
        mock_boto.client.assert_called_once()
        assert mock_boto.client.call_args.args == ("s3",)

    def test_init_missing_endpoint_raises_storage_error(self, monkeypatch):
        monkeypatch.delenv("AUDIO_STORAGE_ENDPOINT", raising=False)
        with pytest.raises(StorageError, match="AUDIO_STORAGE_ENDPOINT is required"):
            AudioStorage(endpoint_url="")


class TestAudioStorageDownload:
    """Tests for AudioStorage.fetch_object() and download()."""

    def _make_storage(self):
        """Create a storage client with a mocked boto3 s3 client."""
        with patch("lecture_processor.storage.audio_storage.boto3") as mock_boto:
            mock_s3 = MagicMock()
            mock_boto.client.return_value = mock_s3
            storage = AudioStorage(
                endpoint_url="https://abc.supabase.co/storage/v1/s3",
                bucket="audio",
                access_key_id="key-id",
                secret_access_key="secret-key",
            )
        return storage, mock_s3

    def test_fetch_object_returns_blob(self):
        storage, mock_s3 = self._make_storage()
        body = MagicMock()
        body.read.return_value = b"audio-bytes"
        mock_s3.get_object.return_value = {"Body": body, "ContentType": "audio/webm"}

        blob = storage.fetch_object("user-1/rec.webm")

        assert blob.data == b"audio-bytes"
        assert blob.mime_type == "audio/webm"
        mock_s3.get_object.assert_called_once_with(
            Bucket="audio", Key="user-1/rec.webm"
        )

    def test_octet_stream_falls_back_to_extension(self):
        storage, mock_s3 = self._make_storage()
        body = MagicMock()
        body.read.return_value = b"audio-bytes"
        mock_s3.get_object.return_value = {
            "Body": body,
            "ContentType": "application/octet-stream",
        }

        assert storage.fetch_object("user-1/rec.m4a").mime_type == "audio/mp4"

    def test_client_error_raises_audio_fetch_error(self):
        storage, mock_s3 = self._make_storage()
        mock_s3.get_object.side_effect = ClientError(
            {"Error": {"Code": "NoSuchKey", "Message": "Not found"}}, "GetObject"
        )

        with pytest.raises(AudioFetchError, match="NoSuchKey") as exc_info:
            storage.fetch_object("user-1/missing.mp3")

        assert exc_info.value.key == "user-1/missing.mp3"

    def test_connection_error_raises_audio_fetch_error(self):
        storage, mock_s3 = self._make_storage()
        mock_s3.get_object.side_effect = EndpointConnectionError(
            endpoint_url="https://abc.supabase.co"
        )

        with pytest.raises(AudioFetchError, match="Failed to download audio file"):
            storage.fetch_object("user-1/rec.mp3")

    async def test_download_resolves_public_url(self):
        storage, mock_s3 = self._make_storage()
        body = MagicMock()
        body.read.return_value = b"audio-bytes"
        mock_s3.get_object.return_value = {"Body": body, "ContentType": "audio/mpeg"}

        blob = await storage.download(
            "https://abc.supabase.co/storage/v1/object/public/audio/user-1/rec.mp3"
        )

        assert blob.data == b"audio-bytes"
        mock_s3.get_object.assert_called_once_with(Bucket="audio", Key="user-1/rec.mp3")
