"""Tests for the ImgBB upload client and the X share surface."""
from types import SimpleNamespace

import pytest
import requests

from castinspo.config import AppConfig
from castinspo.errors import ImageHostError
from castinspo.image_host import ImgBBClient
from castinspo.twitter_client import XShareSurface


class FakeResponse:
    def __init__(self, payload, status_code=200):
        self.payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, params=None, files=None, timeout=None):
        self.calls.append({"url": url, "params": params, "files": files})
        if self.error:
            raise self.error
        return self.response


class TestImgBB:
    def test_upload_returns_public_url(self):
        session = FakeSession(FakeResponse({"success": True, "data": {"url": "https://i.ibb.co/x/q.png"}}))
        client = ImgBBClient("key", expiration_s=604800, session=session)
        assert client.upload(b"png", "q.png") == "https://i.ibb.co/x/q.png"
        call = session.calls[0]
        assert call["params"] == {"key": "key", "expiration": "604800"}
        assert call["files"] == {"image": ("q.png", b"png")}

    def test_api_error_raises(self):
        payload = {"success": False, "error": {"message": "Invalid API v1 key."}}
        client = ImgBBClient("bad", session=FakeSession(FakeResponse(payload, 400)))
        with pytest.raises(ImageHostError, match="Invalid API v1 key"):
            client.upload(b"png")

    def test_network_error_raises(self):
        client = ImgBBClient("key", session=FakeSession(error=requests.ConnectionError("down")))
        with pytest.raises(ImageHostError):
            client.upload(b"png")

    def test_non_json_response_raises(self):
        client = ImgBBClient("key", session=FakeSession(FakeResponse(ValueError("not json"), 502)))
        with pytest.raises(ImageHostError):
            client.upload(b"png")

    def test_missing_key(self):
        with pytest.raises(ImageHostError):
            ImgBBClient("")


def _twitter_config():
    return AppConfig(
        twitter_api_key="a",
        twitter_api_key_secret="b",
        twitter_access_token="c",
        twitter_access_token_secret="d",
    )


class TestXShareSurface:
    def test_needs_credentials(self):
        assert not XShareSurface(AppConfig()).can_share_files("image/png")

    def test_accepts_images_only(self):
        surface = XShareSurface(_twitter_config())
        assert surface.can_share_files("image/png")
        assert not surface.can_share_files("text/plain")

    def test_share_file_uploads_then_posts(self):
        surface = XShareSurface(_twitter_config())
        posted = {}

        class Api:
            def media_upload(self, filename, file):
                posted["filename"] = filename
                posted["bytes"] = file.read()
                return SimpleNamespace(media_id=99)

        class Client:
            def create_tweet(self, text, media_ids):
                posted["text"] = text
                posted["media_ids"] = media_ids
                return SimpleNamespace(data={"id": "123", "text": text})

        surface._api = Api()
        surface._client = Client()
        assert surface.share_file(b"png", "quote.png", "image/png", " caption ") == "123"
        assert posted == {"filename": "quote.png", "bytes": b"png", "text": "caption", "media_ids": [99]}

    def test_empty_image_is_skipped(self):
        assert XShareSurface(_twitter_config()).share_file(b"", "quote.png", "image/png", "c") is None

    def test_retry_delay_backoff_without_headers(self):
        surface = XShareSurface(_twitter_config())
        assert surface._compute_retry_delay_seconds(Exception(), 0) == 30
        assert surface._compute_retry_delay_seconds(Exception(), 10) == 180
