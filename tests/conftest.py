"""Shared fixtures: a scripted in-memory transport and a session built on it."""

import base64
import io
import os
import tempfile

# Keep test runs out of the user's real log directory
os.environ.setdefault("META_AD_PUBLISHER_LOG_DIR", tempfile.mkdtemp(prefix="meta-ad-publisher-tests-"))

import pytest
from PIL import Image

from meta_ad_publisher.core.api import ApiClient
from meta_ad_publisher.core.config import StaticConfig
from meta_ad_publisher.core.credentials import CredentialResolver
from meta_ad_publisher.core.session import PublishSession
from meta_ad_publisher.core.transport import Transport


class FakeTransport(Transport):
    """
    Transport that answers from a script and records every call.

    Responses are keyed by (method, endpoint). A value may be a dict, an
    exception instance (raised), or a list of those consumed in order with
    the last one repeating.
    """

    kind = "direct"

    def __init__(self, responses=None, uploads=None):
        super().__init__()
        self.responses = dict(responses or {})
        self.uploads = list(uploads or [])
        self.calls = []

    def _next(self, script, label):
        if isinstance(script, list):
            if not script:
                raise AssertionError(f"No scripted response left for {label}")
            item = script.pop(0) if len(script) > 1 else script[0]
        else:
            item = script
        if isinstance(item, Exception):
            raise item
        return item

    async def request(self, endpoint, method="GET", params=None, body=None, form_encoded=False):
        self.calls.append({
            "method": method,
            "endpoint": endpoint,
            "params": params or {},
            "body": body,
            "form_encoded": form_encoded,
        })
        key = (method, endpoint)
        if key not in self.responses:
            raise AssertionError(f"Unscripted call: {method} {endpoint}")
        return self._next(self.responses[key], f"{method} {endpoint}")

    async def upload(self, account_id, image_bytes, filename="ad_image.jpg"):
        self.calls.append({"method": "UPLOAD", "endpoint": account_id, "filename": filename,
                           "size": len(image_bytes)})
        return self._next(self.uploads, "upload")

    def sent(self, method, endpoint):
        return [c for c in self.calls if c["method"] == method and c["endpoint"] == endpoint]


@pytest.fixture
def png_bytes():
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color=(200, 30, 30)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture
def png_base64(png_bytes):
    return "data:image/png;base64," + base64.b64encode(png_bytes).decode("ascii")


@pytest.fixture
def static_config():
    return StaticConfig(access_token="test-token", ad_account_id="act_123", page_id="page_1", pixel_id=None)


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def api(fake_transport):
    return ApiClient(fake_transport)


@pytest.fixture
def session(static_config, fake_transport):
    return PublishSession(CredentialResolver(static_config), transport=fake_transport)
