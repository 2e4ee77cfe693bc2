"""Transport tests against httpx.MockTransport."""

from urllib.parse import parse_qs
import json

import httpx
import pytest

from meta_ad_publisher.core.api import ApiClient, ApiFailure, ApiSuccess
from meta_ad_publisher.core.errors import ApiError, ConfigurationError, TransportError
from meta_ad_publisher.core.transport import DirectTransport, ProxyTransport, _encode_form


def mock_client(handler):
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_proxy_request_envelope():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "c1"})

    transport = ProxyTransport("session-jwt", api_base="https://app.example/", client=mock_client(handler))
    data = await transport.request("act_1/campaigns", method="POST", body={"name": "X"}, form_encoded=False)

    assert data == {"id": "c1"}
    assert seen["url"] == "https://app.example/api/meta/proxy"
    assert seen["auth"] == "Bearer session-jwt"
    assert seen["body"] == {
        "method": "POST",
        "endpoint": "act_1/campaigns",
        "params": {},
        "formEncoded": False,
        "body": {"name": "X"},
    }
    await transport.aclose()


@pytest.mark.asyncio
async def test_proxy_flattened_error_is_normalized():
    def handler(request):
        return httpx.Response(400, json={"error": "Meta API error", "message": "Invalid parameter",
                                         "code": 100, "subcode": 1487, "fbtrace_id": "abc"})

    transport = ProxyTransport("jwt", api_base="https://app.example", client=mock_client(handler))
    with pytest.raises(ApiError) as exc_info:
        await transport.request("act_1/adsets", method="POST", body={}, form_encoded=True)

    assert exc_info.value.message == "Invalid parameter"
    assert exc_info.value.code == 100
    assert exc_info.value.subcode == 1487
    assert exc_info.value.is_permission_error


@pytest.mark.asyncio
async def test_proxy_upload_sends_base64(png_bytes):
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"images": {"ad_image.png": {"hash": "abc"}}})

    transport = ProxyTransport("jwt", api_base="https://app.example", client=mock_client(handler))
    uploaded = await ApiClient(transport).upload("act_1", png_bytes, "ad_image.png")

    assert uploaded.hash == "abc"
    assert seen["url"] == "https://app.example/api/meta/upload"
    assert seen["body"]["filename"] == "ad_image.png"
    assert seen["body"]["imageBase64"]


def test_proxy_requires_bearer():
    with pytest.raises(ConfigurationError):
        ProxyTransport("")


@pytest.mark.asyncio
async def test_direct_get_puts_token_in_query():
    seen = {}

    def handler(request):
        seen["params"] = dict(request.url.params)
        seen["path"] = request.url.path
        return httpx.Response(200, json={"id": "page_1", "name": "Shop"})

    transport = DirectTransport("static-token", graph_base="https://graph.example/v24.0",
                                client=mock_client(handler))
    await transport.request("page_1", params={"fields": "name,id"})

    assert seen["path"] == "/v24.0/page_1"
    assert seen["params"] == {"fields": "name,id", "access_token": "static-token"}


@pytest.mark.asyncio
async def test_direct_form_post_encodes_nested_values():
    seen = {}

    def handler(request):
        seen["form"] = {k: v[0] for k, v in parse_qs(request.content.decode()).items()}
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"id": "s1"})

    transport = DirectTransport("static-token", graph_base="https://graph.example/v24.0",
                                client=mock_client(handler))
    body = {"name": "Set", "targeting": {"geo_locations": {"countries": ["US"]}}, "flag": False, "skip": None}
    await transport.request("act_1/adsets", method="POST", body=body, form_encoded=True)

    assert "access_token" not in seen["params"]
    assert seen["form"]["access_token"] == "static-token"
    assert json.loads(seen["form"]["targeting"]) == {"geo_locations": {"countries": ["US"]}}
    assert seen["form"]["flag"] == "false"
    assert "skip" not in seen["form"]


@pytest.mark.asyncio
async def test_direct_json_post_injects_token():
    seen = {}

    def handler(request):
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"id": "c1"})

    transport = DirectTransport("static-token", graph_base="https://graph.example/v24.0",
                                client=mock_client(handler))
    await transport.request("act_1/campaigns", method="POST", body={"special_ad_categories": []})

    assert seen["body"] == {"special_ad_categories": [], "access_token": "static-token"}


@pytest.mark.asyncio
async def test_direct_without_token_fails_on_first_request():
    transport = DirectTransport(None, client=mock_client(lambda request: httpx.Response(200, json={})))
    with pytest.raises(ConfigurationError):
        await transport.request("me")


@pytest.mark.asyncio
async def test_direct_upload_is_multipart(png_bytes):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["content_type"] = request.headers["content-type"]
        seen["content"] = request.content
        return httpx.Response(200, json={"images": {"ad_image.png": {"hash": "h"}}})

    transport = DirectTransport("static-token", graph_base="https://graph.example/v24.0",
                                client=mock_client(handler))
    await transport.upload("act_1", png_bytes, "ad_image.png")

    assert seen["path"] == "/v24.0/act_1/adimages"
    assert seen["content_type"].startswith("multipart/form-data")
    assert b'name="filename"' in seen["content"]
    assert b"static-token" in seen["content"]


@pytest.mark.asyncio
async def test_graph_error_prefers_user_message():
    def handler(request):
        return httpx.Response(400, json={"error": {"message": "(#100) Invalid parameter", "code": 100,
                                                   "error_subcode": 1885183,
                                                   "error_user_msg": "Ads creative post was created by an app "
                                                                     "that is in development mode"}})

    transport = DirectTransport("t", client=mock_client(handler))
    with pytest.raises(ApiError) as exc_info:
        await transport.request("act_1/ads", method="POST", body={}, form_encoded=True)

    assert exc_info.value.message.startswith("Ads creative post")
    assert exc_info.value.subcode == 1885183


@pytest.mark.asyncio
async def test_non_json_response_is_transport_error():
    transport = DirectTransport("t", client=mock_client(lambda request: httpx.Response(502, text="<html>")))
    with pytest.raises(TransportError):
        await transport.request("me")


@pytest.mark.asyncio
async def test_network_error_is_transport_error():
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    transport = DirectTransport("t", client=mock_client(handler))
    with pytest.raises(TransportError):
        await transport.request("me")


@pytest.mark.asyncio
async def test_api_client_call_returns_union():
    def handler(request):
        if request.url.path.endswith("/ok"):
            return httpx.Response(200, json={"id": "ok"})
        return httpx.Response(400, json={"error": {"message": "Expired", "code": 190}})

    client = ApiClient(DirectTransport("t", client=mock_client(handler)))

    success = await client.call("ok")
    failure = await client.call("bad")

    assert isinstance(success, ApiSuccess) and success.ok and success.data == {"id": "ok"}
    assert isinstance(failure, ApiFailure) and not failure.ok
    assert failure.code == 190
    assert failure.error.is_token_error


@pytest.mark.asyncio
async def test_api_client_call_propagates_configuration_error():
    client = ApiClient(DirectTransport(None))
    with pytest.raises(ConfigurationError):
        await client.call("me")


def test_encode_form():
    assert _encode_form({"a": 1, "b": [1, 2], "c": True, "d": None}) == {"a": "1", "b": "[1, 2]", "c": "true"}
