import asyncio
import json

import httpx
import pytest

from photobooth.client.uploader import CapturePayload, CaptureUploader, DeliveryStatus


def make_uploader(handler):
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler), base_url="http://booth.test")
    return CaptureUploader("http://booth.test", client=client)


def deliver(handler, payload):
    async def run():
        async with make_uploader(handler) as uploader:
            return await uploader.deliver(payload)

    return asyncio.run(run())


@pytest.fixture
def payload():
    return CapturePayload(image="data:image/png;base64,iVBORw0KGgo=", width=1920, height=1080)


def test_payload_json_omits_missing_thumbnail(payload):
    assert payload.to_json() == {"image": "data:image/png;base64,iVBORw0KGgo=", "width": 1920, "height": 1080}


def test_posts_payload_as_json(payload):
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(200, json={"message": "Saved successfully", "filename": "capture_1.png"})

    result = deliver(handler, payload)

    assert seen == {"path": "/upload", "body": payload.to_json()}
    assert result.status == DeliveryStatus.accepted
    assert result.filename == "capture_1.png"


@pytest.mark.parametrize(
    "status_code, expected",
    [
        (400, DeliveryStatus.invalid),
        (413, DeliveryStatus.invalid),
        (408, DeliveryStatus.rejected),
        (429, DeliveryStatus.rejected),
        (500, DeliveryStatus.rejected),
        (503, DeliveryStatus.rejected),
    ],
)
def test_classifies_failures(payload, status_code, expected):
    result = deliver(lambda request: httpx.Response(status_code, json={"message": "nope"}), payload)

    assert result.status == expected
    assert result.status_code == status_code
    assert result.message == "nope"


def test_non_json_error_body(payload):
    result = deliver(lambda request: httpx.Response(502, text="<html>Bad Gateway</html>"), payload)

    assert result.status == DeliveryStatus.rejected
    assert result.message == "Bad Gateway"


def test_connection_error_is_network_failure(payload):
    def handler(request):
        raise httpx.ConnectError("connection refused", request=request)

    result = deliver(handler, payload)

    assert result.status == DeliveryStatus.network_failure
    assert result.status_code is None
    assert result.retryable


def test_overlay_helpers():
    def handler(request):
        if request.url.path == "/overlays-list":
            return httpx.Response(200, json=["party.png"])
        if request.url.path == "/overlays/party.png":
            return httpx.Response(200, content=b"\x89PNG...")
        return httpx.Response(404)

    async def run():
        async with make_uploader(handler) as uploader:
            return await uploader.list_overlays(), await uploader.fetch_overlay("party.png")

    names, data = asyncio.run(run())

    assert names == ["party.png"]
    assert data == b"\x89PNG..."
