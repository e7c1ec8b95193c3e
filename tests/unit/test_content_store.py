"""Unit tests for the content store client (mocked HTTP transport)."""

import json
from typing import Callable, List

import httpx
import pytest

from bluecarbon.provenance.content_store import ContentStore, ContentStoreError, gateway_url

CID = "QmYwAPJzv5CZsnA625s3Xf2nemtYgPpHdWEz79ojWnPbdG"


def _store(handler: Callable[[httpx.Request], httpx.Response], **kwargs) -> ContentStore:
    return ContentStore(
        base_url="https://pin.test",
        token="pin-token",
        gateway_url="https://gateway.test/ipfs/",
        timeout=1.0,
        max_retries=kwargs.pop("max_retries", 3),
        backoff=(0, 0, 0),
        transport=httpx.MockTransport(handler),
        **kwargs,
    )


class TestPinJson:

    @pytest.mark.asyncio
    async def test_success_wraps_payload(self):
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"IpfsHash": CID, "PinSize": 120})

        cid = await _store(handler).pin_json({"projectName": "Gazi Bay"}, name="documentation_1", kind="documentation")

        assert cid == CID
        request = seen[0]
        assert request.url.path == "/pinning/pinJSONToIPFS"
        assert request.headers["Authorization"] == "Bearer pin-token"
        body = json.loads(request.content)
        assert body["pinataContent"] == {"projectName": "Gazi Bay"}
        assert body["pinataMetadata"]["name"].startswith("documentation_1_")
        assert body["pinataMetadata"]["keyvalues"]["kind"] == "documentation"

    @pytest.mark.asyncio
    async def test_retries_5xx_then_succeeds(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) < 3:
                return httpx.Response(503)
            return httpx.Response(200, json={"IpfsHash": CID})

        assert await _store(handler).pin_json({}, name="x") == CID
        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_gives_up_after_bounded_attempts(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(502)

        with pytest.raises(ContentStoreError):
            await _store(handler, max_retries=2).pin_json({}, name="x")
        assert len(calls) == 2

    @pytest.mark.asyncio
    async def test_connection_errors_are_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ContentStoreError) as exc:
            await _store(handler).pin_json({}, name="x")
        assert len(calls) == 3
        assert "ConnectError" in str(exc.value)

    @pytest.mark.asyncio
    async def test_rate_limit_honours_retry_after(self, monkeypatch):
        slept = []

        async def fake_sleep(seconds):
            slept.append(seconds)

        monkeypatch.setattr("bluecarbon.provenance.content_store.asyncio.sleep", fake_sleep)
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            if len(calls) == 1:
                return httpx.Response(429, headers={"Retry-After": "7"})
            return httpx.Response(200, json={"IpfsHash": CID})

        assert await _store(handler).pin_json({}, name="x") == CID
        assert slept == [7]

    @pytest.mark.asyncio
    async def test_client_error_not_retried(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(401, json={"error": "invalid key"})

        with pytest.raises(ContentStoreError):
            await _store(handler).pin_json({}, name="x")
        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_malformed_response(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"unexpected": True})

        with pytest.raises(ContentStoreError):
            await _store(handler).pin_json({}, name="x")


class TestPinFile:

    @pytest.mark.asyncio
    async def test_multipart_upload(self):
        seen: List[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"IpfsHash": CID})

        cid = await _store(handler).pin_file(b"%PDF-1.7", "survey.pdf", "application/pdf")

        assert cid == CID
        request = seen[0]
        assert request.url.path == "/pinning/pinFileToIPFS"
        assert request.headers["Content-Type"].startswith("multipart/form-data")
        content = request.read()
        assert b"survey.pdf" in content
        assert b"pinataMetadata" in content


class TestMisc:

    @pytest.mark.asyncio
    async def test_check_connection(self):
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.url.path == "/data/testAuthentication"
            return httpx.Response(200, json={"message": "Congratulations!"})

        assert await _store(handler).check_connection() is True

    @pytest.mark.asyncio
    async def test_check_connection_failure(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        assert await _store(handler).check_connection() is False

    def test_gateway_url(self):
        store = _store(lambda request: httpx.Response(200))
        assert store.gateway_url(CID) == f"https://gateway.test/ipfs/{CID}"
        assert store.gateway_url("") == ""

    def test_module_gateway_url_uses_settings(self):
        assert gateway_url(CID, "https://ipfs.example.org/ipfs/") == f"https://ipfs.example.org/ipfs/{CID}"
        assert gateway_url(CID).endswith(f"/{CID}")
        assert gateway_url("") == ""
