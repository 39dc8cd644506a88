"""
Tests for the routing API client using httpx.MockTransport.
"""

import json

import httpx
import pytest

from bridge_harness.core.errors import RouterError
from bridge_harness.providers.arc import ArcApiProvider


BASE_URL = "https://arc.test"


def _provider(handler) -> ArcApiProvider:
    return ArcApiProvider(base_url=BASE_URL, timeout_s=5, transport=httpx.MockTransport(handler))


@pytest.mark.asyncio
async def test_get_routes_sends_query_and_unwraps():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"routes": [{"provider": "agglayer", "steps": [{}]}]})

    routes = await _provider(handler).get_routes(
        from_chain_id=747474,
        to_chain_id=1,
        from_token_address="0x0000000000000000000000000000000000000000",
        to_token_address="0x0000000000000000000000000000000000000000",
        amount=10**16,
        from_address="0xabc",
        slippage=0.5,
    )

    assert routes == [{"provider": "agglayer", "steps": [{}]}]
    assert seen["path"] == "/routes"
    assert seen["params"]["amount"] == str(10**16)
    assert seen["params"]["fromChainId"] == "747474"
    assert seen["params"]["slippage"] == "0.5"


@pytest.mark.asyncio
async def test_bare_list_response():
    provider = _provider(lambda request: httpx.Response(200, json=[{"chainId": 1}]))
    assert await provider.get_all_chains() == [{"chainId": 1}]


@pytest.mark.asyncio
async def test_build_transaction_posts_route():
    posted = {}

    def handler(request: httpx.Request) -> httpx.Response:
        posted["method"] = request.method
        posted["body"] = json.loads(request.content)
        return httpx.Response(200, json={"transaction": {"to": "0xbridge", "data": "0x12"}})

    tx = await _provider(handler).get_unsigned_transaction({"id": "route-1"})

    assert posted == {"method": "POST", "body": {"id": "route-1"}}
    assert tx == {"to": "0xbridge", "data": "0x12"}


@pytest.mark.asyncio
async def test_claim_transaction_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"to": "0xbridge", "data": "0xccaa"})

    tx = await _provider(handler).get_claim_unsigned_transaction(20, 4321)

    assert seen["path"] == "/routes/build-transaction-for-claim"
    assert seen["params"] == {"sourceNetworkId": "20", "depositCount": "4321"}
    assert tx["data"] == "0xccaa"


@pytest.mark.asyncio
async def test_transactions_drop_unset_params():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["params"] = dict(request.url.params)
        return httpx.Response(200, json={"data": [{"transactionHash": "0x1"}]})

    response = await _provider(handler).get_transactions(address="0xabc", limit=50)

    assert response == {"transactions": [{"transactionHash": "0x1"}]}
    assert seen["params"] == {"address": "0xabc", "limit": "50"}


@pytest.mark.asyncio
async def test_http_error_becomes_router_error():
    provider = _provider(lambda request: httpx.Response(500, text="upstream exploded"))

    with pytest.raises(RouterError) as exc_info:
        await provider.get_all_chains()

    assert exc_info.value.status_code == 500
    assert "upstream exploded" in exc_info.value.message


@pytest.mark.asyncio
async def test_transport_error_becomes_router_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RouterError) as exc_info:
        await _provider(handler).get_token_mappings("0xabc")

    assert isinstance(exc_info.value.__cause__, httpx.ConnectError)


@pytest.mark.asyncio
async def test_invalid_json_becomes_router_error():
    provider = _provider(lambda request: httpx.Response(200, text="<html>"))

    with pytest.raises(RouterError):
        await provider.get_all_chains()


@pytest.mark.asyncio
async def test_not_found_is_a_single_request():
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(str(request.url))
        return httpx.Response(404, text="no such route")

    provider = ArcApiProvider(base_url=BASE_URL + "/", timeout_s=5, transport=httpx.MockTransport(handler))

    with pytest.raises(RouterError) as exc_info:
        await provider.get_all_chains()

    assert provider.base_url == BASE_URL
    assert calls == [BASE_URL + "/chains"]
    assert exc_info.value.status_code == 404
