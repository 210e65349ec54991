import httpx
import pytest

from sproutie.core.exceptions import ConfigurationError
from sproutie.services.trefle import (
    TrefleClient,
    TrefleError,
    TrefleNotFoundError,
    TrefleRateLimitError,
)

BASE_URL = "https://trefle.test/api/v1"


def _client(handler) -> tuple[TrefleClient, list[httpx.Request]]:
    seen: list[httpx.Request] = []

    def record(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return handler(request)

    client = TrefleClient(api_token="secret", base_url=BASE_URL, transport=httpx.MockTransport(record))
    return client, seen


def test_missing_token_fails_fast():
    with pytest.raises(ConfigurationError):
        TrefleClient(api_token="")


async def test_search_sends_token_and_query():
    client, seen = _client(lambda r: httpx.Response(200, json={"data": [], "meta": {"total": 0}}))

    body = await client.search("rose", page=2)

    assert body == {"data": [], "meta": {"total": 0}}
    request = seen[0]
    assert request.url.path == "/api/v1/plants/search"
    assert request.url.params["q"] == "rose"
    assert request.url.params["page"] == "2"
    assert request.url.params["token"] == "secret"


async def test_list_translates_filters():
    client, seen = _client(lambda r: httpx.Response(200, json={"data": []}))

    await client.list(
        {"common_name": "tomato", "genus": "Solanum", "edible": True, "vegetable": None, "flower_conspicuous": False}
    )

    params = seen[0].url.params
    assert seen[0].url.path == "/api/v1/plants"
    assert params["filter[common_name]"] == "tomato"
    assert params["filter[genus]"] == "Solanum"
    assert params["filter[edible]"] == "true"
    assert "filter[vegetable]" not in params
    assert "filter[flower_conspicuous]" not in params
    assert "filter[family]" not in params
    assert "page" not in params


@pytest.mark.parametrize(
    "call, path",
    [
        (lambda c: c.get_by_id(42), "/api/v1/plants/42"),
        (lambda c: c.get_species(42, 1), "/api/v1/plants/42/species"),
        (lambda c: c.get_families(), "/api/v1/families"),
        (lambda c: c.get_by_family("rosaceae"), "/api/v1/families/rosaceae/plants"),
        (lambda c: c.get_genera(3), "/api/v1/genus"),
        (lambda c: c.get_by_genus("rosa"), "/api/v1/genus/rosa/plants"),
    ],
)
async def test_endpoint_paths(call, path):
    client, seen = _client(lambda r: httpx.Response(200, json={"data": {}}))
    await call(client)
    assert seen[0].url.path == path
    assert seen[0].url.params["token"] == "secret"


@pytest.mark.parametrize(
    "call, prefix",
    [
        (lambda c: c.get_by_family("rosaceae?x=1#"), b"/api/v1/families/"),
        (lambda c: c.get_by_genus("rosa/../../plants?q=x"), b"/api/v1/genus/"),
    ],
)
async def test_slug_stays_in_one_path_segment(call, prefix):
    client, seen = _client(lambda r: httpx.Response(200, json={"data": []}))
    await call(client)

    raw_path, _, raw_query = seen[0].url.raw_path.partition(b"?")
    assert raw_path.startswith(prefix)
    assert raw_path.endswith(b"/plants")
    assert raw_path.count(b"/") == prefix.count(b"/") + 1
    assert raw_query == b"token=secret"


async def test_not_found():
    client, _ = _client(lambda r: httpx.Response(404, json={"error": True, "message": "Record not found"}))
    with pytest.raises(TrefleNotFoundError):
        await client.get_by_id(999)


async def test_rate_limited():
    client, _ = _client(lambda r: httpx.Response(429))
    with pytest.raises(TrefleRateLimitError):
        await client.get_families()


async def test_server_error():
    client, _ = _client(lambda r: httpx.Response(503, text="unavailable"))
    with pytest.raises(TrefleError) as exc_info:
        await client.search("rose")
    assert not isinstance(exc_info.value, TrefleNotFoundError)


async def test_network_error():
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client, _ = _client(refuse)
    with pytest.raises(TrefleError):
        await client.search("rose")


async def test_malformed_json():
    client, _ = _client(lambda r: httpx.Response(200, text="<html>"))
    with pytest.raises(TrefleError):
        await client.search("rose")
