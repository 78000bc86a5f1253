import httpx
import pytest

from collectr_importer.handlers.collectr_api import (
    build_showcase_params,
    extract_collections,
    extract_products,
    fetch_showcase_pages,
    fetch_showcase_via_api,
    parse_showcase_url,
)
from collectr_importer.models.collectr import ShowcaseCollection
from collectr_importer.utils.config import ANON_USERNAME, ImporterConfig
from collectr_importer.utils.errors import FailureKind, InvalidShowcaseUrlError

from collectr_fakes import mock_client


# ---------- URL parsing ----------

def test_parse_profile_url():
    showcase = parse_showcase_url("https://app.getcollectr.com/showcase/profile/abc-123")
    assert showcase.profile_id == "abc-123"
    assert showcase.collection_id is None
    assert showcase.api_url == "https://api-v2.getcollectr.com/data/showcase/abc-123"


@pytest.mark.parametrize(
    "url, collection",
    [
        ("https://app.getcollectr.com/showcase/profile/abc?collection=xyz", "xyz"),
        ("https://app.getcollectr.com/showcase/profile/abc?id=5", "5"),
        ("https://app.getcollectr.com/showcase/profile/abc?collection=", None),
    ],
)
def test_parse_collection_from_query(url, collection):
    assert parse_showcase_url(url).collection_id == collection


@pytest.mark.parametrize(
    "url, message",
    [
        ("", "Missing Collectr URL."),
        (None, "Missing Collectr URL."),
        ("not a url", "Invalid Collectr URL."),
        ("https://example.com/showcase/profile/abc", "URL must be a app.getcollectr.com link."),
        ("https://app.getcollectr.com/explore", "URL must point to a Collectr profile page."),
    ],
)
def test_invalid_urls(url, message):
    with pytest.raises(InvalidShowcaseUrlError) as exc:
        parse_showcase_url(url)
    assert exc.value.message == message
    assert exc.value.kind == FailureKind.INVALID_INPUT


# ---------- Payload shapes ----------

def test_extract_products_shapes():
    products = [{"product_id": "1"}]
    assert extract_products({"products": products}) == products
    assert extract_products({"data": {"products": products}}) == products
    assert extract_products({"data": {"data": {"products": products}}}) == products
    assert extract_products({"data": []}) == []
    assert extract_products(None) == []


def test_extract_collections():
    assert extract_collections({"data": {"collections": [{"id": 7, "name": "Binder"}, "x"]}}) == [
        ShowcaseCollection(id="7", name="Binder")
    ]
    assert extract_collections({"collections": [{"id": None, "name": ""}]})[0].id is None


def test_build_showcase_params():
    params = build_showcase_params(30, 30, ANON_USERNAME, collection_id="7", filters="")
    assert params == {
        "offset": "30",
        "limit": "30",
        "unstackedView": "true",
        "username": ANON_USERNAME,
        "id": "7",
        "filters": "",
    }
    assert "filters" not in build_showcase_params(0, 30, ANON_USERNAME)


# ---------- Paging ----------

def paged_handler(pages: dict, requests: list, failing_offset=None):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        params = request.url.params
        offset = params.get("offset")
        if offset == failing_offset:
            return httpx.Response(500, json={"error": "boom"})
        key = (params.get("id"), offset)
        return httpx.Response(200, json=pages.get(key, {"products": []}))

    return handler


async def test_walk_pages_until_empty():
    requests: list = []
    pages = {
        (None, "0"): {"data": {"products": [{"product_id": "1"}, {"product_id": "2"}]}},
        (None, "10"): {"data": {"products": [{"product_id": "3"}]}},
    }
    config = ImporterConfig(api_limit=10)
    async with mock_client(config, paged_handler(pages, requests)) as client:
        walk = await fetch_showcase_pages(client, "abc", config)

    assert [p["product_id"] for p in walk.items] == ["1", "2", "3"]
    assert [r.url.params["offset"] for r in requests] == ["0", "10", "20"]
    first = requests[0].url.params
    assert first["username"] == ANON_USERNAME
    assert first["unstackedView"] == "true"
    assert first["limit"] == "10"


async def test_walk_keeps_items_before_a_failed_page():
    requests: list = []
    pages = {(None, "0"): {"products": [{"product_id": "1"}]}}
    config = ImporterConfig(api_limit=10)
    async with mock_client(config, paged_handler(pages, requests, failing_offset="10")) as client:
        walk = await fetch_showcase_pages(client, "abc", config)
    assert [p["product_id"] for p in walk.items] == ["1"]


async def test_walk_respects_max_pages():
    requests: list = []
    config = ImporterConfig(api_limit=10, api_max_pages=2)

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(200, json={"products": [{"product_id": request.url.params["offset"]}]})

    async with mock_client(config, handler) as client:
        walk = await fetch_showcase_pages(client, "abc", config)
    assert len(walk.items) == 2
    assert len(requests) == 2


async def test_collections_are_walked_and_tagged():
    requests: list = []
    pages = {
        (None, "0"): {
            "products": [{"product_id": "1"}],
            "collections": [{"id": 7, "name": "Binder"}, {"id": 8, "name": "Box"}],
        },
        ("7", "0"): {"products": [{"product_id": "2"}]},
        ("8", "0"): {"products": [{"product_id": "3", "collection_name": "Keep"}]},
    }
    config = ImporterConfig(api_limit=10)
    showcase = parse_showcase_url("https://app.getcollectr.com/showcase/profile/abc")
    async with mock_client(config, paged_handler(pages, requests)) as client:
        walk = await fetch_showcase_via_api(client, showcase, config)

    assert [c.id for c in walk.collections] == ["7", "8"]
    assert walk.items == [
        {"product_id": "2", "collection_id": "7", "collection_name": "Binder"},
        {"product_id": "3", "collection_id": "8", "collection_name": "Keep"},
    ]
    collection_requests = [r for r in requests if r.url.params.get("id")]
    assert all(r.url.params["filters"] == "" for r in collection_requests)
    assert "filters" not in requests[0].url.params
