import asyncio
from types import SimpleNamespace

from collectr_importer.handlers.collectr_browser import (
    ShowcaseResponseListener,
    drain_events,
    extract_number_from_text,
    looks_like_dom_number,
    parse_showcase_dom,
    pick_number,
)
from collectr_importer.items import is_graded, normalize_item

API_URL = "https://api-v2.getcollectr.com/data/showcase/abc"

SHOWCASE_HTML = """
<html><body>
<div data-slot="card">
  <img src="https://cdn/public-assets/products/product_123.png">
  <span class="mt-3 text-lg mb-1 leading-tight font-bold line-clamp-2 text-card-foreground">
    Clefable
  </span>
  <span class="underline text-muted-foreground">Jungle</span>
  <div class="flex flex-row flex-wrap items-center space-x-1 text-muted-foreground">
    <span>Holo Rare</span><span>•</span><span>5/64</span>
  </div>
  <span>Qty: 3</span>
</div>
<div class="grid-item">
  <div class="wrapper">
    <span class="place-self-start my-auto text-base sm:text-lg font-bold line-clamp-2">Charizard</span>
  </div>
  <span class="underline text-muted-foreground">Base Set</span>
  <div class="flex flex-col text-xs sm:text-sm text-muted-foreground"><span>4/102</span></div>
  <div class="animate-in"><img src="psa.png"><img src="ten.png"></div>
</div>
</body></html>
"""


def fake_response(url, ok=True, content_type="application/json", payload=None):
    async def json():
        return payload

    return SimpleNamespace(url=url, ok=ok, headers={"content-type": content_type}, json=json)


# ---------- DOM ----------

def test_parse_showcase_dom_reads_cards():
    clefable, charizard = parse_showcase_dom(SHOWCASE_HTML)

    assert clefable == {
        "product_id": "123",
        "image_url": "https://cdn/public-assets/products/product_123.png",
        "product_name": "Clefable",
        "catalog_group": "Jungle",
        "card_number": "5/64",
        "rarity": "Holo Rare",
        "quantity": "3",
        "grade_id": None,
    }

    assert charizard["product_id"] is None
    assert charizard["product_name"] == "Charizard"
    assert charizard["catalog_group"] == "Base Set"
    assert charizard["card_number"] == "4/102"
    assert charizard["quantity"] == "1"
    assert charizard["grade_id"] == "1"


def test_dom_items_flow_through_normalizer():
    clefable, charizard = [normalize_item(raw) for raw in parse_showcase_dom(SHOWCASE_HTML)]
    assert clefable.product_id == 123
    assert clefable.quantity == 3
    assert is_graded(clefable) is False
    assert is_graded(charizard) is True


def test_parse_showcase_dom_empty():
    assert parse_showcase_dom("") == []
    assert parse_showcase_dom("<html><body><p>nothing</p></body></html>") == []


def test_pick_number_preference():
    assert pick_number(["Holo Rare", "•", "SV049", "12/100"]) == "12/100"
    assert pick_number(["Holo Rare", "SV049", "12"]) == "SV049"
    assert pick_number(["12", "Rare"]) == "12"
    assert pick_number(["Rare", "", None]) is None


def test_extract_number_from_text():
    assert extract_number_from_text("Umbreon 041/071 Rare") == "041/071"
    assert extract_number_from_text("Pikachu #25 promo") == "25"
    assert extract_number_from_text("   ") is None


def test_looks_like_dom_number():
    assert looks_like_dom_number("5/64") is True
    assert looks_like_dom_number("$1.50") is False
    assert looks_like_dom_number(None) is False


# ---------- Network listener ----------

def test_listener_accepts_only_showcase_json():
    listener = ShowcaseResponseListener("abc", asyncio.Queue())
    assert listener.accepts(f"{API_URL}?offset=0", True, "application/json; charset=utf-8")
    assert not listener.accepts(
        "https://api-v2.getcollectr.com/data/showcase/other?offset=0", True, "application/json"
    )
    assert not listener.accepts(f"{API_URL}?offset=0", False, "application/json")
    assert not listener.accepts(f"{API_URL}?offset=0", True, "text/html")
    assert not listener.accepts("https://app.getcollectr.com/abc", True, "application/json")


async def test_listener_queues_each_offset_once():
    queue: asyncio.Queue = asyncio.Queue()
    listener = ShowcaseResponseListener("abc", queue)
    payload = {"data": {"products": [{"product_id": "1"}, {"product_id": "2"}]}}

    await listener(fake_response(f"{API_URL}?offset=0", payload=payload))
    await listener(fake_response(f"{API_URL}?offset=0", payload=payload))
    await listener(fake_response(f"{API_URL}?offset=30", payload={"products": []}))
    await listener(fake_response(f"{API_URL}?offset=60", content_type="text/plain"))

    collected: list = []
    assert drain_events(queue, collected) == 2
    assert collected == [{"product_id": "1"}, {"product_id": "2"}]
    assert queue.empty()
