"""
Strategy B: render the showcase in a headless browser.

Items come from four places, merged at the end: showcase API responses the
page itself triggers, a replay of the API walk from inside the page, the
rendered card grid, and the page source.
"""

import asyncio
import re
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, urlparse

from bs4 import BeautifulSoup
from playwright.async_api import Page, Response, TimeoutError as PlaywrightTimeoutError

from collectr_importer.handlers.collectr_api import ShowcaseUrl, extract_products
from collectr_importer.handlers.collectr_html import extract_items_from_html
from collectr_importer.items import merge_items
from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.logger import browser_logger
from collectr_importer.utils.playwright import browser_session

NAVIGATION_TIMEOUT_MS = 60_000
NETWORK_IDLE_TIMEOUT_MS = 10_000
INITIAL_DELAY = 2.0
SCROLL_DELAY = 1.2
SETTLE_DELAY = 1.0
MAX_SCROLLS = 60
MAX_IDLE_ROUNDS = 4

CARD_NAME_SELECTORS = (
    "span.mt-3.text-lg.mb-1.leading-tight.font-bold.line-clamp-2.text-card-foreground",
    "span.place-self-start.my-auto.text-base.sm\\:text-lg.font-bold.line-clamp-2",
)
SET_NAME_SELECTOR = "span.underline.text-muted-foreground"
NUMBER_BLOCK_SELECTORS = (
    "div.flex.flex-row.flex-wrap.items-center.space-x-1.text-muted-foreground",
    "div.flex.flex-col.text-xs.sm\\:text-sm.text-muted-foreground",
)
PRODUCT_IMAGE_SELECTORS = (
    'img[src*="public-assets/products/product_"]',
    'img[src*="product_"]',
)
GRADE_BADGE_SELECTOR = "div.animate-in img"
CARD_ROOT_DEPTH = 14
BULLET = "•"

_WS_RE = re.compile(r"\s+")
_DOM_NUMBER_RE = re.compile(r"([A-Z]{1,4}\d{1,4}(?:/\d{1,4})?|\d{1,4}/\d{1,4}|\d{1,4})", re.I)
_SLASH_NUMBER_RE = re.compile(r"[A-Z0-9]{0,4}\d{1,4}/\d{1,4}", re.I)
_ALPHA_NUMBER_RE = re.compile(r"^[A-Z]{1,4}\d{1,4}$", re.I)
_ALPHA_NUMBER_SEARCH_RE = re.compile(r"[A-Z]{1,4}\d{1,4}", re.I)
_BARE_NUMBER_RE = re.compile(r"^\d{1,4}$")
_HASH_NUMBER_RE = re.compile(r"#\s*(\d{1,4})\b")
_QTY_LABEL_RE = re.compile(r"Qty\s*:", re.I)
_QTY_RE = re.compile(r"Qty\s*:\s*(\d+)", re.I)
_PRODUCT_ID_RE = re.compile(r"product_(\d+)")

# Runs inside the page: the same offset/limit walk, with the page's cookies.
PAGE_API_WALK_JS = """
async ({ profileId, headers, forcedUsername, collectionId, filters, limit, maxPages }) => {
  const getAnonUsername = () => {
    try {
      const token = JSON.parse(localStorage.getItem('collectrToken') || '{}');
      if (token && token.username) return token.username;
    } catch (e) {}
    return '00000000-0000-0000-0000-000000000000';
  };
  const pickProducts = (payload) => {
    if (payload && Array.isArray(payload.products)) return payload.products;
    if (payload && payload.data && Array.isArray(payload.data.products)) return payload.data.products;
    if (payload && payload.data && payload.data.data && Array.isArray(payload.data.data.products)) {
      return payload.data.data.products;
    }
    return [];
  };
  const username = forcedUsername || getAnonUsername();
  const items = [];
  let offset = 0;
  for (let pageIndex = 0; pageIndex < maxPages; pageIndex += 1) {
    const params = new URLSearchParams();
    params.set('offset', String(offset));
    params.set('limit', String(limit));
    params.set('unstackedView', 'true');
    params.set('username', username);
    if (collectionId) params.set('id', collectionId);
    if (filters !== null && filters !== undefined) params.set('filters', String(filters));
    const url = `https://api-v2.getcollectr.com/data/showcase/${profileId}?${params.toString()}`;
    const response = await fetch(url, { credentials: 'include', headers: headers || undefined });
    if (!response.ok) break;
    const products = pickProducts(await response.json());
    if (!products.length) break;
    items.push(...products);
    offset += limit;
  }
  return items;
}
"""

SCROLL_JS = """
() => {
  const candidates = Array.from(document.querySelectorAll('*')).filter((el) => {
    const style = window.getComputedStyle(el);
    return (style.overflowY === 'auto' || style.overflowY === 'scroll') &&
      el.scrollHeight > el.clientHeight;
  });
  const target = candidates.sort((a, b) => b.scrollHeight - a.scrollHeight)[0];
  if (target) {
    target.scrollTop = target.scrollHeight;
  } else {
    window.scrollTo(0, document.body.scrollHeight);
  }
}
"""


@dataclass
class ShowcasePayloadEvent:
    """One decoded showcase API response observed on the page."""

    url: str
    offset: Optional[str]
    products: list


class ShowcaseResponseListener:
    """
    page.on("response") handler. Only decodes and enqueues; the extraction
    loop owns the collected items.
    """

    def __init__(self, profile_id: str, queue: asyncio.Queue):
        self.profile_id = profile_id
        self.queue = queue
        self.seen_offsets: set[str] = set()

    def accepts(self, url: str, ok: bool, content_type: str) -> bool:
        if "/data/showcase/" not in url:
            return False
        if self.profile_id and self.profile_id not in url:
            return False
        return ok and "application/json" in (content_type or "")

    async def __call__(self, response: Response) -> None:
        url = response.url
        if not self.accepts(url, response.ok, response.headers.get("content-type", "")):
            return
        offset = (parse_qs(urlparse(url).query).get("offset") or [None])[0]
        if offset is not None:
            if offset in self.seen_offsets:
                return
            self.seen_offsets.add(offset)
        try:
            payload = await response.json()
        except Exception as e:
            browser_logger.debug(f"Skipping undecodable showcase response {url}: {e}")
            return
        await self.queue.put(
            ShowcasePayloadEvent(url=url, offset=offset, products=extract_products(payload))
        )


def drain_events(queue: asyncio.Queue, into: list) -> int:
    drained = 0
    while not queue.empty():
        event: ShowcasePayloadEvent = queue.get_nowait()
        into.extend(event.products)
        drained += 1
    return drained


# ===============================================================
# DOM parsing
# ===============================================================
def _text(node) -> Optional[str]:
    if node is None:
        return None
    value = _WS_RE.sub(" ", node.get_text()).strip()
    return value or None


def looks_like_dom_number(value: Optional[str]) -> bool:
    if not value:
        return False
    raw = value.strip()
    if not raw or "." in raw:
        return False
    return bool(_DOM_NUMBER_RE.search(raw))


def pick_number(values: list) -> Optional[str]:
    """Best card number among span texts: slashed, then letter-prefixed, then bare."""
    normalized = [str(v).strip() for v in values if v and str(v).strip()]
    for value in normalized:
        if _SLASH_NUMBER_RE.search(value):
            return value
    for value in normalized:
        if _ALPHA_NUMBER_RE.match(value):
            return value
    for value in normalized:
        if _BARE_NUMBER_RE.match(value):
            return value
    return None


def extract_number_from_text(raw_text: Optional[str]) -> Optional[str]:
    if not raw_text:
        return None
    value = _WS_RE.sub(" ", raw_text).strip()
    if not value:
        return None
    m = _SLASH_NUMBER_RE.search(value)
    if m:
        return m.group(0)
    m = _ALPHA_NUMBER_SEARCH_RE.search(value)
    if m:
        return m.group(0)
    m = _HASH_NUMBER_RE.search(value)
    return m.group(1) if m else None


def _has_number_block(node) -> bool:
    return any(node.select_one(selector) for selector in NUMBER_BLOCK_SELECTORS)


def find_card_root(name_node):
    current = name_node
    for _ in range(CARD_ROOT_DEPTH):
        if current is None or not hasattr(current, "select_one"):
            break
        if current.get("data-slot") == "card":
            return current
        if current.select_one(SET_NAME_SELECTOR) and (
            _has_number_block(current)
            or any(looks_like_dom_number(_text(span)) for span in current.select("span"))
        ):
            return current
        current = current.parent
    return (
        name_node.find_parent(attrs={"data-slot": "card"})
        or name_node.find_parent("article")
        or name_node.parent
    )


def _parse_card(card, name_node) -> Optional[dict]:
    name = _text(name_node)
    set_name = _text(card.select_one(SET_NAME_SELECTOR))

    card_number = None
    rarity = None
    number_block = None
    for selector in NUMBER_BLOCK_SELECTORS:
        number_block = card.select_one(selector)
        if number_block is not None:
            break
    if number_block is not None:
        values = [v for v in (_text(span) for span in number_block.select("span")) if v]
        card_number = pick_number(values)
        if BULLET in values:
            bullet_index = values.index(BULLET)
            if bullet_index > 0:
                rarity = values[bullet_index - 1]

    if not card_number:
        card_number = pick_number([_text(span) for span in card.select("span")])
    if not card_number:
        card_number = extract_number_from_text(card.get_text())

    image_url = ""
    for selector in PRODUCT_IMAGE_SELECTORS:
        img = card.select_one(selector)
        if img is not None and img.get("src"):
            image_url = img["src"]
            break
    m = _PRODUCT_ID_RE.search(image_url)
    product_id = m.group(1) if m else None

    quantity = None
    for node in card.select("span, p, div"):
        if _QTY_LABEL_RE.search(node.get_text()):
            qty = _QTY_RE.search(node.get_text())
            if qty:
                quantity = qty.group(1)
            break

    graded = len(card.select(GRADE_BADGE_SELECTOR)) >= 2

    if not name and not set_name and not card_number and not image_url:
        return None
    return {
        "product_id": product_id,
        "image_url": image_url,
        "product_name": name,
        "catalog_group": set_name,
        "card_number": card_number,
        "rarity": rarity,
        "quantity": quantity or "1",
        "grade_id": "1" if graded else None,
    }


def parse_showcase_dom(html: Optional[str]) -> list[dict]:
    """Raw items from the rendered card grid of a showcase page snapshot."""
    if not html:
        return []
    soup = BeautifulSoup(html, "lxml")

    name_nodes = []
    seen_nodes = set()
    for selector in CARD_NAME_SELECTORS:
        for node in soup.select(selector):
            if id(node) not in seen_nodes:
                seen_nodes.add(id(node))
                name_nodes.append(node)

    items = []
    seen_cards = set()
    for name_node in name_nodes:
        card = find_card_root(name_node)
        if card is None or id(card) in seen_cards:
            continue
        seen_cards.add(id(card))
        item = _parse_card(card, name_node)
        if item:
            items.append(item)
    return items


# ===============================================================
# browser flow
# ===============================================================
async def replay_showcase_api(
    page: Page, showcase: ShowcaseUrl, config: ImporterConfig
) -> list:
    try:
        items = await page.evaluate(
            PAGE_API_WALK_JS,
            {
                "profileId": showcase.profile_id,
                "headers": config.page_headers(),
                "forcedUsername": config.username,
                "collectionId": showcase.collection_id,
                "filters": config.collection_filters(showcase.collection_id),
                "limit": config.api_limit,
                "maxPages": config.api_max_pages,
            },
        )
    except Exception as e:
        browser_logger.warning(f"⚠️ In-page showcase API replay failed: {e}")
        return []
    return items if isinstance(items, list) else []


async def count_card_nodes(page: Page) -> int:
    try:
        total = 0
        for selector in CARD_NAME_SELECTORS:
            total += await page.locator(selector).count()
        return total
    except Exception:
        return 0


async def _wait_for_network_idle(page: Page) -> None:
    try:
        await page.wait_for_load_state("networkidle", timeout=NETWORK_IDLE_TIMEOUT_MS)
    except PlaywrightTimeoutError:
        pass


async def scroll_showcase(page: Page, queue: asyncio.Queue, network_items: list) -> None:
    """Scroll until MAX_IDLE_ROUNDS rounds bring neither new API items nor new cards."""
    idle_rounds = 0
    last_count = len(network_items)
    last_dom_count = await count_card_nodes(page)

    for i in range(MAX_SCROLLS):
        if idle_rounds >= MAX_IDLE_ROUNDS:
            break
        await page.evaluate(SCROLL_JS)
        await asyncio.sleep(SCROLL_DELAY)
        await _wait_for_network_idle(page)

        drain_events(queue, network_items)
        count = len(network_items)
        dom_count = await count_card_nodes(page)
        if count == last_count and dom_count == last_dom_count:
            idle_rounds += 1
        else:
            idle_rounds = 0
            last_count = count
            last_dom_count = dom_count
    browser_logger.info(
        f"🧭 Scrolling done after {i + 1} rounds: {len(network_items)} network items, "
        f"{last_dom_count} cards on page"
    )


async def snapshot_page(page: Page) -> Optional[str]:
    try:
        return await page.content()
    except Exception as e:
        browser_logger.warning(f"⚠️ Page snapshot failed: {e}")
        return None


async def fetch_showcase_via_browser(showcase: ShowcaseUrl, config: ImporterConfig) -> list:
    """Raw items seen by a browser session, deduplicated across all page sources."""
    queue: asyncio.Queue = asyncio.Queue()
    network_items: list = []

    async with browser_session(config) as page:
        page.on("response", ShowcaseResponseListener(showcase.profile_id, queue))
        browser_logger.info(f"🧭 Navigating to {showcase.url}")
        await page.goto(
            showcase.url, wait_until="domcontentloaded", timeout=NAVIGATION_TIMEOUT_MS
        )
        await asyncio.sleep(INITIAL_DELAY)

        page_api_items: list = []
        if config.use_api:
            page_api_items = await replay_showcase_api(page, showcase, config)
            browser_logger.info(f"🧭 In-page API replay returned {len(page_api_items)} items")

        scroll = config.scroll
        if page_api_items and len(page_api_items) < config.api_limit:
            scroll = False
        if scroll:
            await scroll_showcase(page, queue, network_items)

        await asyncio.sleep(SETTLE_DELAY)
        drain_events(queue, network_items)
        html = await snapshot_page(page)

    try:
        dom_items = parse_showcase_dom(html)
    except Exception as e:
        browser_logger.warning(f"⚠️ DOM scrape failed: {e}")
        dom_items = []
    html_items = extract_items_from_html(html).items

    browser_logger.info(
        f"🧭 Browser sources: {len(network_items)} network, {len(page_api_items)} replay, "
        f"{len(dom_items)} DOM, {len(html_items)} page source"
    )
    collected: list = []
    for source in (network_items, page_api_items, dom_items, html_items):
        merge_items(collected, source)
    return collected
