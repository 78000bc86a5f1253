"""
Strategy C: recover showcase items from the page source.

The showcase page embeds its initial data as JSON inside script tags, either
plain or string-escaped. Every "product_id":"<digits>" marker is taken to sit
inside one flat product object; that object's string fields are read back.
"""

import re
from dataclasses import dataclass, field
from typing import Optional

import httpx

from collectr_importer.utils.errors import NoItemsFoundError, ShowcaseFetchError
from collectr_importer.utils.httpx import httpx_get_content
from collectr_importer.utils.logger import scraper_logger
from collectr_importer.utils.text import build_name_set_key, decode_escapes

MIN_HTML_LENGTH = 1000

BLOCKED_HINT = (
    "The site may be blocking automated requests. Try setting COLLECTR_HEADLESS=0."
)

_PRODUCT_ID_MARKERS = (
    re.compile(r'\\"product_id\\":\\"(\d+)\\"'),
    re.compile(r'"product_id":"(\d+)"'),
)

HTML_FIELDS = (
    "product_id",
    "image_url",
    "product_name",
    "quantity",
    "catalog_group",
    "card_number",
    "rarity",
    "grade_id",
    "grade_company",
)


@dataclass
class HtmlExtraction:
    items: list[dict] = field(default_factory=list)
    total_blocks: int = 0


def extract_string(block: str, key: str) -> Optional[str]:
    """String value of key inside a JSON fragment, escaped form first."""
    k = re.escape(key)
    escaped = re.search(rf'\\"{k}\\":\\"(.*?)\\"', block)
    if escaped:
        return decode_escapes(escaped.group(1))
    plain = re.search(rf'"{k}":"(.*?)"', block)
    return decode_escapes(plain.group(1)) if plain else None


def extract_items_from_html(html: Optional[str]) -> HtmlExtraction:
    if not html:
        return HtmlExtraction()

    blocks: list[str] = []
    seen = set()
    for pattern in _PRODUCT_ID_MARKERS:
        for m in pattern.finditer(html):
            start = html.rfind("{", 0, m.start() + 1)
            end = html.find("}", m.start())
            if start == -1 or end == -1:
                continue
            block = html[start : end + 1]
            if block in seen:
                continue
            seen.add(block)
            blocks.append(block)

    items = []
    for block in blocks:
        item = {key: extract_string(block, key) for key in HTML_FIELDS}
        item["image_url"] = item["image_url"] or ""
        items.append(item)
    return HtmlExtraction(items=items, total_blocks=len(blocks))


def build_card_number_lookup(items: list[dict]) -> dict[str, str]:
    """(normalized set + name) -> first card number seen for it."""
    lookup: dict[str, str] = {}
    for item in items:
        key = build_name_set_key(item.get("catalog_group"), item.get("product_name"))
        number = item.get("card_number")
        if key and number and key not in lookup:
            lookup[key] = number
    return lookup


async def fetch_html_items(client: httpx.AsyncClient, url: str) -> HtmlExtraction:
    """
    Best-effort pass for enrichment: any failure yields an empty extraction.
    """
    try:
        response = await httpx_get_content(client, url)
    except httpx.HTTPError as e:
        scraper_logger.warning(f"⚠️ Showcase HTML fetch failed: {e}")
        return HtmlExtraction()
    if not response.is_success:
        scraper_logger.warning(f"⚠️ Showcase HTML answered with status {response.status_code}")
        return HtmlExtraction()
    return extract_items_from_html(response.text)


async def fetch_html_items_or_fail(client: httpx.AsyncClient, url: str) -> HtmlExtraction:
    """Last-resort pass: a failed fetch, an empty page or zero items is fatal."""
    try:
        response = await httpx_get_content(client, url)
    except httpx.HTTPError as e:
        raise ShowcaseFetchError(f"Failed to fetch {url}: {e}") from e
    if not response.is_success:
        raise ShowcaseFetchError(f"Failed to fetch {response.status_code}")

    html = response.text
    if not html or len(html.strip()) < MIN_HTML_LENGTH:
        raise NoItemsFoundError(f"Collectr returned empty HTML. {BLOCKED_HINT}")

    extraction = extract_items_from_html(html)
    if not extraction.items:
        raise NoItemsFoundError(f"No items found in Collectr HTML. {BLOCKED_HINT}")
    scraper_logger.info(
        f"🔍 Recovered {len(extraction.items)} items from {extraction.total_blocks} HTML blocks"
    )
    return extraction
