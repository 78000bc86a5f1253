"""
Multi-source showcase extraction.

Strategies run cheapest first and the first non-empty one wins:
A) the showcase API, B) a headless browser, C) the static page source.
The page source is also used to fill in card numbers the winner lacked.
"""

from dataclasses import dataclass, field
from typing import Optional

import httpx

from collectr_importer.handlers.collectr_api import (
    ApiWalkResult,
    ShowcaseUrl,
    fetch_showcase_via_api,
)
from collectr_importer.handlers.collectr_browser import fetch_showcase_via_browser
from collectr_importer.handlers.collectr_html import (
    HtmlExtraction,
    build_card_number_lookup,
    fetch_html_items,
    fetch_html_items_or_fail,
)
from collectr_importer.items import CARD_NUMBER_KEYS, first_alias, merge_items
from collectr_importer.models.collectr import ShowcaseCollection
from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.errors import NoItemsFoundError
from collectr_importer.utils.logger import scraper_logger


@dataclass
class ExtractionResult:
    items: list = field(default_factory=list)
    collections: list[ShowcaseCollection] = field(default_factory=list)
    total_seen: int = 0
    card_number_lookup: Optional[dict[str, str]] = None


def has_missing_card_numbers(items: list) -> bool:
    return any(isinstance(item, dict) and not first_alias(item, CARD_NUMBER_KEYS) for item in items)


def _lookup_from(extraction: HtmlExtraction) -> Optional[dict[str, str]]:
    return build_card_number_lookup(extraction.items) or None


async def extract_showcase_items(
    showcase: ShowcaseUrl, config: ImporterConfig, client: httpx.AsyncClient
) -> ExtractionResult:
    result = ExtractionResult()

    if config.use_api:
        try:
            walk = await fetch_showcase_via_api(client, showcase, config)
        except Exception as e:
            scraper_logger.warning(f"⚠️ Showcase API strategy failed: {type(e).__name__} - {e}")
            walk = ApiWalkResult()
        result.items = walk.items
        result.collections = walk.collections

    if not result.items and config.use_browser:
        try:
            result.items = await fetch_showcase_via_browser(showcase, config)
        except Exception as e:
            scraper_logger.warning(f"⚠️ Browser strategy failed: {type(e).__name__} - {e}")
            result.items = []

    result.total_seen = len(result.items)

    if result.items and has_missing_card_numbers(result.items):
        scraper_logger.info("🔍 Some items lack card numbers; enriching from page source")
        extraction = await fetch_html_items(client, showcase.url)
        if extraction.items:
            merge_items(result.items, extraction.items)
            result.total_seen = max(
                result.total_seen, extraction.total_blocks or len(extraction.items)
            )
            result.card_number_lookup = _lookup_from(extraction)

    if not result.items:
        scraper_logger.info("🔍 Falling back to the static page source")
        extraction = await fetch_html_items_or_fail(client, showcase.url)
        result.items = extraction.items
        result.total_seen = extraction.total_blocks or len(extraction.items)
        result.card_number_lookup = _lookup_from(extraction)

    if not result.items:
        raise NoItemsFoundError("No items found in the Collectr showcase.")

    scraper_logger.info(f"🔍 Extracted {len(result.items)} raw items ({result.total_seen} seen)")
    return result
