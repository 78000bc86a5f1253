"""
Strategy A: walk the public showcase API page by page.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

import httpx

from collectr_importer.items import tag_items_with_collection
from collectr_importer.models.collectr import ShowcaseCollection
from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.errors import InvalidShowcaseUrlError
from collectr_importer.utils.httpx import httpx_get_json
from collectr_importer.utils.logger import log_scrape_progress, scraper_logger

COLLECTR_API_BASE = "https://api-v2.getcollectr.com"
SHOWCASE_HOST = "app.getcollectr.com"

_PROFILE_PATH_RE = re.compile(r"showcase/profile/([^/]+)", re.IGNORECASE)


@dataclass(frozen=True)
class ShowcaseUrl:
    url: str
    profile_id: str
    collection_id: Optional[str] = None

    @property
    def api_url(self) -> str:
        return showcase_api_url(self.profile_id)


@dataclass
class ApiWalkResult:
    items: list[dict] = field(default_factory=list)
    collections: list[ShowcaseCollection] = field(default_factory=list)


def parse_showcase_url(url: Optional[str]) -> ShowcaseUrl:
    if not url or not str(url).strip():
        raise InvalidShowcaseUrlError("Missing Collectr URL.")
    parsed = urlparse(str(url).strip())
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        raise InvalidShowcaseUrlError("Invalid Collectr URL.")
    if (parsed.hostname or "").lower() != SHOWCASE_HOST:
        raise InvalidShowcaseUrlError(f"URL must be a {SHOWCASE_HOST} link.")

    m = _PROFILE_PATH_RE.search(parsed.path)
    if not m:
        raise InvalidShowcaseUrlError("URL must point to a Collectr profile page.")

    query = parse_qs(parsed.query)
    collection_id = (query.get("collection") or query.get("id") or [None])[0] or None
    return ShowcaseUrl(url=parsed.geturl(), profile_id=m.group(1), collection_id=collection_id)


def showcase_api_url(profile_id: str) -> str:
    return f"{COLLECTR_API_BASE}/data/showcase/{profile_id}"


def build_showcase_params(
    offset: int,
    limit: int,
    username: str,
    collection_id: Optional[str] = None,
    filters: Optional[str] = None,
) -> dict[str, str]:
    params = {
        "offset": str(offset),
        "limit": str(limit),
        "unstackedView": "true",
        "username": username,
    }
    if collection_id:
        params["id"] = str(collection_id)
    if filters is not None:
        params["filters"] = str(filters)
    return params


def extract_products(payload: Any) -> list:
    """Products live at products, data.products or data.data.products."""
    candidates = [payload]
    if isinstance(payload, dict):
        data = payload.get("data")
        candidates.append(data)
        if isinstance(data, dict):
            candidates.append(data.get("data"))
    for candidate in candidates:
        if isinstance(candidate, dict) and isinstance(candidate.get("products"), list):
            return candidate["products"]
    return []


def extract_collections(payload: Any) -> list[ShowcaseCollection]:
    raw: list = []
    if isinstance(payload, dict):
        data = payload.get("data")
        if isinstance(payload.get("collections"), list):
            raw = payload["collections"]
        elif isinstance(data, dict) and isinstance(data.get("collections"), list):
            raw = data["collections"]

    collections = []
    for entry in raw:
        if not isinstance(entry, dict):
            continue
        collection_id = entry.get("id")
        collections.append(
            ShowcaseCollection(
                id=str(collection_id) if collection_id not in (None, "") else None,
                name=entry.get("name") or None,
            )
        )
    return collections


async def fetch_showcase_pages(
    client: httpx.AsyncClient,
    profile_id: str,
    config: ImporterConfig,
    collection_id: Optional[str] = None,
    filters: Optional[str] = None,
) -> ApiWalkResult:
    """
    Sequential offset/limit walk. Stops at the first empty, failed or
    non-JSON page and keeps what was collected before it.
    """
    result = ApiWalkResult()
    limit = config.api_limit
    offset = 0
    url = showcase_api_url(profile_id)

    for page in range(config.api_max_pages):
        params = build_showcase_params(
            offset, limit, config.api_username, collection_id, filters
        )
        try:
            payload = await httpx_get_json(client, url, params=params)
        except httpx.HTTPError as e:
            scraper_logger.warning(f"⚠️ Showcase API page {page + 1} failed: {e}")
            break
        if payload is None:
            break

        if page == 0:
            result.collections = extract_collections(payload)

        products = extract_products(payload)
        if not products:
            break
        result.items.extend(products)
        log_scrape_progress(scraper_logger, page, config.api_max_pages, len(result.items))
        offset += limit

    return result


async def fetch_showcase_via_api(
    client: httpx.AsyncClient, showcase: ShowcaseUrl, config: ImporterConfig
) -> ApiWalkResult:
    """
    Walk the requested showcase. When the first page advertises
    sub-collections, walk each of them instead and tag their items.
    """
    initial = await fetch_showcase_pages(
        client,
        showcase.profile_id,
        config,
        showcase.collection_id,
        config.collection_filters(showcase.collection_id),
    )
    if not initial.collections:
        scraper_logger.info(f"🌐 Showcase API returned {len(initial.items)} items")
        return initial

    loop_filters = config.filters if config.filters is not None else ""
    items: list[dict] = []
    for collection in initial.collections:
        walked = await fetch_showcase_pages(
            client, showcase.profile_id, config, collection.id, loop_filters
        )
        tag_items_with_collection(walked.items, collection)
        items.extend(walked.items)
        scraper_logger.info(
            f"🌐 Collection '{collection.name or collection.id}': {len(walked.items)} items"
        )
    return ApiWalkResult(items=items, collections=initial.collections)
