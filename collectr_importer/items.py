"""
Item normalization and cross-source merging.

Raw showcase records arrive in three shapes: snake_case objects from the
showcase API, camelCase objects captured from the page, and string bags
recovered from the page source. The alias tables below list, in priority
order, every field name observed for each canonical field.
"""

import json
import math
import re
from collections import deque
from dataclasses import fields
from typing import Any, Callable, Iterable, Optional, Pattern, Sequence

from collectr_importer.models.collectr import NormalizedItem, ShowcaseCollection
from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.logger import scraper_logger
from collectr_importer.utils.text import (
    build_collection_key,
    build_loose_key,
    build_match_key,
    extract_card_number_from_name,
    looks_like_card_number,
    strip_jp_tag,
)

# ===============================================================
# alias tables
# ===============================================================
COLLECTION_ID_KEYS = (
    "collection_id",
    "collectionId",
    "collectr_collection_id",
    "collectrCollectionId",
    "__collection_id",
)
COLLECTION_NAME_KEYS = (
    "collection_name",
    "collectionName",
    "collectr_collection_name",
    "collectrCollectionName",
    "__collection_name",
)
PRODUCT_ID_KEYS = ("product_id", "productId", "tcg_product_id", "tcgProductId")
IMAGE_URL_KEYS = ("image_url", "imageUrl")
QUANTITY_KEYS = ("quantity", "qty", "count", "total", "total_quantity")
GRADE_ID_KEYS = ("grade_id", "gradeId", "grade", "grade_value", "gradeValue")
GRADE_COMPANY_KEYS = ("grade_company", "gradeCompany")
CARD_CONDITION_KEYS = ("card_condition", "cardCondition")
IS_CARD_KEYS = ("is_card", "isCard")
NAME_KEYS = ("product_name", "productName", "name", "title")
SET_NAME_KEYS = ("catalog_group", "catalogGroup", "set_name", "setName", "group")
CARD_NUMBER_KEYS = (
    "card_number",
    "cardNumber",
    "collector_number",
    "collectorNumber",
    "number",
    "card_no",
    "cardNo",
    "num",
)
RARITY_KEYS = ("rarity", "card_rarity", "cardRarity", "rarity_name", "rarityName")

# deep-search key patterns, used only when no alias is present
NAME_PATTERNS = [
    re.compile(p, re.IGNORECASE) for p in (r"product_name", r"card_name", r"^name$", r"title")
]
SET_NAME_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (r"set_name", r"setName", r"catalog_group", r"group_name", r"^set$")
]
CARD_NUMBER_PATTERNS = [
    re.compile(p, re.IGNORECASE)
    for p in (r"card_number", r"collector_number", r"cardNo", r"card_no", r"number")
]
RARITY_PATTERNS = [re.compile(r"rarity", re.IGNORECASE)]

_IMAGE_PRODUCT_ID_RE = re.compile(r"product_(\d+)")
_INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")


def first_alias(item: dict, keys: Sequence[str]):
    """First value that is present (not None) under any of the keys."""
    for key in keys:
        value = item.get(key)
        if value is not None:
            return value
    return None


def find_first_value(
    value: Any,
    key_patterns: Sequence[Pattern],
    value_check: Optional[Callable[[Any], bool]] = None,
    depth: int = 4,
):
    """
    Breadth-first search of nested dicts/lists for a scalar whose key matches
    one of key_patterns. Shallower hits win over deeper ones.
    """
    queue = deque([(value, 0)])
    while queue:
        current, level = queue.popleft()
        if isinstance(current, list):
            if level < depth:
                queue.extend((entry, level + 1) for entry in current)
            continue
        if not isinstance(current, dict):
            continue
        for key, val in current.items():
            if val is None or isinstance(val, (dict, list)):
                continue
            if not any(p.search(str(key)) for p in key_patterns):
                continue
            if value_check is None or value_check(val):
                return val
        if level < depth:
            for val in current.values():
                if isinstance(val, (dict, list)):
                    queue.append((val, level + 1))
    return None


def summarize_keys(value: Any, depth: int = 2):
    """Shape of a record (keys and value types), for debug logging."""
    if depth < 0:
        return None
    if isinstance(value, list):
        return [summarize_keys(value[0], depth - 1)] if value else []
    if not isinstance(value, dict):
        return type(value).__name__
    out = {}
    for key, child in value.items():
        if isinstance(child, (dict, list)):
            out[key] = summarize_keys(child, depth - 1)
        else:
            out[key] = type(child).__name__
    return out


def parse_product_id(value) -> Optional[int]:
    if value is None or value == "":
        return None
    try:
        number = float(str(value).strip())
    except ValueError:
        return None
    if not math.isfinite(number) or number <= 0 or not number.is_integer():
        return None
    return int(number)


def parse_quantity(value) -> int:
    if value is None:
        return 1
    m = _INT_PREFIX_RE.match(str(value))
    if not m:
        return 1
    return max(int(m.group(1)), 1)


class DebugSampler:
    """Caps how many records get dumped when COLLECTR_DEBUG is on."""

    def __init__(self, config: ImporterConfig):
        self.enabled = config.debug
        self.limit = config.debug_limit
        self.count = 0

    def take(self) -> bool:
        if not self.enabled or self.count >= self.limit:
            return False
        self.count += 1
        return True


# ===============================================================
# normalizer
# ===============================================================
def normalize_item(
    raw: Any, sampler: Optional[DebugSampler] = None
) -> Optional[NormalizedItem]:
    if not isinstance(raw, dict):
        return None

    image_url = first_alias(raw, IMAGE_URL_KEYS) or ""
    product_id = parse_product_id(first_alias(raw, PRODUCT_ID_KEYS))
    if product_id is None:
        m = _IMAGE_PRODUCT_ID_RE.search(str(image_url))
        product_id = parse_product_id(m.group(1)) if m else None

    quantity = parse_quantity(first_alias(raw, QUANTITY_KEYS))

    is_card = None
    for key in IS_CARD_KEYS:
        if isinstance(raw.get(key), bool):
            is_card = raw[key]
            break

    raw_name = first_alias(raw, NAME_KEYS)
    if raw_name is None:
        raw_name = find_first_value(raw, NAME_PATTERNS)
    collectr_name = strip_jp_tag(raw_name)

    set_name = first_alias(raw, SET_NAME_KEYS)
    if not set_name:
        set_name = find_first_value(raw, SET_NAME_PATTERNS)

    card_number = first_alias(raw, CARD_NUMBER_KEYS)
    if not card_number:
        card_number = find_first_value(raw, CARD_NUMBER_PATTERNS, looks_like_card_number)
    if not card_number:
        card_number = extract_card_number_from_name(collectr_name)

    rarity = first_alias(raw, RARITY_KEYS)
    if not rarity:
        rarity = find_first_value(raw, RARITY_PATTERNS)

    if product_id is None and sampler is not None and sampler.take():
        scraper_logger.info(
            f"[collectr-debug] Missing product_id keys: {json.dumps(summarize_keys(raw, 2))}"
        )
        scraper_logger.info(
            "[collectr-debug] Extracted fields: "
            + json.dumps(
                {
                    "collectr_name": collectr_name,
                    "set_name": set_name,
                    "card_number": card_number,
                    "rarity": rarity,
                },
                default=str,
            )
        )

    return NormalizedItem(
        product_id=product_id,
        quantity=quantity,
        collectr_name=_text_or_none(collectr_name),
        image_url=image_url or None,
        set_name=_text_or_none(set_name),
        collection_id=_text_or_none(first_alias(raw, COLLECTION_ID_KEYS)),
        collection_name=_text_or_none(first_alias(raw, COLLECTION_NAME_KEYS)),
        grade_company=first_alias(raw, GRADE_COMPANY_KEYS),
        grade_id=first_alias(raw, GRADE_ID_KEYS),
        card_condition=first_alias(raw, CARD_CONDITION_KEYS),
        is_card=is_card,
        card_number=_text_or_none(card_number),
        rarity=_text_or_none(rarity),
    )


def _text_or_none(value) -> Optional[str]:
    if value is None or value == "":
        return None
    return str(value)


def is_graded(item: NormalizedItem, ungraded_grade_id: str = "52") -> bool:
    """Graded (slabbed) items never reach aggregation."""
    if item.grade_company:
        return True
    if item.is_card is False:
        return False
    if item.grade_id is None:
        return False
    grade = str(item.grade_id).strip()
    if not grade:
        return False
    return grade != str(ungraded_grade_id)


# ===============================================================
# merger
# ===============================================================
def _is_blank(value) -> bool:
    return value is None or value == ""


def _as_mapping(item) -> dict:
    if isinstance(item, NormalizedItem):
        return {f.name: getattr(item, f.name) for f in fields(item)}
    return item


def _identity(item) -> tuple[str, Optional[str], Optional[str], Optional[str]]:
    """(collection key, id, tight key, loose key) for a raw or normalized item."""
    if isinstance(item, NormalizedItem):
        collection_key = item.collection_key
        product_id = item.product_id
        set_name, name, number = item.set_name, item.collectr_name, item.card_number
    else:
        collection_key = build_collection_key(
            first_alias(item, COLLECTION_ID_KEYS), first_alias(item, COLLECTION_NAME_KEYS)
        )
        product_id = first_alias(item, PRODUCT_ID_KEYS)
        set_name = first_alias(item, SET_NAME_KEYS)
        name = first_alias(item, NAME_KEYS)
        number = first_alias(item, CARD_NUMBER_KEYS)
    id_key = str(product_id) if not _is_blank(product_id) else None
    return (
        collection_key,
        id_key,
        build_match_key(set_name, name, number),
        build_loose_key(set_name, name, number),
    )


def _fill_gaps(target, source) -> None:
    """Copy source fields into target only where target is empty."""
    for key, value in _as_mapping(source).items():
        if _is_blank(value):
            continue
        if isinstance(target, NormalizedItem):
            if hasattr(target, key) and _is_blank(getattr(target, key)):
                setattr(target, key, value)
        elif _is_blank(target.get(key)):
            target[key] = value


def merge_items(primary: list, secondary: Iterable) -> list:
    """
    Merge secondary items into primary (in place) and return primary.

    A secondary item is matched, within its collection scope, by explicit id,
    then by tight composite key, then by loose composite key. A composite-key
    match is refused when both items carry different explicit ids. Matched
    items only fill gaps; unmatched items are appended.
    """
    by_id: dict[str, Any] = {}
    by_tight: dict[str, Any] = {}
    by_loose: dict[str, Any] = {}

    def index(item) -> None:
        scope, id_key, tight, loose = _identity(item)
        if id_key:
            by_id.setdefault(f"{scope}|{id_key}", item)
        if tight:
            by_tight.setdefault(f"{scope}|{tight}", item)
        if loose:
            by_loose.setdefault(f"{scope}|{loose}", item)

    for item in primary:
        index(item)

    for item in secondary or []:
        if item is None:
            continue
        scope, id_key, tight, loose = _identity(item)

        target = by_id.get(f"{scope}|{id_key}") if id_key else None
        for key, table in ((tight, by_tight), (loose, by_loose)):
            if target is not None or not key:
                continue
            candidate = table.get(f"{scope}|{key}")
            if candidate is None:
                continue
            candidate_id = _identity(candidate)[1]
            if id_key and candidate_id and candidate_id != id_key:
                continue
            target = candidate

        if target is not None:
            _fill_gaps(target, item)
            continue

        if not (id_key or tight or loose) and item in primary:
            continue
        primary.append(item)
        index(item)

    return primary


def tag_items_with_collection(items: list, collection: ShowcaseCollection) -> list:
    """Stamp raw items with their sub-collection, keeping any existing tag."""
    if not collection.id and not collection.name:
        return items
    for item in items:
        if not isinstance(item, dict):
            continue
        if collection.id and not item.get("collection_id"):
            item["collection_id"] = collection.id
        if collection.name and not item.get("collection_name"):
            item["collection_name"] = collection.name
    return items
