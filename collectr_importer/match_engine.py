"""
Catalog matching for aggregated showcase entries.

Entries carrying a product id are resolved by a direct batch lookup in the
partition chosen by the set classifier. Entries without one are resolved by
set + card number: English entries against products of every candidate set,
Japanese entries by a per-entry catalog search. Japanese entries always carry
an explainability record of which checks passed.
"""

from dataclasses import dataclass
from typing import Optional

from collectr_importer.models.catalog import CatalogLanguage, CatalogProduct
from collectr_importer.models.collectr import AggregatedEntry, JapaneseChecks, MatchResult
from collectr_importer.set_classifier import find_set_rows
from collectr_importer.utils.logger import matching_logger
from collectr_importer.utils.supabase import CatalogClient
from collectr_importer.utils.text import names_like, normalize_card_number


@dataclass
class Resolution:
    product: Optional[CatalogProduct] = None
    japanese_checks: Optional[JapaneseChecks] = None


def _language(entry: AggregatedEntry) -> CatalogLanguage:
    return CatalogLanguage.japanese if entry.is_japanese else CatalogLanguage.english


def build_japanese_checks(
    entry: AggregatedEntry, product: Optional[CatalogProduct]
) -> JapaneseChecks:
    catalog_set = product.catalog_set if product else None
    set_match = bool(catalog_set) and (
        names_like(entry.set_name, catalog_set.name)
        or names_like(entry.set_name, catalog_set.name_other)
    )
    showcase_number = normalize_card_number(entry.card_number)
    product_number = normalize_card_number(product.card_number) if product else None
    number_match = bool(showcase_number) and showcase_number == product_number
    name_match = None
    if entry.collectr_name and product and product.name:
        name_match = names_like(entry.collectr_name, product.name)
    return JapaneseChecks(
        set_match=set_match, card_number_match=number_match, name_match=name_match
    )


# ===============================================================
# direct path
# ===============================================================
def _lookup_by_ids(
    entries: list[AggregatedEntry], catalog: CatalogClient
) -> dict[CatalogLanguage, dict[int, CatalogProduct]]:
    ids: dict[CatalogLanguage, list[int]] = {
        CatalogLanguage.english: [],
        CatalogLanguage.japanese: [],
    }
    for entry in entries:
        bucket = ids[_language(entry)]
        if entry.product_id is not None and entry.product_id not in bucket:
            bucket.append(entry.product_id)

    lookup: dict[CatalogLanguage, dict[int, CatalogProduct]] = {}
    for language, product_ids in ids.items():
        products = catalog.products_by_ids(language, product_ids)
        lookup[language] = {
            p.tcg_product_id: p for p in products if p.tcg_product_id is not None
        }
    return lookup


# ===============================================================
# english fuzzy path
# ===============================================================
def _pick_candidate(candidates: list[CatalogProduct], name: Optional[str]):
    if name:
        for product in candidates:
            if names_like(product.name, name):
                return product
    return candidates[0] if candidates else None


def match_english_by_set(
    entries: list[AggregatedEntry], catalog: CatalogClient
) -> dict[int, CatalogProduct]:
    """Resolve id-less English entries by (candidate set, card number)."""
    entry_set_ids: dict[int, list[str]] = {}
    all_set_ids: list = []
    seen = set()
    for entry in entries:
        rows = find_set_rows(entry.set_name, catalog.english_index, allow_partial=True)
        if not rows:
            continue
        entry_set_ids[id(entry)] = [str(row.id) for row in rows]
        for row in rows:
            if str(row.id) not in seen:
                seen.add(str(row.id))
                all_set_ids.append(row.id)

    if not all_set_ids:
        return {}

    products = catalog.products_by_set_ids(CatalogLanguage.english, all_set_ids)
    index: dict[tuple[str, str], list[CatalogProduct]] = {}
    for product in products:
        number_key = normalize_card_number(product.card_number)
        if product.set_id is None or not number_key:
            continue
        index.setdefault((str(product.set_id), number_key), []).append(product)

    matches: dict[int, CatalogProduct] = {}
    for entry in entries:
        number_key = normalize_card_number(entry.card_number)
        set_ids = entry_set_ids.get(id(entry), [])
        if not number_key or not set_ids:
            continue
        for set_id in set_ids:
            product = _pick_candidate(index.get((set_id, number_key), []), entry.collectr_name)
            if product:
                matches[id(entry)] = product
                break

    matching_logger.info(
        f"🎯 English set/number matching resolved {len(matches)}/{len(entries)} entries"
    )
    return matches


# ===============================================================
# japanese fuzzy path
# ===============================================================
def match_japanese_entry(entry: AggregatedEntry, catalog: CatalogClient) -> Resolution:
    raw_number = str(entry.card_number).strip() if entry.card_number else ""
    if not entry.set_name or not raw_number:
        return Resolution(
            product=None,
            japanese_checks=JapaneseChecks(
                set_match=False,
                card_number_match=False,
                name_match=False if entry.collectr_name else None,
            ),
        )

    normalized = normalize_card_number(raw_number)
    numbers = [raw_number] if normalized == raw_number else [raw_number, normalized]
    candidates = catalog.search_japan_products(numbers, entry.collectr_name, entry.set_name)
    candidates = [p for p in candidates if normalize_card_number(p.card_number) == normalized]
    # the set filter narrows only the embedded set, so prefer rows that kept it
    candidates.sort(key=lambda p: p.catalog_set is None)
    product = candidates[0] if candidates else None
    return Resolution(product=product, japanese_checks=build_japanese_checks(entry, product))


# ===============================================================
# assembly
# ===============================================================
def _build_result(
    entry: AggregatedEntry, resolution: Resolution, id_bearing: bool
) -> MatchResult:
    product = resolution.product
    catalog_set = product.catalog_set if product else None
    if id_bearing:
        tcg_product_id = entry.product_id
        name = product.name if product else None
        card_number = product.card_number if product else None
        rarity = product.rarity if product else None
    else:
        tcg_product_id = product.tcg_product_id if product else None
        name = (product.name if product else None) or entry.collectr_name
        card_number = (product.card_number if product else None) or entry.card_number
        rarity = (product.rarity if product else None) or entry.rarity

    return MatchResult(
        tcg_product_id=tcg_product_id,
        quantity=entry.quantity,
        collectr_collection_id=entry.collection_id or None,
        collectr_collection_name=entry.collection_name or None,
        collectr_set=entry.set_name or None,
        collectr_name=entry.collectr_name or None,
        collectr_image_url=entry.image_url or None,
        matched=product is not None,
        name=name,
        set=catalog_set.name if catalog_set else None,
        code=catalog_set.code if catalog_set else None,
        product_type=product.product_type if product else None,
        card_number=card_number,
        rarity=rarity,
        image_url=product.image_url if product else None,
        market_price=product.market_price if product else None,
        japanese_checks=resolution.japanese_checks if entry.is_japanese else None,
    )


def match_entries(
    id_bearing: list[AggregatedEntry],
    id_less: list[AggregatedEntry],
    catalog: CatalogClient,
) -> list[MatchResult]:
    """One MatchResult per entry; id-bearing results first, then id-less."""
    resolutions: dict[int, Resolution] = {}

    direct = _lookup_by_ids(id_bearing, catalog)
    for entry in id_bearing:
        product = direct[_language(entry)].get(entry.product_id)
        resolutions[id(entry)] = Resolution(product=product)

    english_missing = [e for e in id_less if not e.is_japanese]
    for entry_id, product in match_english_by_set(english_missing, catalog).items():
        resolutions[entry_id] = Resolution(product=product)

    japanese_pending = [e for e in id_less if e.is_japanese]
    japanese_pending += [
        e for e in id_bearing if e.is_japanese and resolutions[id(e)].product is None
    ]
    for entry in japanese_pending:
        resolutions[id(entry)] = match_japanese_entry(entry, catalog)

    for entry in id_bearing:
        resolution = resolutions[id(entry)]
        if entry.is_japanese and resolution.japanese_checks is None:
            resolution.japanese_checks = build_japanese_checks(entry, resolution.product)

    results = [
        _build_result(e, resolutions.get(id(e), Resolution()), id_bearing=True)
        for e in id_bearing
    ]
    results += [
        _build_result(e, resolutions.get(id(e), Resolution()), id_bearing=False)
        for e in id_less
    ]
    matched = sum(1 for r in results if r.matched)
    matching_logger.info(f"🎯 Matched {matched}/{len(results)} entries against the catalog")
    return results
