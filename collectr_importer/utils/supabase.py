"""Read-only Supabase access to the Pokemon set/product catalog."""

import re
from typing import Iterable, Optional

from supabase import create_client, Client

from collectr_importer.models.catalog import (
    CatalogLanguage,
    CatalogProduct,
    CatalogSet,
    product_tables,
    set_tables,
)
from collectr_importer.set_classifier import build_set_index
from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.errors import CatalogReadError, MissingCredentialsError
from collectr_importer.utils.logger import log_database_operation, supabase_logger
from collectr_importer.utils.text import chunked

sb_logger = supabase_logger

PRODUCT_ID_CHUNK = 400
SET_ID_CHUNK = 200
JAPAN_SEARCH_LIMIT = 5
# PostgREST caps a single response at this many rows
PAGE_SIZE = 1000

PRODUCT_COLUMNS = (
    "tcg_product_id, set_id, name, product_type, card_number, rarity, image_url, market_price"
)

# characters that would break a PostgREST or() filter expression
_FILTER_UNSAFE_RE = re.compile(r"[,()]")


def create_catalog_client(config: ImporterConfig) -> Client:
    """Create the supabase client from config, or fail before any network work."""
    if not config.supabase_url or not config.supabase_key:
        raise MissingCredentialsError(
            "Missing Supabase credentials. Set SUPABASE_URL and SUPABASE_SERVICE_ROLE_KEY "
            "(or SUPABASE_ANON_KEY)."
        )
    sb_logger.info("🔧 Initializing Supabase connection...")
    sb_logger.info(f"   🌐 URL: {config.supabase_url}")
    return create_client(config.supabase_url, config.supabase_key)


def _embed_select(language: CatalogLanguage) -> str:
    return f"{set_tables[language.value]}(id, name, name_other, code)"


def _rows(res) -> list[dict]:
    return list(getattr(res, "data", []) or [])


def _execute_paged(build_query) -> list[dict]:
    """Run build_query() page by page until a short page comes back."""
    rows: list[dict] = []
    start = 0
    while True:
        page = _rows(build_query().range(start, start + PAGE_SIZE - 1).execute())
        rows.extend(page)
        if len(page) < PAGE_SIZE:
            return rows
        start += PAGE_SIZE


# ===============================================================
# getters
# ===============================================================
def supabase_get_sets(client: Client, language: CatalogLanguage) -> list[CatalogSet]:
    table = set_tables[language.value]
    try:
        rows = _execute_paged(
            lambda: client.table(table).select("id, name, name_other, code")
        )
    except Exception as e:
        sb_logger.exception("supabase_get_sets failed: %s", e)
        raise CatalogReadError(f"Database fetch error ({table})") from e
    sets = [
        CatalogSet(
            id=row.get("id"),
            name=row["name"],
            name_other=row.get("name_other"),
            code=row.get("code"),
            language=language,
        )
        for row in rows
        if row.get("name")
    ]
    log_database_operation(sb_logger, "Fetched", len(sets), table)
    return sets


def _fetch_products_in(
    client: Client,
    language: CatalogLanguage,
    column: str,
    values: Iterable,
    size: int,
) -> list[CatalogProduct]:
    table = product_tables[language.value]
    select = f"{PRODUCT_COLUMNS}, {_embed_select(language)}"
    products: list[CatalogProduct] = []
    for group in chunked(values, size):
        try:
            rows = _execute_paged(
                lambda: client.table(table).select(select).in_(column, group)
            )
        except Exception as e:
            sb_logger.exception("supabase fetch by %s failed: %s", column, e)
            raise CatalogReadError(f"Database fetch error ({table})") from e
        products.extend(CatalogProduct.from_row(row, language) for row in rows)
    log_database_operation(sb_logger, "Fetched", len(products), table)
    return products


def supabase_get_products_by_ids(
    client: Client, language: CatalogLanguage, product_ids: list[int]
) -> list[CatalogProduct]:
    if not product_ids:
        return []
    return _fetch_products_in(client, language, "tcg_product_id", product_ids, PRODUCT_ID_CHUNK)


def supabase_get_products_by_set_ids(
    client: Client, language: CatalogLanguage, set_ids: list
) -> list[CatalogProduct]:
    if not set_ids:
        return []
    return _fetch_products_in(client, language, "set_id", set_ids, SET_ID_CHUNK)


def supabase_search_japan_products(
    client: Client,
    card_numbers: list[str],
    name: Optional[str],
    set_name: str,
) -> list[CatalogProduct]:
    """
    One Japanese catalog search: card number in card_numbers, product name
    ilike %name% (when given), owning set name/name_other ilike %set_name%.
    """
    language = CatalogLanguage.japanese
    table = product_tables[language.value]
    set_table = set_tables[language.value]
    set_term = _FILTER_UNSAFE_RE.sub(" ", set_name).strip()
    try:
        query = (
            client.table(table)
            .select(f"{PRODUCT_COLUMNS}, {_embed_select(language)}")
            .in_("card_number", card_numbers)
        )
        if name:
            query = query.ilike("name", f"%{name}%")
        if set_term:
            query = query.or_(
                f"name.ilike.%{set_term}%,name_other.ilike.%{set_term}%",
                reference_table=set_table,
            )
        res = query.limit(JAPAN_SEARCH_LIMIT).execute()
    except Exception as e:
        sb_logger.exception("supabase_search_japan_products failed: %s", e)
        raise CatalogReadError(f"Database fetch error ({table})") from e
    return [CatalogProduct.from_row(row, language) for row in _rows(res)]


class CatalogClient:
    """
    One catalog session for a run: the supabase client plus both set
    partitions, loaded once and indexed for name lookups.
    """

    def __init__(self, client: Client):
        self.client = client
        self.english_index: dict[str, list[CatalogSet]] = {}
        self.japan_index: dict[str, list[CatalogSet]] = {}

    @classmethod
    def from_config(cls, config: ImporterConfig) -> "CatalogClient":
        return cls(create_catalog_client(config))

    def load_sets(self) -> "CatalogClient":
        self.english_index = build_set_index(
            supabase_get_sets(self.client, CatalogLanguage.english)
        )
        self.japan_index = build_set_index(
            supabase_get_sets(self.client, CatalogLanguage.japanese)
        )
        return self

    def products_by_ids(self, language: CatalogLanguage, product_ids: list[int]):
        return supabase_get_products_by_ids(self.client, language, product_ids)

    def products_by_set_ids(self, language: CatalogLanguage, set_ids: list):
        return supabase_get_products_by_set_ids(self.client, language, set_ids)

    def search_japan_products(self, card_numbers: list[str], name, set_name: str):
        return supabase_search_japan_products(self.client, card_numbers, name, set_name)
