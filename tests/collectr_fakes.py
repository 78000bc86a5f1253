import copy
from types import SimpleNamespace

import httpx

from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.httpx import create_http_client


class FakeQuery:
    """Just enough of the postgrest query builder for the catalog reads."""

    def __init__(self, db: "FakeSupabase", table: str):
        self.db = db
        self.table_name = table
        self.columns = None
        self.filters = []
        self._range = None
        self._limit = None

    def select(self, columns):
        self.columns = columns
        return self

    def in_(self, column, values):
        self.filters.append(("in", column, list(values)))
        return self

    def ilike(self, column, pattern):
        self.filters.append(("ilike", column, pattern))
        return self

    def or_(self, expression, reference_table=None):
        self.filters.append(("or", reference_table, expression))
        return self

    def range(self, start, end):
        self._range = (start, end)
        return self

    def limit(self, count):
        self._limit = count
        return self

    def execute(self):
        self.db.calls.append((self.table_name, list(self.filters)))
        rows = copy.deepcopy(self.db.tables.get(self.table_name, []))
        for kind, column, value in self.filters:
            if kind == "in":
                rows = [r for r in rows if r.get(column) in value]
            elif kind == "ilike":
                needle = value.strip("%").lower()
                rows = [r for r in rows if needle in str(r.get(column) or "").lower()]
            elif kind == "or":
                # without !inner only the embedded rows are narrowed
                terms = []
                for part in value.split(","):
                    col, _, pattern = part.split(".", 2)
                    terms.append((col, pattern.strip("%").lower()))
                for row in rows:
                    embedded = row.get(column)
                    if not isinstance(embedded, dict):
                        continue
                    if not any(
                        needle in str(embedded.get(col) or "").lower() for col, needle in terms
                    ):
                        row[column] = None
        if self._range:
            start, end = self._range
            rows = rows[start : end + 1]
        if self._limit is not None:
            rows = rows[: self._limit]
        return SimpleNamespace(data=rows)


class FakeSupabase:
    def __init__(self, tables: dict):
        self.tables = tables
        self.calls = []

    def table(self, name):
        return FakeQuery(self, name)

    def calls_to(self, table):
        return [filters for name, filters in self.calls if name == table]


class BrokenSupabase:
    def table(self, name):
        raise RuntimeError("connection refused")


JUNGLE = {"id": 1, "name": "Jungle", "name_other": None, "code": "JU"}
BASE_SET = {"id": 2, "name": "Base Set", "name_other": "Base", "code": "BS"}
DARK_FANTASY = {
    "id": 10,
    "name": "Dark Fantasy",
    "name_other": "Pokemon Japan Dark Fantasy",
    "code": "S5a",
}
SHINY_TREASURE = {"id": 11, "name": "SV4a: Shiny Treasure ex", "name_other": None, "code": "SV4a"}


def catalog_tables() -> dict:
    return {
        "pokemon_sets": [JUNGLE, BASE_SET],
        "pokemon_japan_sets": [DARK_FANTASY, SHINY_TREASURE],
        "pokemon_products": [
            {
                "tcg_product_id": 200,
                "set_id": 1,
                "name": "Electrode",
                "product_type": "Cards",
                "card_number": "5/64",
                "rarity": "Rare",
                "image_url": "https://img/200.png",
                "market_price": 3.0,
                "pokemon_sets": JUNGLE,
            },
            {
                "tcg_product_id": 123,
                "set_id": 1,
                "name": "Clefable",
                "product_type": "Cards",
                "card_number": "5/64",
                "rarity": "Holo Rare",
                "image_url": "https://img/123.png",
                "market_price": 42.5,
                "pokemon_sets": JUNGLE,
            },
            {
                "tcg_product_id": 300,
                "set_id": 2,
                "name": "Charizard",
                "product_type": "Cards",
                "card_number": "4/102",
                "rarity": "Holo Rare",
                "image_url": "https://img/300.png",
                "market_price": 350.0,
                "pokemon_sets": BASE_SET,
            },
        ],
        "pokemon_japan_products": [
            {
                "tcg_product_id": 900,
                "set_id": 10,
                "name": "Umbreon",
                "product_type": "Cards",
                "card_number": "041/071",
                "rarity": "R",
                "image_url": "https://img/900.png",
                "market_price": 12.0,
                "pokemon_japan_sets": DARK_FANTASY,
            },
        ],
    }


def mock_client(config: ImporterConfig, handler) -> httpx.AsyncClient:
    return create_http_client(config, transport=httpx.MockTransport(handler))
