from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class CatalogLanguage(str, Enum):
    english = "english"
    japanese = "japanese"


# table names per language partition
set_tables = {
    CatalogLanguage.english.value: "pokemon_sets",
    CatalogLanguage.japanese.value: "pokemon_japan_sets",
}

product_tables = {
    CatalogLanguage.english.value: "pokemon_products",
    CatalogLanguage.japanese.value: "pokemon_japan_products",
}


class CatalogSet(BaseModel):
    """A catalog set row. Read-only for the duration of a run."""

    id: Any
    name: str
    name_other: Optional[str] = None
    code: Optional[str] = None
    language: CatalogLanguage = CatalogLanguage.english

    class Config:
        frozen = True


class CatalogProduct(BaseModel):
    """A catalog product row, with its owning set when the query embedded it."""

    tcg_product_id: Optional[int] = None
    set_id: Optional[Any] = None
    name: Optional[str] = None
    product_type: Optional[str] = None
    card_number: Optional[str] = None
    rarity: Optional[str] = None
    image_url: Optional[str] = None
    market_price: Optional[float] = None
    catalog_set: Optional[CatalogSet] = Field(None, description="Embedded owning set")

    class Config:
        frozen = True

    @classmethod
    def from_row(cls, row: dict, language: CatalogLanguage) -> "CatalogProduct":
        """Build from a supabase row; the embedded set may come back as a dict or a list."""
        embedded = row.get(set_tables[language.value])
        if isinstance(embedded, list):
            embedded = embedded[0] if embedded else None
        catalog_set = None
        if isinstance(embedded, dict) and embedded.get("name"):
            catalog_set = CatalogSet(
                id=embedded.get("id"),
                name=embedded["name"],
                name_other=embedded.get("name_other"),
                code=embedded.get("code"),
                language=language,
            )
        return cls(
            tcg_product_id=row.get("tcg_product_id"),
            set_id=row.get("set_id") or (catalog_set.id if catalog_set else None),
            name=row.get("name"),
            product_type=row.get("product_type"),
            card_number=row.get("card_number"),
            rarity=row.get("rarity"),
            image_url=row.get("image_url"),
            market_price=row.get("market_price"),
            catalog_set=catalog_set,
        )
