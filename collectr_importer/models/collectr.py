"""
Models for showcase items as they move through the import pipeline.

NormalizedItem and AggregatedEntry are mutable working records owned by a
single run; the pydantic models below them are the response payload.
"""

from dataclasses import dataclass
from typing import Any, List, Optional

from pydantic import BaseModel, Field

from collectr_importer.utils.text import build_collection_key


@dataclass
class NormalizedItem:
    """Canonical shape of one raw showcase record."""

    product_id: Optional[int] = None
    quantity: int = 1
    collectr_name: Optional[str] = None
    image_url: Optional[str] = None
    set_name: Optional[str] = None
    collection_id: Optional[str] = None
    collection_name: Optional[str] = None
    grade_company: Optional[str] = None
    grade_id: Optional[Any] = None
    card_condition: Optional[str] = None
    is_card: Optional[bool] = None
    card_number: Optional[str] = None
    rarity: Optional[str] = None

    @property
    def collection_key(self) -> str:
        return build_collection_key(self.collection_id, self.collection_name)


@dataclass
class AggregatedEntry:
    """Items sharing one identity inside one collection scope."""

    collection_key: str
    product_id: Optional[int] = None
    quantity: int = 0
    set_name: Optional[str] = None
    collectr_name: Optional[str] = None
    image_url: Optional[str] = None
    card_number: Optional[str] = None
    rarity: Optional[str] = None
    collection_id: Optional[str] = None
    collection_name: Optional[str] = None
    is_japanese: bool = False


class ShowcaseCollection(BaseModel):
    id: Optional[str] = None
    name: Optional[str] = None


class JapaneseChecks(BaseModel):
    """Why a Japanese match was (or was not) accepted."""

    set_match: bool = False
    card_number_match: bool = False
    name_match: Optional[bool] = Field(
        None, description="None when the showcase item has no display name"
    )


class MatchResult(BaseModel):
    tcg_product_id: Optional[int] = None
    quantity: int
    collectr_collection_id: Optional[str] = None
    collectr_collection_name: Optional[str] = None
    collectr_set: Optional[str] = None
    collectr_name: Optional[str] = None
    collectr_image_url: Optional[str] = None
    matched: bool = False
    name: Optional[str] = None
    set: Optional[str] = None
    code: Optional[str] = None
    product_type: Optional[str] = None
    card_number: Optional[str] = None
    rarity: Optional[str] = None
    image_url: Optional[str] = None
    market_price: Optional[float] = None
    japanese_checks: Optional[JapaneseChecks] = None


class RunSummary(BaseModel):
    total_raw_items_seen: int = 0
    aggregated_entry_count: int = 0
    matched_count: int = 0
    skipped_graded_count: int = 0


class ImportResponse(BaseModel):
    summary: RunSummary
    results: List[MatchResult]
    collections: List[ShowcaseCollection] = Field(default_factory=list)

    class Config:
        json_schema_extra = {
            "example": {
                "summary": {
                    "total_raw_items_seen": 3,
                    "aggregated_entry_count": 1,
                    "matched_count": 1,
                    "skipped_graded_count": 1,
                },
                "results": [
                    {
                        "tcg_product_id": 123,
                        "quantity": 2,
                        "collectr_set": "Jungle",
                        "collectr_name": "Clefable",
                        "matched": True,
                        "name": "Clefable",
                        "set": "Jungle",
                        "code": "JU",
                        "card_number": "5/64",
                        "rarity": "Holo Rare",
                        "market_price": 42.5,
                    }
                ],
                "collections": [],
            }
        }
