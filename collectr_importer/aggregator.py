import json
from dataclasses import asdict, dataclass, field
from typing import Iterable

from collectr_importer.items import is_graded
from collectr_importer.models.collectr import AggregatedEntry, NormalizedItem
from collectr_importer.set_classifier import SetIndex, classify_set
from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.logger import importer_logger
from collectr_importer.utils.text import build_item_key

# descriptive fields filled once, first non-empty value wins
FILL_ONCE_FIELDS = ("set_name", "collectr_name", "image_url", "card_number", "rarity")


@dataclass
class AggregationResult:
    id_bearing: list[AggregatedEntry] = field(default_factory=list)
    id_less: list[AggregatedEntry] = field(default_factory=list)
    skipped_graded: int = 0

    @property
    def entry_count(self) -> int:
        return len(self.id_bearing) + len(self.id_less)


def _log_japanese_item(item: NormalizedItem) -> None:
    importer_logger.info(
        "[collectr-japan-scrape] " + json.dumps(asdict(item), default=str, ensure_ascii=False)
    )


def aggregate_items(
    items: Iterable[NormalizedItem],
    english_index: SetIndex,
    japan_index: SetIndex,
    config: ImporterConfig,
) -> AggregationResult:
    """
    Group non-graded items by (collection scope, identity) and sum quantities.

    Identity is the product id when present, else the tight-or-loose composite
    key. Buckets keep first-seen order.
    """
    result = AggregationResult()
    by_id: dict[str, AggregatedEntry] = {}
    by_key: dict[str, AggregatedEntry] = {}

    for item in items:
        if item is None:
            continue
        status = classify_set(item.set_name, english_index, japan_index)
        if status.is_japanese:
            _log_japanese_item(item)

        if is_graded(item, config.ungraded_grade_id):
            result.skipped_graded += 1
            continue

        scope = item.collection_key
        if item.product_id is not None:
            bucket_key = f"{scope}|{item.product_id}"
            buckets, target_list = by_id, result.id_bearing
        else:
            identity = build_item_key(item.set_name, item.collectr_name, item.card_number)
            bucket_key = f"{scope}|{identity or ''}"
            buckets, target_list = by_key, result.id_less

        entry = buckets.get(bucket_key)
        if entry is None:
            entry = AggregatedEntry(
                collection_key=scope,
                product_id=item.product_id,
                collection_id=item.collection_id,
                collection_name=item.collection_name,
                is_japanese=status.is_japanese,
            )
            buckets[bucket_key] = entry
            target_list.append(entry)

        entry.quantity += item.quantity
        entry.is_japanese = entry.is_japanese or status.is_japanese
        for name in FILL_ONCE_FIELDS:
            if not getattr(entry, name) and getattr(item, name):
                setattr(entry, name, getattr(item, name))

    importer_logger.info(
        f"📦 Aggregated {result.entry_count} entries "
        f"({len(result.id_bearing)} with id, {len(result.id_less)} without), "
        f"skipped {result.skipped_graded} graded"
    )
    return result
