"""Decide which catalog language partition a showcase set name belongs to."""

import re
from typing import Iterable, NamedTuple, Optional

from collectr_importer.models.catalog import CatalogSet
from collectr_importer.utils.text import normalize_name

NON_ENGLISH_MARKER_RE = re.compile(
    r"(\bjp\b|\bjpn\b|japanese|pokemon\s+japan|chinese|korean|thai)", re.IGNORECASE
)

# "SV4a: Shiny Treasure ex" / "S12a - VSTAR Universe"
_CODE_PREFIX_RES = (
    re.compile(r"^([A-Z0-9]{2,6})\s*:\s*(.+)$", re.IGNORECASE),
    re.compile(r"^([A-Z0-9]{2,6})\s*-\s*(.+)$", re.IGNORECASE),
)

SetIndex = dict[str, list[CatalogSet]]


class SetStatus(NamedTuple):
    is_japanese: bool
    matched: bool


def has_non_english_marker(set_name: Optional[str]) -> bool:
    if not set_name:
        return False
    return bool(NON_ENGLISH_MARKER_RE.search(set_name))


def build_set_index(sets: Iterable[CatalogSet]) -> SetIndex:
    """Normalized name -> set rows; a set is reachable by name, alias and code-less name."""
    index: SetIndex = {}

    def add(row: CatalogSet, name: Optional[str]) -> None:
        key = normalize_name(name)
        if key:
            index.setdefault(key, []).append(row)

    for row in sets:
        add(row, row.name)
        if row.name_other:
            add(row, row.name_other)
        for pattern in _CODE_PREFIX_RES:
            m = pattern.match(row.name)
            if m:
                add(row, m.group(2))
    return index


def find_set_rows(
    set_name: Optional[str], index: SetIndex, allow_partial: bool = False
) -> list[CatalogSet]:
    """
    Exact lookup by normalized name. With allow_partial and no exact hit,
    every key containing (or contained in) the name contributes.
    """
    normalized = normalize_name(set_name)
    if not normalized:
        return []

    out: list[CatalogSet] = []
    seen = set()

    def add_rows(rows: list[CatalogSet]) -> None:
        for row in rows:
            key = row.id if row.id is not None else row.name
            if key in seen:
                continue
            seen.add(key)
            out.append(row)

    add_rows(index.get(normalized, []))
    if not allow_partial or out:
        return out
    for key, rows in index.items():
        if key in normalized or normalized in key:
            add_rows(rows)
    return out


def classify_set(
    set_name: Optional[str], english_index: SetIndex, japan_index: SetIndex
) -> SetStatus:
    if not set_name:
        return SetStatus(is_japanese=False, matched=False)
    english_match = bool(find_set_rows(set_name, english_index, allow_partial=False))
    japan_match = bool(find_set_rows(set_name, japan_index, allow_partial=True))
    is_japanese = has_non_english_marker(set_name) or (not english_match and japan_match)
    return SetStatus(
        is_japanese=is_japanese,
        matched=japan_match if is_japanese else english_match,
    )
