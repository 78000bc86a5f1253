import re
from typing import Iterable, Iterator, Optional, TypeVar

T = TypeVar("T")

_UNICODE_ESCAPE_RE = re.compile(r"\\u([0-9a-fA-F]{4})")
_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")
_JP_TAG_RE = re.compile(r"\(\s*JP\s*\)", re.IGNORECASE)
_MULTI_SPACE_RE = re.compile(r"\s{2,}")
_LEADING_ZEROS_RE = re.compile(r"^0+(?=\d)")
_CARD_NUMBER_SHAPE_RE = re.compile(
    r"(\d{1,4}(?:/\d{1,4})?|[A-Z]{1,4}\d{1,4}(?:/\d{1,4})?)", re.IGNORECASE
)

# ordered attempts for pulling a card number out of a display name
_NAME_NUMBER_PATTERNS = [
    re.compile(r"#?\s*([A-Z0-9]{1,6}-\d{1,4}(?:/\d{1,4})?)", re.IGNORECASE),
    re.compile(r"#?\s*([A-Z]{1,3}\d{1,4}(?:/\d{1,4})?)", re.IGNORECASE),
    re.compile(r"#?\s*(\d{1,4}(?:/\d{1,4})?)"),
]


def decode_escapes(value: Optional[str]) -> Optional[str]:
    """Decode the JSON-style escapes left in strings scraped out of page source."""
    if not value:
        return value
    value = _UNICODE_ESCAPE_RE.sub(lambda m: chr(int(m.group(1), 16)), value)
    return (
        value.replace("\\n", "\n")
        .replace("\\r", "\r")
        .replace("\\t", "\t")
        .replace('\\"', '"')
        .replace("\\\\", "\\")
    )


def normalize_name(value) -> str:
    """Lowercase, '&' -> 'and', collapse every non-alphanumeric run to one space."""
    text = decode_escapes(str(value)) if value else ""
    text = text.lower().replace("&", "and")
    return _NON_ALNUM_RE.sub(" ", text).strip()


def strip_jp_tag(value):
    if not value:
        return value
    text = _JP_TAG_RE.sub("", str(value))
    return _MULTI_SPACE_RE.sub(" ", text).strip()


def normalize_card_name(value) -> str:
    return normalize_name(strip_jp_tag(value))


def normalize_card_number(value) -> Optional[str]:
    """
    Canonical card number used by every matching path.

    "#007/102" -> "7/102", "052" -> "52", "sv 049" -> "SV049".
    """
    if value is None or value == "":
        return None
    raw = str(value).strip().upper()
    raw = re.sub(r"\s+", "", raw.replace("#", ""))
    if not raw:
        return None

    if "/" in raw:
        parts = raw.split("/")
        left = _LEADING_ZEROS_RE.sub("", parts[0])
        right = _LEADING_ZEROS_RE.sub("", parts[1])
        return f"{left}/{right}"

    return _LEADING_ZEROS_RE.sub("", raw)


def names_like(left, right) -> bool:
    """Loose comparison: normalized equality or substring in either direction."""
    left_key = normalize_name(left)
    right_key = normalize_name(right)
    if not left_key or not right_key:
        return False
    return left_key == right_key or left_key in right_key or right_key in left_key


def looks_like_card_number(value) -> bool:
    if value is None or value == "":
        return False
    return bool(_CARD_NUMBER_SHAPE_RE.search(str(value).strip()))


def extract_card_number_from_name(value) -> Optional[str]:
    if not value:
        return None
    raw = str(value)
    for pattern in _NAME_NUMBER_PATTERNS:
        m = pattern.search(raw)
        if m:
            return m.group(1)
    return None


# ===============================================================
# identity keys
# ===============================================================
def build_match_key(set_name, card_name, card_number) -> Optional[str]:
    """Tight key: only when set, name and number all normalize to something."""
    set_key = normalize_name(set_name)
    name_key = normalize_card_name(card_name)
    number_key = normalize_card_number(card_number)
    if not set_key or not name_key or not number_key:
        return None
    return f"{set_key}|{name_key}|{number_key}"


def build_loose_key(set_name, card_name, card_number) -> Optional[str]:
    """Loose key: the same three parts, joined even when some are empty."""
    parts = [
        normalize_name(set_name),
        normalize_card_name(card_name),
        normalize_card_number(card_number) or "",
    ]
    if not any(parts):
        return None
    return "|".join(parts)


def build_item_key(set_name, card_name, card_number) -> Optional[str]:
    return build_match_key(set_name, card_name, card_number) or build_loose_key(
        set_name, card_name, card_number
    )


def build_name_set_key(set_name, card_name) -> Optional[str]:
    set_key = normalize_name(set_name)
    name_key = normalize_card_name(card_name)
    if not set_key or not name_key:
        return None
    return f"{set_key}|{name_key}"


def build_collection_key(collection_id, collection_name) -> str:
    if collection_id:
        return f"id:{collection_id}"
    if collection_name:
        normalized = normalize_name(collection_name)
        if normalized:
            return f"name:{normalized}"
    return "default"


def chunked(values: Iterable[T], size: int) -> Iterator[list[T]]:
    batch: list[T] = []
    for value in values:
        batch.append(value)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch
