import copy

from collectr_importer.items import (
    DebugSampler,
    RARITY_PATTERNS,
    find_first_value,
    is_graded,
    merge_items,
    normalize_item,
    parse_product_id,
    parse_quantity,
    summarize_keys,
    tag_items_with_collection,
)
from collectr_importer.models.collectr import NormalizedItem, ShowcaseCollection
from collectr_importer.utils.config import ImporterConfig


# ---------- Normalizer ----------

def test_normalize_snake_case_record():
    item = normalize_item(
        {
            "product_id": "123",
            "quantity": "2",
            "product_name": "Clefable (JP)",
            "catalog_group": "Jungle",
            "card_number": "5/64",
            "rarity": "Holo Rare",
            "collection_id": 9,
        }
    )
    assert item.product_id == 123
    assert item.quantity == 2
    assert item.collectr_name == "Clefable"
    assert item.set_name == "Jungle"
    assert item.card_number == "5/64"
    assert item.rarity == "Holo Rare"
    assert item.collection_id == "9"
    assert item.collection_key == "id:9"


def test_normalize_camel_case_record():
    item = normalize_item(
        {
            "productId": 77,
            "qty": 0,
            "productName": "Pikachu",
            "setName": "Base Set",
            "cardNumber": "58/102",
            "isCard": True,
            "gradeId": 52,
        }
    )
    assert item.product_id == 77
    assert item.quantity == 1
    assert item.collectr_name == "Pikachu"
    assert item.set_name == "Base Set"
    assert item.card_number == "58/102"
    assert item.is_card is True
    assert item.grade_id == 52


def test_normalize_takes_id_from_image_url():
    item = normalize_item(
        {"image_url": "https://cdn/public-assets/products/product_456.png", "name": "Mew"}
    )
    assert item.product_id == 456
    assert item.image_url == "https://cdn/public-assets/products/product_456.png"


def test_normalize_falls_back_to_nested_fields():
    item = normalize_item(
        {
            "title": "Mew ex",
            "details": {"set_name": "Paldea Evolved", "card": {"collector_number": "SV049"}},
            "meta": {"card_rarity_label": "Double Rare"},
        }
    )
    assert item.product_id is None
    assert item.collectr_name == "Mew ex"
    assert item.set_name == "Paldea Evolved"
    assert item.card_number == "SV049"
    assert item.rarity == "Double Rare"


def test_normalize_pulls_number_out_of_name():
    item = normalize_item({"product_name": "Pikachu 025/165"})
    assert item.card_number == "025/165"


def test_normalize_rejects_non_dicts():
    assert normalize_item(None) is None
    assert normalize_item(["a"]) is None
    assert normalize_item("text") is None


def test_debug_sampler_caps_dumps():
    sampler = DebugSampler(ImporterConfig(debug=True, debug_limit=2))
    assert [sampler.take() for _ in range(3)] == [True, True, False]
    assert DebugSampler(ImporterConfig()).take() is False

    sampler = DebugSampler(ImporterConfig(debug=True, debug_limit=1))
    normalize_item({"name": "No Id"}, sampler)
    assert sampler.count == 1


def test_parse_product_id():
    assert parse_product_id("123") == 123
    assert parse_product_id(45.0) == 45
    assert parse_product_id("abc") is None
    assert parse_product_id("-5") is None
    assert parse_product_id(0) is None
    assert parse_product_id("1.5") is None
    assert parse_product_id("inf") is None
    assert parse_product_id(None) is None


def test_parse_quantity():
    assert parse_quantity("3 cards") == 3
    assert parse_quantity(None) == 1
    assert parse_quantity("x") == 1
    assert parse_quantity(-2) == 1


# ---------- Deep search ----------

def test_find_first_value_prefers_shallow_hit():
    raw = {"a": {"b": {"rarity": "deep"}}, "c": {"rarity": "shallow"}}
    assert find_first_value(raw, RARITY_PATTERNS) == "shallow"


def test_find_first_value_walks_lists_and_checks_values():
    raw = {"items": [{"rarity": ""}, {"rarity": "Rare"}]}
    assert find_first_value(raw, RARITY_PATTERNS, lambda v: bool(v)) == "Rare"
    assert find_first_value("not a dict", RARITY_PATTERNS) is None


def test_find_first_value_respects_depth():
    raw = {"a": {"b": {"c": {"rarity": "too deep"}}}}
    assert find_first_value(raw, RARITY_PATTERNS, depth=2) is None
    assert find_first_value(raw, RARITY_PATTERNS, depth=3) == "too deep"


def test_summarize_keys():
    assert summarize_keys({"a": 1, "b": {"c": "x"}, "d": [{"e": None}]}) == {
        "a": "int",
        "b": {"c": "str"},
        "d": [{"e": "NoneType"}],
    }


# ---------- Graded detection ----------

def test_grading_company_means_graded():
    assert is_graded(NormalizedItem(grade_company="PSA")) is True


def test_sealed_products_are_never_graded():
    assert is_graded(NormalizedItem(is_card=False, grade_id="10")) is False


def test_grade_id_rules():
    assert is_graded(NormalizedItem(grade_id="52")) is False
    assert is_graded(NormalizedItem(grade_id=52)) is False
    assert is_graded(NormalizedItem(grade_id="  ")) is False
    assert is_graded(NormalizedItem(grade_id=None)) is False
    assert is_graded(NormalizedItem(grade_id="10")) is True
    assert is_graded(NormalizedItem(grade_id=10)) is True


def test_ungraded_sentinel_is_configurable():
    assert is_graded(NormalizedItem(grade_id="1"), ungraded_grade_id="1") is False
    assert is_graded(NormalizedItem(grade_id="52"), ungraded_grade_id="1") is True


# ---------- Merger ----------

def test_merge_by_id_fills_gaps_only():
    primary = [{"product_id": "1", "product_name": "A", "card_number": None}]
    secondary = [{"product_id": "1", "product_name": "B", "card_number": "5/64"}]
    merged = merge_items(primary, secondary)
    assert merged == [{"product_id": "1", "product_name": "A", "card_number": "5/64"}]


def test_merge_by_composite_key_across_shapes():
    primary = [{"catalog_group": "Jungle", "product_name": "Clefable", "card_number": "5/64"}]
    secondary = [
        {"setName": "Jungle", "productName": "Clefable", "cardNumber": "05/64", "image_url": "x"}
    ]
    merged = merge_items(primary, secondary)
    assert len(merged) == 1
    assert merged[0]["image_url"] == "x"


def test_merge_refuses_key_match_between_different_ids():
    base = {"catalog_group": "Jungle", "product_name": "Clefable", "card_number": "5/64"}
    primary = [dict(base, product_id=1)]
    merged = merge_items(primary, [dict(base, product_id=2)])
    assert [m["product_id"] for m in merged] == [1, 2]


def test_merge_keeps_collection_scopes_apart():
    primary = [{"product_id": "1", "collection_id": "a"}]
    merged = merge_items(primary, [{"product_id": "1", "collection_id": "b"}])
    assert len(merged) == 2


def test_merge_does_not_duplicate_blank_items():
    assert merge_items([], [{}, {}]) == [{}]


def test_merge_is_idempotent():
    primary = [
        {"product_id": "1", "product_name": "Clefable"},
        {"product_name": "Mystery"},
    ]
    secondary = [
        {"product_id": "1", "card_number": "5/64"},
        {"catalog_group": "Base Set", "product_name": "Charizard", "card_number": "4/102"},
        {"product_name": "Mystery", "rarity": "Rare"},
        {},
    ]
    once = merge_items(copy.deepcopy(primary), copy.deepcopy(secondary))
    twice = merge_items(
        merge_items(copy.deepcopy(primary), copy.deepcopy(secondary)), copy.deepcopy(secondary)
    )
    assert once == twice


def test_merge_normalized_items():
    primary = [NormalizedItem(product_id=1, collectr_name="Clefable")]
    merged = merge_items(primary, [NormalizedItem(product_id=1, card_number="5/64")])
    assert len(merged) == 1
    assert merged[0].card_number == "5/64"
    assert merged[0].quantity == 1


def test_tag_items_with_collection_keeps_existing_tags():
    items = [{"collection_id": "x"}, {}]
    tag_items_with_collection(items, ShowcaseCollection(id="c1", name="Binder"))
    assert items == [
        {"collection_id": "x", "collection_name": "Binder"},
        {"collection_id": "c1", "collection_name": "Binder"},
    ]
