from collectr_importer.models.collectr import ImportResponse, MatchResult, RunSummary
from scripts.collectr_import import TABLE_COLUMNS, build_results_table, parse_args

RESPONSE = ImportResponse(
    summary=RunSummary(
        total_raw_items_seen=3,
        aggregated_entry_count=3,
        matched_count=2,
        skipped_graded_count=0,
    ),
    results=[
        MatchResult(tcg_product_id=123, quantity=3, matched=True, collectr_name="Clefable"),
        MatchResult(tcg_product_id=200, quantity=1, matched=True, collectr_name="Electrode"),
        MatchResult(quantity=1, collectr_name="Snorlax"),
    ],
)


def test_parse_args_defaults():
    args = parse_args(["--url", "https://app.getcollectr.com/showcase/profile/abc"])
    assert args.limit == 50
    assert args.json is False


def test_results_table_columns_and_rows():
    table = build_results_table(RESPONSE, limit=50)
    assert [c.header for c in table.columns] == list(TABLE_COLUMNS)
    assert table.row_count == 3


def test_results_table_respects_limit():
    assert build_results_table(RESPONSE, limit=2).row_count == 2
    assert build_results_table(RESPONSE, limit=-1).row_count == 0
