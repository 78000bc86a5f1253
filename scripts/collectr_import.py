#!/usr/bin/env python3
"""
Run one Collectr showcase import from the command line.

    python scripts/collectr_import.py --url https://app.getcollectr.com/showcase/profile/<id>
"""

import argparse
import asyncio
import sys
from typing import Optional

from rich.console import Console
from rich.table import Table

from collectr_importer.importer import run_collectr_import
from collectr_importer.models.collectr import ImportResponse
from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.errors import FailureKind, ImporterError
from collectr_importer.utils.logger import log_failure, importer_logger

TABLE_COLUMNS = (
    "tcg_product_id",
    "quantity",
    "matched",
    "collectr_set",
    "collectr_name",
    "card_number",
    "rarity",
    "market_price",
)
MAX_CELL_WIDTH = 32

console = Console()


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Import a Collectr showcase and match it against the catalog."
    )
    parser.add_argument("--url", "-u", required=True, help="app.getcollectr.com showcase URL")
    parser.add_argument(
        "--limit", type=int, default=50, help="How many result rows to print (default: 50)"
    )
    parser.add_argument(
        "--json", action="store_true", help="Print the full response as JSON instead of a table"
    )
    return parser.parse_args(argv)


def build_results_table(response: ImportResponse, limit: int) -> Table:
    table = Table(title="Collectr Importer")
    for col in TABLE_COLUMNS:
        justify = "right" if col in ("tcg_product_id", "quantity", "market_price") else "left"
        table.add_column(col, justify=justify, max_width=MAX_CELL_WIDTH, overflow="ellipsis")
    for result in response.results[: max(limit, 0)]:
        row = result.model_dump()
        table.add_row(*("" if row.get(col) is None else str(row.get(col)) for col in TABLE_COLUMNS))
    return table


def print_response(response: ImportResponse, limit: int) -> None:
    console.print_json(data=response.summary.model_dump())
    table = build_results_table(response, limit)
    if table.row_count:
        console.print(table)
    if len(response.results) > table.row_count:
        console.print(
            f"Showing {table.row_count}/{len(response.results)} rows. Use --limit to show more."
        )


async def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    config = ImporterConfig.from_env()
    try:
        response = await run_collectr_import(args.url, config)
    except ImporterError as e:
        log_failure(importer_logger, e.message)
        return 2 if e.kind == FailureKind.INVALID_INPUT else 1

    if args.json:
        print(response.model_dump_json(indent=2))
    else:
        print_response(response, args.limit)
    return 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
