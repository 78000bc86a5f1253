"""
Entry point for one showcase import run.

    extract -> normalize -> aggregate -> match -> backfill -> summary

Nothing is written anywhere; the caller gets an ImportResponse.
"""

from contextlib import AsyncExitStack
from typing import Optional

import httpx

from collectr_importer.aggregator import aggregate_items
from collectr_importer.extractor import extract_showcase_items
from collectr_importer.handlers.collectr_api import parse_showcase_url
from collectr_importer.handlers.collectr_html import build_card_number_lookup, fetch_html_items
from collectr_importer.items import DebugSampler, normalize_item
from collectr_importer.match_engine import match_entries
from collectr_importer.models.collectr import ImportResponse, MatchResult, RunSummary
from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.httpx import create_http_client
from collectr_importer.utils.logger import importer_logger, log_success
from collectr_importer.utils.step import step
from collectr_importer.utils.supabase import CatalogClient
from collectr_importer.utils.text import build_name_set_key


async def backfill_card_numbers(
    results: list[MatchResult],
    lookup: Optional[dict[str, str]],
    client: httpx.AsyncClient,
    url: str,
) -> int:
    """
    Fill missing card numbers from a (set + name) -> number table built from
    the page source. Reuses the table from extraction when there is one.
    """
    if all(r.card_number for r in results):
        return 0
    if not lookup:
        extraction = await fetch_html_items(client, url)
        lookup = build_card_number_lookup(extraction.items)
    if not lookup:
        return 0

    filled = 0
    for result in results:
        if result.card_number:
            continue
        key = build_name_set_key(
            result.collectr_set or result.set, result.collectr_name or result.name
        )
        number = lookup.get(key) if key else None
        if number:
            result.card_number = number
            filled += 1
    return filled


async def run_collectr_import(
    url: str,
    config: Optional[ImporterConfig] = None,
    *,
    client: Optional[httpx.AsyncClient] = None,
    catalog: Optional[CatalogClient] = None,
) -> ImportResponse:
    config = config or ImporterConfig.from_env()
    showcase = parse_showcase_url(url)
    if catalog is None:
        catalog = CatalogClient.from_config(config)
    importer_logger.info(
        f"📦 Importing showcase {showcase.profile_id}"
        + (f" (collection {showcase.collection_id})" if showcase.collection_id else "")
    )

    async with AsyncExitStack() as stack:
        if client is None:
            client = await stack.enter_async_context(create_http_client(config))

        async with step("Load catalog sets", importer_logger):
            catalog.load_sets()

        async with step("Extract showcase items", importer_logger):
            extraction = await extract_showcase_items(showcase, config, client)

        async with step("Normalize items", importer_logger):
            sampler = DebugSampler(config)
            normalized = [normalize_item(raw, sampler) for raw in extraction.items]
            normalized = [item for item in normalized if item is not None]

        async with step("Aggregate items", importer_logger):
            aggregation = aggregate_items(
                normalized, catalog.english_index, catalog.japan_index, config
            )

        async with step("Match catalog", importer_logger):
            results = match_entries(aggregation.id_bearing, aggregation.id_less, catalog)

        async with step("Backfill card numbers", importer_logger):
            filled = await backfill_card_numbers(
                results, extraction.card_number_lookup, client, showcase.url
            )
            if filled:
                importer_logger.info(f"📦 Backfilled {filled} card numbers")

    summary = RunSummary(
        total_raw_items_seen=extraction.total_seen,
        aggregated_entry_count=aggregation.entry_count,
        matched_count=sum(1 for r in results if r.matched),
        skipped_graded_count=aggregation.skipped_graded,
    )
    log_success(
        importer_logger,
        f"Matched {summary.matched_count}/{summary.aggregated_entry_count} entries "
        f"({summary.skipped_graded_count} graded skipped)",
    )
    return ImportResponse(
        summary=summary, results=results, collections=extraction.collections
    )
