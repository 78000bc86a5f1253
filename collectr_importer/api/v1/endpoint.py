from functools import lru_cache

from fastapi import APIRouter, Depends, Query

from collectr_importer.importer import run_collectr_import
from collectr_importer.models.collectr import ImportResponse
from collectr_importer.utils.config import ImporterConfig
from collectr_importer.utils.logger import api_logger, log_api_request
from collectr_importer.utils.safe_handler import safe_handler

router = APIRouter()


# Dependency injection
@lru_cache(maxsize=1)
def get_importer_config() -> ImporterConfig:
    """Configuration is read from the environment once per process."""
    return ImporterConfig.from_env()


def get_import_runner():
    """Dependency injection for the import pipeline."""
    return run_collectr_import


# ===============================================================
# COLLECTR IMPORT
# ===============================================================


@router.get(
    "/collectr_import",
    summary="Import a Collectr showcase and match it against the catalog",
    response_model=ImportResponse,
)
@safe_handler(default_detail="Collectr import failed")
async def collectr_import(
    url: str = Query(
        ...,
        description="Showcase URL (e.g. 'https://app.getcollectr.com/showcase/profile/<id>')",
    ),
    config: ImporterConfig = Depends(get_importer_config),
    run_import=Depends(get_import_runner),
):
    """Run one showcase import and return the matched, quantity-aggregated result."""
    log_api_request(api_logger, "GET", "/collectr_import", {"url": url})
    return await run_import(url, config)
