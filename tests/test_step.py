import logging

import pytest
from fastapi import HTTPException

from collectr_importer.utils.errors import (
    CatalogReadError,
    ImporterError,
    InvalidShowcaseUrlError,
    NoItemsFoundError,
)
from collectr_importer.utils.logging_filter import HealthCheckFilter
from collectr_importer.utils.safe_handler import importer_error_status, safe_handler
from collectr_importer.utils.step import step


# ---------- step ----------

async def test_step_passes_importer_errors_through():
    with pytest.raises(NoItemsFoundError):
        async with step("Extract showcase items"):
            raise NoItemsFoundError("nothing")


async def test_step_wraps_unexpected_errors():
    with pytest.raises(ImporterError) as exc:
        async with step("Aggregate items"):
            raise KeyError("boom")
    assert exc.value.message == "Failed in step: Aggregate items"
    assert isinstance(exc.value.__cause__, KeyError)


async def test_step_without_logger():
    async with step("quiet", logger=None):
        pass


# ---------- safe_handler ----------

def test_error_status_by_kind():
    assert importer_error_status(InvalidShowcaseUrlError("bad")) == 400
    assert importer_error_status(CatalogReadError("db")) == 500
    assert importer_error_status(ImporterError("x")) == 500


async def test_safe_handler_maps_importer_errors():
    @safe_handler()
    async def handler():
        raise InvalidShowcaseUrlError("Invalid Collectr URL.")

    with pytest.raises(HTTPException) as exc:
        await handler()
    assert exc.value.status_code == 400
    assert exc.value.detail == "Invalid Collectr URL."


def test_safe_handler_hides_unexpected_errors():
    @safe_handler(default_detail="Collectr import failed")
    def handler():
        raise RuntimeError("secret internals")

    with pytest.raises(HTTPException) as exc:
        handler()
    assert exc.value.status_code == 500
    assert exc.value.detail == "Collectr import failed"


async def test_safe_handler_reraises_http_exceptions():
    @safe_handler()
    async def handler():
        raise HTTPException(status_code=404, detail="nope")

    with pytest.raises(HTTPException) as exc:
        await handler()
    assert exc.value.status_code == 404


# ---------- access log filter ----------

def access_record(path: str) -> logging.LogRecord:
    return logging.LogRecord(
        "uvicorn.access",
        logging.INFO,
        __file__,
        0,
        '%s - "%s %s HTTP/%s" %d',
        ("127.0.0.1:5000", "GET", path, "1.1", 200),
        None,
    )


def test_health_check_filter():
    log_filter = HealthCheckFilter()
    assert log_filter.filter(access_record("/health")) is False
    assert log_filter.filter(access_record("/api/v1/collectr_import")) is True
