import functools
import inspect
from fastapi import HTTPException

from collectr_importer.utils.errors import FailureKind, ImporterError
from collectr_importer.utils.logger import (
    api_logger,
)

# importer failures that are the caller's fault
CLIENT_ERROR_KINDS = {FailureKind.INVALID_INPUT: 400}


def importer_error_status(error: ImporterError) -> int:
    return CLIENT_ERROR_KINDS.get(error.kind, 500)


def _log_http_exception(he: HTTPException) -> None:
    status = getattr(he, "status_code", None)
    detail = getattr(he, "detail", None)
    if status and status >= 500:
        api_logger.exception("HTTPException raised (status=%s): %s", status, detail)
    else:
        api_logger.warning("HTTPException raised (status=%s): %s", status, detail)


def _to_http_exception(error: ImporterError) -> HTTPException:
    status = importer_error_status(error)
    if status >= 500:
        api_logger.exception(
            "ImporterError raised (kind=%s): %s", error.kind.value, error.message
        )
    else:
        api_logger.warning(
            "ImporterError raised (kind=%s): %s", error.kind.value, error.message
        )
    return HTTPException(status_code=status, detail=error.message)


# -------------------------
# safe_handler decorator (sync & async aware)
# -------------------------
def safe_handler(default_status: int = 500, default_detail: str = "Unexpected error"):
    """
    Decorator that:
    - logs HTTPException (WARNING for 4xx, ERROR with stack for 5xx)
    - maps ImporterError to HTTPException by its FailureKind
      (invalid input -> 400, everything else -> 500) keeping its message
    - logs unexpected exceptions with full stack trace and converts them to HTTPException
    Supports both sync and async handlers.
    """

    def decorator(func):
        if inspect.iscoroutinefunction(func):

            @functools.wraps(func)
            async def async_wrapper(*args, **kwargs):
                try:
                    return await func(*args, **kwargs)
                except HTTPException as he:
                    _log_http_exception(he)
                    raise
                except ImporterError as e:
                    raise _to_http_exception(e) from e
                except Exception as e:
                    api_logger.exception("Unhandled exception in handler: %s", e)
                    # Do not leak internal error details to the client; use default_detail
                    raise HTTPException(
                        status_code=default_status, detail=f"{default_detail}"
                    )

            return async_wrapper
        else:

            @functools.wraps(func)
            def sync_wrapper(*args, **kwargs):
                try:
                    return func(*args, **kwargs)
                except HTTPException as he:
                    _log_http_exception(he)
                    raise
                except ImporterError as e:
                    raise _to_http_exception(e) from e
                except Exception as e:
                    api_logger.exception("Unhandled exception in handler: %s", e)
                    raise HTTPException(
                        status_code=default_status, detail=f"{default_detail}"
                    )

            return sync_wrapper

    return decorator
