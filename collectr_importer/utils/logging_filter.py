import logging


class HealthCheckFilter(logging.Filter):
    """
    Filters out access logs for the health check endpoint to reduce noise.

    Attached to the `uvicorn.access` logger in main.py. Uvicorn access records
    carry (client_addr, method, path, http_version, status_code) as args.
    """

    def filter(self, record: logging.LogRecord) -> bool:  # type: ignore[override]
        args = record.args
        if isinstance(args, tuple) and len(args) >= 3 and isinstance(args[2], str):
            return not args[2].startswith("/health")
        return "/health" not in record.getMessage()
