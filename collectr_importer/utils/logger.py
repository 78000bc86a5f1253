"""
Beautiful logging system with colors, emojis, and structured formatting.
"""

import logging
import sys
from datetime import datetime
from typing import Optional


class ColorFormatter(logging.Formatter):
    """Custom formatter with colors and emojis for beautiful terminal output."""

    # ANSI color codes
    COLORS = {
        "DEBUG": "\033[36m",  # Cyan
        "INFO": "\033[32m",  # Green
        "WARNING": "\033[33m",  # Yellow
        "ERROR": "\033[31m",  # Red
        "CRITICAL": "\033[35m",  # Magenta
        "RESET": "\033[0m",  # Reset
        "BOLD": "\033[1m",  # Bold
        "DIM": "\033[2m",  # Dim
    }

    # Emojis for different log levels
    EMOJIS = {
        "DEBUG": "🔍",
        "INFO": "✅",
        "WARNING": "⚠️",
        "ERROR": "❌",
        "CRITICAL": "🚨",
    }

    # Component emojis
    COMPONENT_EMOJIS = {
        "importer": "📦",
        "scraper": "🔍",
        "browser": "🧭",
        "api": "🌐",
        "matching": "🎯",
        "step": "🪜",
        "httpx": "✈️ ",
        "supabase": "💾",
    }

    def format(self, record):
        level_color = self.COLORS.get(record.levelname, "")
        reset = self.COLORS["RESET"]
        bold = self.COLORS["BOLD"]
        dim = self.COLORS["DIM"]

        emoji = self.EMOJIS.get(record.levelname, "📝")

        # Component emoji (detect from logger name)
        component_emoji = ""
        for component, comp_emoji in self.COMPONENT_EMOJIS.items():
            if component in record.name.lower():
                component_emoji = f"{comp_emoji}"
                break

        timestamp = datetime.now().strftime("%H:%M:%S")
        level = f"{record.levelname:<8}"
        logger_name = record.name.split(".")[-1][:12]

        formatted_msg = (
            f"{dim}[{timestamp}]{reset} "
            f"{emoji} {level_color}{bold}{level}{reset} "
            f"{dim}│{reset} "
            f"{component_emoji} {bold}{logger_name:<12}{reset} "
            f"{dim}│{reset} "
            f"{record.getMessage()}"
        )

        if record.exc_info:
            formatted_msg += f"\n{self.formatException(record.exc_info)}"

        return formatted_msg


def setup_logger(name: str, level: str = "INFO") -> logging.Logger:
    """
    Setup a beautiful logger with colors and emojis.

    Args:
        name: Logger name (usually a "collectr.<component>" name)
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        Configured logger instance
    """
    logger = logging.getLogger(name)

    # Avoid duplicate handlers
    if logger.handlers:
        return logger

    logger.setLevel(getattr(logging, level.upper()))

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(getattr(logging, level.upper()))
    handler.setFormatter(ColorFormatter())

    logger.addHandler(handler)
    logger.propagate = False

    return logger


def log_api_request(
    logger: logging.Logger, method: str, endpoint: str, params: Optional[dict] = None
):
    """Log API request in a beautiful format."""
    params_str = f" {params}" if params else ""
    logger.info(f"🌐 {method} {endpoint}{params_str}")


def log_scrape_progress(logger: logging.Logger, page: int, max_pages: int, count: int):
    """Log pagination progress in a beautiful format."""
    logger.info(f"🔍 Showcase page [{page + 1}/{max_pages}] - {count} items so far")


def log_database_operation(
    logger: logging.Logger, operation: str, count: int, table: str
):
    """Log database operation in a beautiful format."""
    logger.info(f"💾 {operation} {count} records from {table}")


# Create module-level loggers
api_logger = setup_logger("collectr.api")
importer_logger = setup_logger("collectr.importer")
scraper_logger = setup_logger("collectr.scraper")
browser_logger = setup_logger("collectr.browser")
httpx_logger = setup_logger("collectr.httpx")
supabase_logger = setup_logger("collectr.supabase")
matching_logger = setup_logger("collectr.matching")
step_logger = setup_logger("collectr.step")


# Convenience helpers for explicit success/failure context
def log_success(logger: logging.Logger, message: str):
    """Log a successful outcome with an explicit [OK] tag."""
    logger.info(f"[OK] {message}")


def log_failure(logger: logging.Logger, message: str):
    """Log a failed outcome with an explicit [FAIL] tag."""
    logger.error(f"[FAIL] {message}")
