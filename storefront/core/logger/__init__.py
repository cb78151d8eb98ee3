"""
Project logger: rotating file (JSON) + console.

Usage:
    from storefront.core.logger import configure

    # Once at startup (reads LOG_LEVEL, LOG_DIR, ... when no config is given)
    configure()

    logger = logging.getLogger(__name__)
    logger.info("Order stored", extra={"sequence_id": 42})
"""
from storefront.core.logger.config import LoggerConfig
from storefront.core.logger.formatters import JsonFormatter, PlainConsoleFormatter
from storefront.core.logger.setup import configure

__all__ = [
    "LoggerConfig",
    "JsonFormatter",
    "PlainConsoleFormatter",
    "configure",
]
