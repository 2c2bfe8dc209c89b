"""
Logging setup for the billing engine.

Library modules log through loguru's global ``logger``; entry points call
``configure_logging`` once to choose sinks and levels.
"""
from __future__ import annotations
import sys
from typing import Optional
from loguru import logger

from .config import BillingConfig


def configure_logging(
    config: Optional[BillingConfig] = None,
    verbose: bool = False,
    quiet: bool = False,
) -> None:
    """
    Replace loguru's default sink with the configured ones.

    Args:
        config: Source of LOG_LEVEL and BILLING_LOG_FILE
        verbose: Force DEBUG on stderr
        quiet: Only show errors on stderr
    """
    config = config or BillingConfig.from_env()

    logger.remove()
    if quiet:
        logger.add(sys.stderr, level="ERROR")
    elif verbose:
        logger.add(sys.stderr, level="DEBUG")
    else:
        logger.add(sys.stderr, level=config.log_level.upper())

    if config.log_file:
        logger.add(
            config.log_file,
            level="DEBUG",
            rotation="10 MB",
            retention="30 days",
            enqueue=True,
        )
        logger.debug(f"Logging to file {config.log_file}")
