"""Centralized logging configuration."""

import logging

from config import settings

# Ledger writes are serialized per user on worker threads, so the thread
# name is part of every line.
LOG_FORMAT = "%(asctime)s %(levelname)-8s [%(threadName)s] %(name)s  %(message)s"

QUIET_LOGGERS = (
    "sqlalchemy.engine",
    "sqlalchemy.pool",
    "alembic.runtime.migration",
    "httpx",
    "httpcore",
    "urllib3",
    "keyring",
)

LEDGER_LOGGERS = (
    "services.transaction_processor",
    "services.account_ledger",
    "services.user_locks",
    "services.market_data_service",
)


def setup_logging(level: str | None = None) -> None:
    """Configure logging for the application.

    The root level comes from ``level`` or ``settings.LOG_LEVEL``.  Noisy
    third-party loggers are held at WARNING; ledger and market data loggers
    are reset so they follow the root level.
    """
    logging.basicConfig(
        format=LOG_FORMAT,
        datefmt="%H:%M:%S",
        level=getattr(logging, (level or settings.LOG_LEVEL).upper()),
        force=True,
    )

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    for name in LEDGER_LOGGERS:
        logging.getLogger(name).setLevel(logging.NOTSET)
