"""Logging setup: JSON records in production, plain lines for local runs"""

import logging
import sys
from pythonjsonlogger import jsonlogger

from kinderledger.config import settings

DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Third-party loggers kept at WARNING
QUIET_LOGGERS = ("uvicorn.access", "sqlalchemy.engine", "asyncio")

# Context attributes lifted from `extra=` to the top of each JSON record
CONTEXT_FIELDS = ("correlation_id", "invoice_id", "population")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Stamps service, environment and billing context on every record"""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = settings.APP_NAME
        log_record["environment"] = settings.ENVIRONMENT
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value


def _build_formatter() -> logging.Formatter:
    if settings.LOG_FORMAT.lower() == "json":
        return CustomJsonFormatter(fmt="%(asctime)s %(level)s %(name)s %(message)s", datefmt=DATE_FORMAT)
    return logging.Formatter(fmt="%(asctime)s %(levelname)-8s %(name)s: %(message)s", datefmt=DATE_FORMAT)


def setup_logging() -> None:
    """Install the stdout handler on the root logger. Safe to call more than once."""
    root_logger = logging.getLogger()
    if any(getattr(h, "_kinderledger", False) for h in root_logger.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler._kinderledger = True
    handler.setFormatter(_build_formatter())

    root_logger.setLevel(settings.LOG_LEVEL.upper())
    root_logger.addHandler(handler)

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
