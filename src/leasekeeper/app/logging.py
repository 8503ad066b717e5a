"""JSON logging configuration with election identity and rate limiting."""

import logging
import sys
import time
from collections import defaultdict
from datetime import datetime, timezone
from typing import Any

from pythonjsonlogger import jsonlogger

from leasekeeper.app.config import get_settings


class RateLimitFilter(logging.Filter):
    """Rate limit filter to prevent log storms.

    Limits identical log messages to a configurable rate per minute.
    ERROR logs bypass rate limiting and are always logged.

    A store outage makes the elector log the same warning every retry period;
    with retry_period=100ms that is 600 lines per minute without this filter.
    """

    def __init__(self, rate_per_minute: int = 100) -> None:
        super().__init__()
        self.rate_per_minute = rate_per_minute
        self._counts: dict[str, list[float]] = defaultdict(list)
        self._warned: set[str] = set()

    def filter(self, record: logging.LogRecord) -> bool:
        # ERROR and above always pass (never rate limit errors)
        if record.levelno >= logging.ERROR:
            return True

        key = f"{record.name}:{record.lineno}:{record.msg}"
        now = time.time()

        # Remove timestamps older than 1 minute
        self._counts[key] = [t for t in self._counts[key] if now - t < 60]

        if len(self._counts[key]) >= self.rate_per_minute:
            # Rate limited - emit marker on first suppression
            if key not in self._warned:
                self._warned.add(key)
                record.msg = f"[RATE LIMITED] {record.msg} (max {self.rate_per_minute}/min)"
                self._counts[key].append(now)
                return True
            return False

        # Reset warning flag if we're back under limit
        if key in self._warned and len(self._counts[key]) < self.rate_per_minute // 2:
            self._warned.discard(key)

        self._counts[key].append(now)
        return True


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """Custom JSON formatter with schema version and election identity.

    Adds the following standard fields to all logs:
    - timestamp: ISO 8601 format with timezone
    - level: Log level name
    - logger: Logger name
    - pid: Process ID
    - schema_version: Log schema version
    - service: Service name
    - identity: Holder identity of this replica
    """

    def __init__(self, *args: Any, **kwargs: Any) -> None:
        super().__init__(*args, **kwargs)
        settings = get_settings()
        self._schema_version = settings.logging.schema_version
        self._service = settings.logging.service_name
        self._identity = settings.election.identity

    def add_fields(
        self,
        log_record: dict[str, Any],
        record: logging.LogRecord,
        message_dict: dict[str, Any],
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat()
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["pid"] = record.process

        log_record["schema_version"] = self._schema_version
        log_record["service"] = self._service
        log_record.setdefault("identity", self._identity)

        if record.exc_info:
            log_record["exception"] = self.formatException(record.exc_info)


def setup_logging(level: int | None = None) -> None:
    """Configure JSON logging for the application.

    Args:
        level: Log level. If None, uses LOGGING_LEVEL from settings.
    """
    settings = get_settings()

    if level is None:
        level = getattr(logging, settings.logging.level.upper(), logging.INFO)

    formatter = CustomJsonFormatter()

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(formatter)
    handler.addFilter(RateLimitFilter(settings.logging.rate_limit_per_minute))

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    # Driver chatter
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("asyncio").setLevel(logging.WARNING)
