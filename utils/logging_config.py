"""
Logging setup for the storefront service.

One root configuration shared by the application, SQLAlchemy and uvicorn:
a daily-rotated file under logs/ plus the console, both behind a filter
that redacts credentials and customer PII before anything is written.
"""

import logging
import logging.handlers
import re
from pathlib import Path
from typing import Pattern

import config

LOG_FORMAT = '%(asctime)s | %(name)-25s | %(levelname)-8s | %(message)s'
LOG_DATE_FORMAT = '%Y-%m-%d %H:%M:%S'

# Loggers kept at WARNING so SQL statements and driver chatter stay out of the order audit trail
QUIET_LOGGERS = ("sqlalchemy.engine", "sqlalchemy.pool", "aiosqlite", "aiohttp.access")


class SecretMaskingFilter(logging.Filter):
    """
    Redacts sensitive values in log records.

    Covers the gateway access token and webhook secret, the email API key,
    guest session tokens, bearer headers and customer contact data (email,
    phone, street address). Records are rewritten, never dropped.
    """

    PATTERNS: list[tuple[Pattern, str]] = [
        (re.compile(r'(api[_-]?key["\']?\s*[:=]\s*["\']?)([A-Za-z0-9_\-]{20,})(["\']?)', re.IGNORECASE),
         r'\1[REDACTED_API_KEY]\3'),
        (re.compile(r'(secret["\']?\s*[:=]\s*["\']?)([A-Za-z0-9_\-]{8,})(["\']?)', re.IGNORECASE),
         r'\1[REDACTED_SECRET]\3'),
        (re.compile(r'(token["\']?\s*[:=]\s*["\']?)([A-Za-z0-9_\-:]{20,})(["\']?)', re.IGNORECASE),
         r'\1[REDACTED_TOKEN]\3'),
        (re.compile(r'(Bearer\s+)([A-Za-z0-9_\-\.]+)', re.IGNORECASE), r'\1[REDACTED_BEARER_TOKEN]'),
        (re.compile(r'(password["\']?\s*[:=]\s*["\']?)([^\s"\']+)(["\']?)', re.IGNORECASE),
         r'\1[REDACTED_PASSWORD]\3'),
        (re.compile(r'\b([a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,})\b'), '[REDACTED_EMAIL]'),
        # International numbers need the + prefix, domestic ones separators; bare digit runs are ids
        (re.compile(r'(?:\+\d{1,3}[-.\s]?(?:\(?\d{2,4}\)?[-.\s]?){1,3}\d{4}|\(?\b\d{3}\)?[-.\s]\d{3}[-.\s]\d{4})\b'),
         '[REDACTED_PHONE]'),
        (re.compile(r'(address["\']?\s*[:=]\s*["\']?)([^"\']{10,})(["\']?)', re.IGNORECASE),
         r'\1[REDACTED_ADDRESS]\3'),
    ]

    @classmethod
    def mask(cls, text: str) -> str:
        for pattern, replacement in cls.PATTERNS:
            text = pattern.sub(replacement, text)
        return text

    def _mask_arg(self, arg):
        return self.mask(arg) if isinstance(arg, str) else arg

    def filter(self, record: logging.LogRecord) -> bool:
        if record.msg:
            record.msg = self.mask(str(record.msg))

        # logging accepts either a tuple or a single mapping as args
        if isinstance(record.args, dict):
            record.args = {key: self._mask_arg(value) for key, value in record.args.items()}
        elif record.args:
            record.args = tuple(self._mask_arg(arg) for arg in record.args)

        return True


def _build_handlers(log_dir: Path, log_level: int, retention_days: int) -> list[logging.Handler]:
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)

    file_handler = logging.handlers.TimedRotatingFileHandler(
        filename=log_dir / "storefront.log",
        when="midnight",
        interval=1,
        backupCount=retention_days,
        encoding="utf-8"
    )
    console_handler = logging.StreamHandler()

    handlers = [file_handler, console_handler]
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(log_level)
    return handlers


def setup_logging(log_dir: Path | str = "logs"):
    """
    Configure the root logger. Call once at startup, before the app is imported (run.py).

    Level, retention and masking come from config (LOG_LEVEL,
    LOG_RETENTION_DAYS, LOG_MASK_SECRETS). uvicorn is started with
    log_config=None, so its loggers propagate here as well.
    """
    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    log_level_str = getattr(config, "LOG_LEVEL", "INFO")
    log_level = getattr(logging, log_level_str.upper(), logging.INFO)
    retention_days = getattr(config, "LOG_RETENTION_DAYS", 7)
    mask_secrets = getattr(config, "LOG_MASK_SECRETS", True)

    handlers = _build_handlers(log_dir, log_level, retention_days)
    if mask_secrets:
        masking_filter = SecretMaskingFilter()
        for handler in handlers:
            handler.addFilter(masking_filter)

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    for handler in handlers:
        root_logger.addHandler(handler)

    for logger_name in QUIET_LOGGERS:
        logging.getLogger(logger_name).setLevel(logging.WARNING)
    for logger_name in ("uvicorn", "uvicorn.error", "uvicorn.access"):
        uvicorn_logger = logging.getLogger(logger_name)
        uvicorn_logger.handlers.clear()
        uvicorn_logger.propagate = True

    logging.getLogger(__name__).info(
        f"Logging initialized: level={log_level_str}, retention={retention_days} days, "
        f"masking={'on' if mask_secrets else 'off'}"
    )
