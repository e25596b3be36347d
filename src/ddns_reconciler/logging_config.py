"""
Logging configuration for DDNS Reconciler.

This module provides logging setup with support for console and file output.
Provider credentials are automatically masked in log messages.
"""

from __future__ import annotations

import copy
import logging
import logging.handlers
import re
import sys
from typing import TYPE_CHECKING

from uvicorn.config import LOGGING_CONFIG

if TYPE_CHECKING:
    from typing import Any, Final

    from ddns_reconciler.config import LoggingConfig


# Pattern to match sensitive tokens/keys in log messages
# Each tuple is (pattern, replacement)
# For partial masking, capture the prefix to keep and mask the rest
SENSITIVE_PATTERNS: Final[list[tuple[re.Pattern[str], str]]] = [
    # Authorization header (Cloudflare API token, status endpoint token)
    # Keep first 6 characters, mask the rest
    (
        re.compile(
            r"((?:Authorization:\s*)?Bearer\s+)(.{0,6})([^\s\"']*)", re.IGNORECASE,
        ),
        r"\1\2******",
    ),
    # Cloudflare global API key header, mask completely
    (
        re.compile(r"(X-Auth-Key[\"']?\s*[:=]\s*[\"']?)([^\s,\"'}]+)", re.IGNORECASE),
        r"\1******",
    ),
    # Form / query parameters: login_token=..., token=..., password=...
    # Keep first 6 characters of tokens, mask passwords completely
    (
        re.compile(r"\b((?:login_)?token=)([^\s&\"']{0,6})([^\s&\"']*)", re.IGNORECASE),
        r"\1\2******",
    ),
    (
        re.compile(r"\b(password=)([^\s&,\"']+)", re.IGNORECASE),
        r"\1******",
    ),
    # Basic auth credentials embedded in URLs (dyndns2, socks5 proxies)
    (
        re.compile(r"(://[^/\s:@]+:)([^/\s@]+)(@)"),
        r"\1******\3",
    ),
]


# Constants
LOG_FORMAT: Final[str] = "%(asctime)s %(levelname)-5s [%(name)s] %(message)s"
DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"
PACKAGE_LOGGER: Final[str] = "ddns_reconciler"


class SensitiveFilter(logging.Filter):
    """
    A logging filter that masks sensitive information.

    This filter replaces provider tokens, keys and passwords with asterisks
    to prevent credential leakage in log files.
    """

    # Fields in record.__dict__ that may contain sensitive data
    _SENSITIVE_DICT_KEYS: tuple[str, ...] = (
        "request_line",  # Uvicorn: "{method} {full_path} HTTP/{version}"
        "full_path",
        "url",
        "headers",
    )

    @staticmethod
    def _mask_sensitive(value: str) -> str:
        """
        Apply all sensitive patterns to mask a string.

        Parameters
        ----------
        value : str
            The string to process.

        Returns
        -------
        str
            The string with sensitive data masked.
        """
        result = value
        for pattern, replacement in SENSITIVE_PATTERNS:
            result = pattern.sub(replacement, result)
        return result

    def _mask_arg(self, value: Any) -> Any:
        """Mask a single formatting argument, rendering URLs as strings."""
        if isinstance(value, str):
            return self._mask_sensitive(value)
        # httpx.URL and similar objects carry credentials in their str()
        if type(value).__name__ == "URL":
            return self._mask_sensitive(str(value))
        return value

    def filter(self, record: logging.LogRecord) -> bool:
        """
        Filter and modify log record to mask sensitive data.

        This handles:
        - record.msg (for standard log messages)
        - record.args (for formatted messages like uvicorn access logs)
        - record.__dict__ (for fields set by custom formatters)

        Parameters
        ----------
        record : logging.LogRecord
            The log record to process.

        Returns
        -------
        bool
            Always returns True (record is always logged).
        """
        if record.msg:
            record.msg = self._mask_sensitive(str(record.msg))

        if record.args:
            if isinstance(record.args, dict):
                record.args = {k: self._mask_arg(v) for k, v in record.args.items()}
            elif isinstance(record.args, tuple):
                record.args = tuple(self._mask_arg(arg) for arg in record.args)

        for key in self._SENSITIVE_DICT_KEYS:
            if key in record.__dict__:
                value = record.__dict__[key]
                if isinstance(value, str):
                    record.__dict__[key] = self._mask_sensitive(value)

        return True


def _configure_handler(handler: logging.Handler) -> None:
    """
    Configure a logging handler with formatter and sensitive filter.

    Parameters
    ----------
    handler : logging.Handler
        The handler to configure.
    """
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT)
    handler.setFormatter(formatter)
    handler.addFilter(SensitiveFilter())


def setup_logging(config: LoggingConfig) -> None:
    """
    Set up logging based on configuration.

    Parameters
    ----------
    config : LoggingConfig
        Logging configuration.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, config.level.upper(), logging.INFO))

    logger.handlers.clear()

    console_handler = logging.StreamHandler()
    _configure_handler(console_handler)
    logger.addHandler(console_handler)

    if config.file_enabled:
        log_path = config.file_path_as_path
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.WatchedFileHandler(
                str(log_path),
                encoding="utf-8",
                delay=False,
            )
            _configure_handler(file_handler)
            logger.addHandler(file_handler)
            logger.info('File logging enabled: "%s".', log_path)
        except OSError as e:
            logger.critical("Failed to enable file logging: %s", e)
            sys.exit(1)

    # Prevent propagation to root logger
    logger.propagate = False


def build_uvicorn_log_config(config: LoggingConfig) -> dict[str, Any]:
    """
    Build uvicorn log configuration dictionary for the status server.

    This function creates a log configuration for uvicorn that:
    - Preserves uvicorn's default console output (with colors)
    - Adds file logging when enabled
    - Applies sensitive information filtering to all handlers

    Parameters
    ----------
    config : LoggingConfig
        Logging configuration from the application.

    Returns
    -------
    dict[str, Any]
        A uvicorn-compatible log configuration dictionary.
    """
    log_config = copy.deepcopy(LOGGING_CONFIG)

    log_config.setdefault("filters", {})["sensitive"] = {
        "()": f"{__name__}.SensitiveFilter",
    }

    log_config["handlers"]["default"].setdefault("filters", []).append("sensitive")
    log_config["handlers"]["access"].setdefault("filters", []).append("sensitive")

    if config.file_enabled:
        # The file itself is created by setup_logging(); only attach it here.
        log_config.setdefault("formatters", {})["file"] = {
            "format": LOG_FORMAT,
            "datefmt": DATE_FORMAT,
        }
        log_config.setdefault("handlers", {})["file"] = {
            "class": "logging.handlers.WatchedFileHandler",
            "filename": str(config.file_path_as_path),
            "encoding": "utf-8",
            "delay": False,
            "formatter": "file",
            "filters": ["sensitive"],
        }

        # "uvicorn.error" propagates to "uvicorn"
        log_config["loggers"]["uvicorn"]["handlers"].append("file")
        log_config["loggers"]["uvicorn.access"]["handlers"].append("file")

    return log_config
