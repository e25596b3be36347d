"""
Configuration management for DDNS Reconciler.

This module handles loading and validating configuration from TOML (or legacy
JSON) files and command-line arguments. Configuration priority (high to low):
1. Command-line arguments
2. Configuration file
3. Default values
"""

from __future__ import annotations

import argparse
import copy
import json
import logging
import sys
import tomllib
from pathlib import Path
from typing import TYPE_CHECKING, Literal

from pydantic import BaseModel, ValidationError, field_validator, model_validator
from pydantic_core import PydanticCustomError

from ddns_reconciler import __version__
from ddns_reconciler.logging_config import DATE_FORMAT, LOG_FORMAT
from ddns_reconciler.models import DNSProvider, DomainConfig

if TYPE_CHECKING:
    from typing import Any, Final, Self

# Configure basic logging for early startup messages.
# The main logging setup in "setup_logging()" reconfigures the
# "ddns_reconciler" logger with full settings later.
logger_basic = logging.getLogger(__name__)
logger_basic.setLevel(logging.DEBUG)
handler = logging.StreamHandler()
formatter = logging.Formatter(
    fmt=LOG_FORMAT,
    datefmt=DATE_FORMAT,
)
handler.setFormatter(formatter)
logger_basic.addHandler(handler)
logger_basic.propagate = False


# Polling interval used when the configured interval is zero or absent
DEFAULT_INTERVAL: Final[int] = 5 * 60

# Maximum number of crashes tolerated per domain before it is abandoned
PANIC_MAX: Final[int] = 5

DEFAULT_CONFIG_FILES: Final[tuple[str, ...]] = ("config.toml", "config.json")


class ConfigValidationError(Exception):
    """
    Exception raised when configuration validation fails.

    Attributes
    ----------
    message : str
        Human-readable error message describing the validation failures.
    config_path : Path | None
        Path to the configuration file that failed validation.
    """

    def __init__(self, message: str, config_path: Path | None = None) -> None:
        """
        Initialize ConfigValidationError.

        Parameters
        ----------
        message : str
            Human-readable error message.
        config_path : Path | None, optional
            Path to the configuration file.
        """
        self.config_path = config_path
        super().__init__(message)


# Configuration models (Pydantic with type validation and coercion)


class NotifyConfig(BaseModel):
    """
    SMTP notification configuration.

    Attributes
    ----------
    enabled : bool
        Whether to send a mail when a record is updated.
    smtp_server : str
        SMTP server host.
    smtp_port : int
        SMTP server port.
    smtp_username : str
        SMTP login, also used as the sender address.
    smtp_password : str
        SMTP password.
    send_to : str
        Recipient address.
    security : Literal["starttls", "ssl", "none"]
        Transport security for the SMTP connection.
    """

    enabled: bool = False
    smtp_server: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    send_to: str = ""
    security: Literal["starttls", "ssl", "none"] = "starttls"

    @model_validator(mode="after")
    def check_notify_target(self) -> Self:
        """
        Validate that an enabled notifier knows where to send mail.

        Returns
        -------
        Self
            The validated model.

        Raises
        ------
        PydanticCustomError
            If notifications are enabled without a server or recipient.
        """
        if self.enabled and (not self.smtp_server or not self.send_to):
            raise PydanticCustomError(
                "notify_config_error",
                "Notification requires smtp_server and send_to when enabled",
            )
        return self


class LoggingConfig(BaseModel):
    """
    Logging configuration.

    Attributes
    ----------
    level : str
        Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL).
    file_enabled : bool
        Whether to log to file.
    file_path : str
        Path to the log file.
    """

    level: str = "INFO"
    file_enabled: bool = False
    file_path: str = "/var/log/ddns-reconciler.log"

    @property
    def file_path_as_path(self) -> Path:
        """
        Get the log file path as a Path object.

        Returns
        -------
        Path
            The resolved log file path.
        """
        return Path(self.file_path)


class ServerConfig(BaseModel):
    """
    Status server configuration.

    Attributes
    ----------
    enabled : bool
        Whether to serve the /health and /status endpoints.
    host : str
        Host address to bind to.
    port : int
        Port number to listen on.
    """

    enabled: bool = False
    host: str = "127.0.0.1"
    port: int = 38080


class AuthConfig(BaseModel):
    """
    Status endpoint authentication configuration.

    Attributes
    ----------
    enabled : bool
        Whether /status requires a bearer token.
    tokens : list[str]
        List of valid tokens.
    """

    enabled: bool = False
    tokens: list[str] = []


# Required credential fields per provider; each inner tuple is one
# acceptable combination.
_REQUIRED_CREDENTIALS: Final[dict[DNSProvider, tuple[tuple[str, ...], ...]]] = {
    DNSProvider.DNSPOD: (("login_token",), ("email", "password")),
    DNSProvider.HE: (("password",),),
    DNSProvider.CLOUDFLARE: (("email", "password"), ("login_token",)),
    DNSProvider.ALIDNS: (("email", "password"),),
    DNSProvider.GOOGLE: (("email", "password"),),
    DNSProvider.DUCKDNS: (("login_token",),),
}


class Config(BaseModel):
    """
    Application configuration.

    Attributes
    ----------
    provider : DNSProvider
        The DNS provider holding the records.
    email : str
        Account email / key id, depending on the provider.
    password : str
        Account password / API key / key secret, depending on the provider.
    login_token : str
        API token, depending on the provider.
    api_url : str | None
        Override of the provider API base URL.
    domains : list[DomainConfig]
        Domains to keep updated.
    ip_url : str
        Online IP echo service URL (empty to disable).
    ip_interface : str
        Network interface to read the address from (empty to disable).
    interval : float
        Seconds between reconciliation cycles.
    retry_interval : float
        Seconds to wait before re-resolving after a resolution failure.
    panic_max : int
        Restarts allowed per domain before it is abandoned.
    user_agent : str
        User-Agent header for outbound HTTP requests.
    socks5_proxy : str
        SOCKS5 proxy address ("host:port") for outbound HTTP requests.
    notify : NotifyConfig
        SMTP notification configuration.
    logging : LoggingConfig
        Logging configuration.
    server : ServerConfig
        Status server configuration.
    auth : AuthConfig
        Status endpoint authentication configuration.
    """

    provider: DNSProvider
    email: str = ""
    password: str = ""
    login_token: str = ""
    api_url: str | None = None
    domains: list[DomainConfig] = []
    ip_url: str = ""
    ip_interface: str = ""
    interval: float = DEFAULT_INTERVAL
    retry_interval: float = 10
    panic_max: int = PANIC_MAX
    user_agent: str = f"ddns-reconciler/{__version__}"
    socks5_proxy: str = ""
    notify: NotifyConfig = NotifyConfig()
    logging: LoggingConfig = LoggingConfig()
    server: ServerConfig = ServerConfig()
    auth: AuthConfig = AuthConfig()

    @field_validator("interval", mode="before")
    @classmethod
    def default_interval(cls, value: Any) -> Any:
        """Treat a zero or missing interval as the default interval."""
        if value in (None, 0, "0", ""):
            return DEFAULT_INTERVAL
        return value

    @field_validator("interval", "retry_interval")
    @classmethod
    def check_positive(cls, value: float) -> float:
        """Reject negative intervals."""
        if value <= 0:
            raise PydanticCustomError(
                "interval_error",
                "Interval must be a positive number of seconds",
            )
        return value

    @field_validator("panic_max")
    @classmethod
    def check_panic_max(cls, value: int) -> int:
        """Require a restart budget of at least one restart."""
        if value < 1:
            raise PydanticCustomError(
                "panic_max_error",
                "panic_max must be at least 1",
            )
        return value

    @model_validator(mode="after")
    def check_provider_credentials(self) -> Self:
        """
        Validate that the credentials required by the provider are present.

        Returns
        -------
        Self
            The validated model.

        Raises
        ------
        PydanticCustomError
            If no acceptable credential combination is set.
        """
        combinations = _REQUIRED_CREDENTIALS[self.provider]
        if any(all(getattr(self, name) for name in combo) for combo in combinations):
            return self
        expected = " or ".join(" + ".join(combo) for combo in combinations)
        raise PydanticCustomError(
            "credentials_error",
            "Provider {provider} requires {expected}",
            {"provider": str(self.provider), "expected": expected},
        )

    @model_validator(mode="after")
    def check_unique_domains(self) -> Self:
        """
        Validate that each domain is configured once.

        Returns
        -------
        Self
            The validated model.

        Raises
        ------
        PydanticCustomError
            If a domain name appears more than once.
        """
        seen: set[str] = set()
        for domain in self.domains:
            if domain.domain_name in seen:
                raise PydanticCustomError(
                    "domains_error",
                    "Domain {domain} is configured more than once",
                    {"domain": domain.domain_name},
                )
            seen.add(domain.domain_name)
        return self


def _format_validation_errors(
    error: ValidationError,
    config_path: Path | None,
) -> str:
    """
    Format Pydantic validation errors into human-readable messages.

    Parameters
    ----------
    error : ValidationError
        Pydantic validation error.
    config_path : Path | None
        Path to the configuration file.

    Returns
    -------
    str
        Human-readable error message.
    """
    lines: list[str] = []

    if config_path:
        lines.append(f'Configuration error in "{config_path}":')
    else:
        lines.append("Configuration error:")

    for err in error.errors():
        # Build field path (e.g., "notify.smtp_port")
        field_path = ".".join(str(loc) for loc in err["loc"]) or "config"

        error_type = err["type"]
        error_input = err["input"]
        input_type = type(error_input).__name__

        value_repr = (
            f'"{error_input}"' if isinstance(error_input, str) else repr(error_input)
        )

        if error_type in _CUSTOM_ERROR_TYPES:
            lines.append(f"  [{field_path}]: {err['msg']}.")
        elif error_type == "missing":
            lines.append(f"  [{field_path}]: Field required.")
        else:
            expected_type = _get_expected_type(error_type)
            lines.append(
                f"  [{field_path}]: Expected {expected_type}, got {input_type} (value: {value_repr}). {err['msg']}.",
            )

    return "\n".join(lines)


_CUSTOM_ERROR_TYPES: Final[frozenset[str]] = frozenset(
    {
        "credentials_error",
        "domains_error",
        "interval_error",
        "notify_config_error",
        "panic_max_error",
    },
)


def _get_expected_type(error_type: str) -> str:
    """
    Get human-readable expected type from Pydantic error type.

    Parameters
    ----------
    error_type : str
        Pydantic error type string.

    Returns
    -------
    str
        Human-readable type name.
    """
    type_mapping = {
        "int_type": "int",
        "int_parsing": "int",
        "float_type": "float",
        "float_parsing": "float",
        "bool_type": "bool",
        "bool_parsing": "bool",
        "string_type": "str",
        "list_type": "list",
        "tuple_type": "list",
        "enum": "one of " + ", ".join(p.value for p in DNSProvider),
    }
    return type_mapping.get(error_type, error_type)


def validate_config_dict(
    data: dict[str, Any],
    config_path: Path | None = None,
) -> Config:
    """
    Validate a configuration dictionary using Pydantic.

    Parameters
    ----------
    data : dict[str, Any]
        Configuration dictionary to validate.
    config_path : Path | None, optional
        Path to the configuration file (for error messages).

    Returns
    -------
    Config
        The validated configuration.

    Raises
    ------
    ConfigValidationError
        If validation fails.
    """
    try:
        return Config.model_validate(data)
    except ValidationError as e:
        msg = _format_validation_errors(e, config_path)
        raise ConfigValidationError(msg, config_path) from e


def load_config_from_file(config_path: Path) -> dict[str, Any]:
    """
    Load configuration from a TOML or JSON file.

    Files with a ".json" suffix are parsed as JSON (the legacy format);
    everything else is parsed as TOML.

    Parameters
    ----------
    config_path : Path
        Path to the configuration file.

    Returns
    -------
    dict[str, Any]
        Parsed configuration dictionary.

    Raises
    ------
    FileNotFoundError
        If the configuration file does not exist.
    tomllib.TOMLDecodeError
        If a TOML configuration file is not valid TOML.
    json.JSONDecodeError
        If a JSON configuration file is not valid JSON.
    """
    if config_path.suffix.lower() == ".json":
        with config_path.open(encoding="utf-8") as f:
            return json.load(f)
    with config_path.open("rb") as f:
        return tomllib.load(f)


def merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """
    Recursively merge two configuration dictionaries.

    Parameters
    ----------
    base : dict[str, Any]
        Base configuration.
    override : dict[str, Any]
        Override configuration (takes precedence).

    Returns
    -------
    dict[str, Any]
        Merged configuration.
    """
    result = copy.deepcopy(base)

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = merge_config(result[key], value)
        else:
            result[key] = value
    return result


def dict_to_config(data: dict[str, Any], config_path: Path | None = None) -> Config:
    """
    Convert a dictionary to a Config object.

    Parameters
    ----------
    data : dict[str, Any]
        Configuration dictionary.
    config_path : Path | None, optional
        Path to the configuration file (for error messages).

    Returns
    -------
    Config
        Configuration object.

    Raises
    ------
    ConfigValidationError
        If validation fails.
    """
    # Handle file_path expansion before Pydantic validation
    if "logging" in data and "file_path" in data["logging"]:
        data = copy.deepcopy(data)
        data["logging"]["file_path"] = str(
            Path(data["logging"]["file_path"]).expanduser(),
        )

    return validate_config_dict(data, config_path)


def parse_args(args: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command-line arguments.

    Parameters
    ----------
    args : list[str] | None, optional
        Command-line arguments. If None, uses sys.argv.

    Returns
    -------
    argparse.Namespace
        Parsed arguments.
    """
    parser = argparse.ArgumentParser(
        prog="ddns-reconciler",
        description="DDNS Reconciler - Keep DNS records pointed at this host's IP",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # Config arguments
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to configuration file (default: config.toml or config.json)",
    )

    # Engine arguments
    parser.add_argument(
        "--interval",
        type=float,
        default=None,
        help="Seconds between reconciliation cycles",
    )

    # Logging arguments
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        default=None,
        help="Log level",
    )
    log_file_group = parser.add_mutually_exclusive_group()
    log_file_group.add_argument(
        "--log-file-enabled",
        action="store_true",
        dest="log_file_enabled",
        default=None,
        help="Enable logging to file",
    )
    log_file_group.add_argument(
        "--log-file-disabled",
        action="store_false",
        dest="log_file_enabled",
        default=None,
        help="Disable logging to file",
    )
    parser.add_argument(
        "--log-file-path",
        type=Path,
        dest="log_file_path",
        default=None,
        help="Path to the log file",
    )

    # Status server arguments
    server_group = parser.add_mutually_exclusive_group()
    server_group.add_argument(
        "--server-enabled",
        action="store_true",
        dest="server_enabled",
        default=None,
        help='Serve the "/health" and "/status" endpoints',
    )
    server_group.add_argument(
        "--server-disabled",
        action="store_false",
        dest="server_enabled",
        default=None,
        help="Do not serve the status endpoints",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Status server host address to bind to",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Status server port number to listen on",
    )

    return parser.parse_args(args)


def _find_config_path(args: argparse.Namespace) -> Path | None:
    """Return the explicit config path, or the first default file present."""
    if args.config is not None:
        return args.config.expanduser()
    for name in DEFAULT_CONFIG_FILES:
        candidate = Path(name)
        if candidate.exists():
            return candidate
    return None


def load_config(args: argparse.Namespace | None = None) -> Config:
    """
    Load configuration from file and command-line arguments.

    Priority (high to low):
    1. Command-line arguments
    2. Configuration file
    3. Default values

    Parameters
    ----------
    args : argparse.Namespace | None, optional
        Parsed command-line arguments.

    Returns
    -------
    Config
        Loaded configuration.

    Raises
    ------
    ConfigValidationError
        If the merged configuration is invalid.
    """
    if args is None:
        args = parse_args()

    config_dict: dict[str, Any] = {}

    config_path = _find_config_path(args)
    if config_path is not None:
        if config_path.exists():
            logger_basic.info('Loading configuration from "%s".', config_path)
            try:
                config_dict = load_config_from_file(config_path)
            except (tomllib.TOMLDecodeError, json.JSONDecodeError) as e:
                logger_basic.critical('Failed to parse configuration file: "%s".', e)
                sys.exit(1)
        else:
            logger_basic.critical("Configuration file not found: %s", config_path)
            sys.exit(1)

    # Apply command-line overrides
    cli_overrides: dict[str, Any] = {}

    if args.interval is not None:
        cli_overrides["interval"] = args.interval

    # Logging overrides
    if args.log_level is not None:
        cli_overrides.setdefault("logging", {})["level"] = args.log_level
    if args.log_file_enabled is not None:
        cli_overrides.setdefault("logging", {})["file_enabled"] = args.log_file_enabled
    if args.log_file_path is not None:
        cli_overrides.setdefault("logging", {})["file_path"] = str(args.log_file_path)

    # Status server overrides
    if args.server_enabled is not None:
        cli_overrides.setdefault("server", {})["enabled"] = args.server_enabled
    if args.host is not None:
        cli_overrides.setdefault("server", {})["host"] = args.host
    if args.port is not None:
        cli_overrides.setdefault("server", {})["port"] = args.port

    if cli_overrides:
        config_dict = merge_config(config_dict, cli_overrides)

    return dict_to_config(config_dict, config_path)
