# SPDX-License-Identifier: MIT
# Copyright (c) 2025 Copilot-for-Consensus contributors

"""Reporter configuration and host environment flags.

Values are taken from explicit arguments first, then ``ERROR_REPORTER_*``
environment variables, then the defaults below.

Example:
    >>> config = ReporterConfig.from_env({"ERROR_REPORTER_VERBOSITY": "2"})
    >>> config.verbosity
    2
"""

import os
import socket
import sys
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .severity import Severity

_TRUE = ("true", "1", "yes", "on")
_FALSE = ("false", "0", "no", "off")


def _get_bool(environ: Mapping[str, str], key: str, default: bool) -> bool:
    value = environ.get(key)
    if value is None:
        return default
    value_lower = value.lower()
    if value_lower in _TRUE:
        return True
    if value_lower in _FALSE:
        return False
    return default


def _get_int(environ: Mapping[str, str], key: str, default: int) -> int:
    value = environ.get(key)
    if value is None:
        return default
    try:
        return int(value, 0)
    except ValueError:
        return default


class HostEnvironment(BaseModel):
    """Flags describing the process the reporter runs in."""

    is_cli: bool = Field(default=True, description="Console process rather than embedded in a web host")
    is_ajax: bool = Field(default=False, description="Background request, no inline HTML backtraces")
    is_debug: bool = Field(default=False, description="Detailed diagnostics (debug/deprecated messages)")
    install_path: str = Field(default_factory=os.getcwd, description="Root trimmed from backtrace paths")
    server_name: str = Field(default_factory=socket.gethostname, description="Host name shown in reports")

    @property
    def is_web(self) -> bool:
        return not self.is_cli

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "HostEnvironment":
        """Compute the host flags, falling back to detection when unset.

        Args:
            environ: Environment mapping (defaults to ``os.environ``)

        Returns:
            HostEnvironment instance
        """
        environ = os.environ if environ is None else environ
        mode = environ.get("ERROR_REPORTER_MODE", "").lower()
        if mode in ("cli", "web"):
            is_cli = mode == "cli"
        else:
            is_cli = sys.stdin is not None
        return cls(
            is_cli=is_cli,
            is_ajax=_get_bool(environ, "AJAX", not is_cli),
            is_debug=_get_bool(environ, "DEBUG", False),
            install_path=environ.get("ERROR_REPORTER_INSTALL_PATH") or os.getcwd(),
            server_name=(
                environ.get("ERROR_REPORTER_SERVER_NAME")
                or environ.get("HOSTNAME")
                or socket.gethostname()
            ),
        )


class ReporterConfig(BaseModel):
    """Configuration of an ``ErrorReporter``."""

    model_config = ConfigDict(validate_assignment=True)

    verbosity: int = Field(default=1, ge=0, description="Echo/backtrace threshold, 0 disables")
    max_emit: int = Field(default=int(Severity.ALL), description="Highest severity appended to the buffer")
    reporting_mask: int = Field(default=int(Severity.ALL), description="Severities handled by handle_error")
    report_address: str | None = Field(default=None, description="Recipient of outbound fault reports")
    report_limit: int = Field(default=10, ge=0, description="Reports sent per process")
    notifier_type: Literal["mail", "sentry", "silent"] = "mail"
    smtp_host: str = "localhost"
    smtp_port: int = Field(default=25, gt=0, lt=65536)
    sender: str | None = Field(default=None, description="From address, defaults to error-reporter@<host>")
    sentry_dsn: str | None = None
    sentry_environment: str = "production"
    log_sink_type: Literal["file", "logging", "silent"] | None = None
    log_path: str | None = None
    environment: HostEnvironment = Field(default_factory=HostEnvironment)

    @field_validator("max_emit", "reporting_mask")
    @classmethod
    def _check_mask(cls, value: int) -> int:
        if value < 0 or value > Severity.ALL:
            raise ValueError(f"severity mask out of range: {value:#x}")
        return value

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None, **overrides) -> "ReporterConfig":
        """Build a configuration from environment variables.

        Malformed boolean or integer values fall back to their defaults.

        Args:
            environ: Environment mapping (defaults to ``os.environ``)
            **overrides: Explicit values taking precedence over the environment

        Returns:
            ReporterConfig instance

        Raises:
            pydantic.ValidationError: If a value is out of range
        """
        environ = os.environ if environ is None else environ
        values = {
            "verbosity": _get_int(environ, "ERROR_REPORTER_VERBOSITY", 1),
            "max_emit": _get_int(environ, "ERROR_REPORTER_MAX_EMIT", int(Severity.ALL)),
            "reporting_mask": _get_int(environ, "ERROR_REPORTER_MASK", int(Severity.ALL)),
            "report_address": environ.get("ERROR_REPORTER_ADDRESS") or None,
            "report_limit": _get_int(environ, "ERROR_REPORTER_LIMIT", 10),
            "notifier_type": environ.get("ERROR_REPORTER_NOTIFIER", "mail").lower(),
            "smtp_host": environ.get("ERROR_REPORTER_SMTP_HOST", "localhost"),
            "smtp_port": _get_int(environ, "ERROR_REPORTER_SMTP_PORT", 25),
            "sender": environ.get("ERROR_REPORTER_SENDER") or None,
            "sentry_dsn": environ.get("SENTRY_DSN") or None,
            "sentry_environment": environ.get("SENTRY_ENVIRONMENT", "production"),
            "log_sink_type": (environ.get("ERROR_REPORTER_LOG_TYPE") or "").lower() or None,
            "log_path": environ.get("ERROR_REPORTER_LOG_PATH") or None,
            "environment": HostEnvironment.from_env(environ),
        }
        values.update(overrides)
        return cls(**values)
