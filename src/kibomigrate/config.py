"""Configuration for kibomigrate.

Settings are layered: built-in defaults, then the optional YAML file at
``~/.kibomigrate/config.yaml``, then a ``.env`` file in the working directory
and the process environment, which always win. The result is an explicit
``Settings`` object handed to every job; nothing reads the environment after
startup.
"""

import os
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from rich.console import Console

from .errors import ConfigurationError

console = Console()

CONFIG_DIR = Path.home() / ".kibomigrate"
CONFIG_FILE_YAML = CONFIG_DIR / "config.yaml"

DEFAULT_PAGE_SIZE = 200
DEFAULT_MIN_TIME_MS = 500
DEFAULT_REQUEST_TIMEOUT = 60.0

# option name -> environment variable
ENV_VARS = {
    "tenant_id": "TENANT_ID",
    "site_id": "SITE_ID",
    "catalog_id": "CATALOG",
    "master_catalog": "MASTER_CATALOG",
    "client_id": "CLIENT_ID",
    "shared_secret": "SHARED_SECRET",
    "auth_host": "AUTH_HOST",
    "pci_host": "PCI_HOST",
    "api_env": "API_ENV",
    "api_host": "API_HOST",
    "dest_tenant_id": "DEST_TENANT_ID",
    "dest_site_id": "DEST_SITE_ID",
    "target_collection_name": "DOCUMENT_LIST_NAME",
    "log_level": "LOG_LEVEL",
    "log_directory": "LOG_DIR",
    "page_size": "PAGE_SIZE",
    "min_time_ms": "RATE_LIMIT_MIN_TIME_MS",
    "data_directory": "KIBO_DATA_DIR",
    "request_timeout": "REQUEST_TIMEOUT",
}

SECRET_OPTIONS = {"shared_secret"}


@dataclass(frozen=True)
class Settings:
    """Connection, tenant and run parameters for one process invocation."""

    tenant_id: str = ""
    site_id: str = ""
    catalog_id: str = ""
    master_catalog: str = ""
    client_id: str = ""
    shared_secret: str = ""
    auth_host: str = ""
    pci_host: str = ""
    api_env: str = ""
    api_host: str = ""
    dest_tenant_id: str = ""
    dest_site_id: str = ""
    target_collection_name: str = ""
    log_level: str = "INFO"
    log_directory: str = "logs"
    page_size: int = DEFAULT_PAGE_SIZE
    min_time_ms: int = DEFAULT_MIN_TIME_MS
    data_directory: str = ""
    request_timeout: float = DEFAULT_REQUEST_TIMEOUT

    @property
    def min_time(self) -> float:
        """Minimum spacing between rate-limited operations, in seconds."""
        return self.min_time_ms / 1000.0

    @property
    def resolved_api_host(self) -> str:
        """API host, derived from tenant and environment when not set explicitly."""
        if self.api_host:
            return self.api_host
        if self.tenant_id and self.api_env:
            return f"t{self.tenant_id}.{self.api_env}"
        return ""

    def require(self, *names: str) -> None:
        """Raise ConfigurationError listing every option in ``names`` that is empty."""
        missing = [name for name in names if not getattr(self, name)]
        if missing:
            env_names = ", ".join(ENV_VARS.get(name, name.upper()) for name in missing)
            raise ConfigurationError(
                f"Missing required configuration: {env_names}", missing=missing
            )

    def for_destination(self) -> "Settings":
        """Settings addressing the destination tenant/site of a copy batch."""
        self.require("dest_tenant_id", "dest_site_id")
        # API_HOST names the source tenant's host; the destination host is derived
        return replace(
            self, tenant_id=self.dest_tenant_id, site_id=self.dest_site_id, api_host=""
        )

    def redacted(self) -> Dict[str, Any]:
        """Settings as a dict safe for logging."""
        data = asdict(self)
        for name in SECRET_OPTIONS:
            if data.get(name):
                data[name] = "[REDACTED]"
        return data


def _coerce(name: str, value: Any) -> Any:
    """Convert a raw YAML/env value to the type of the Settings field."""
    if value is None:
        return None
    field_types = {f.name: f.type for f in fields(Settings)}
    target = field_types.get(name)
    try:
        if target in (int, "int"):
            return int(value)
        if target in (float, "float"):
            return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid value for {ENV_VARS.get(name, name)}: {value!r}", cause=e
        )
    return str(value)


class Config:
    """Loads kibomigrate settings from YAML, .env and the environment."""

    def __init__(
        self,
        config_file: Optional[Path] = None,
        env_file: Optional[Path] = None,
        environ: Optional[Dict[str, str]] = None,
    ):
        self.config_file = config_file or CONFIG_FILE_YAML
        self.env_file = env_file
        self._environ = environ
        self.config_data: Dict[str, Any] = {}

    def _load_yaml_config(self) -> Dict[str, Any]:
        """Load the optional YAML configuration file."""
        if not self.config_file.exists():
            return {}

        try:
            with open(self.config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Configuration file {self.config_file} is not valid YAML: {e}"
            )

        if not isinstance(data, dict):
            raise ConfigurationError(
                f"Configuration file {self.config_file} must contain a mapping"
            )
        return data

    def _environment(self) -> Dict[str, str]:
        if self._environ is not None:
            return self._environ
        # .env never overrides variables already exported in the shell
        load_dotenv(dotenv_path=self.env_file, override=False)
        return dict(os.environ)

    def load(self) -> Settings:
        """Build the Settings object."""
        values: Dict[str, Any] = {}
        known = {f.name for f in fields(Settings)}

        self.config_data = self._load_yaml_config()
        for key, value in self.config_data.items():
            if key not in known:
                console.print(
                    f"[yellow]Warning: Unknown configuration key '{key}' ignored[/yellow]"
                )
                continue
            values[key] = _coerce(key, value)

        environ = self._environment()
        for name, env_var in ENV_VARS.items():
            raw = environ.get(env_var)
            if raw is not None and raw != "":
                values[name] = _coerce(name, raw)

        settings = Settings(**values)
        if settings.page_size <= 0:
            raise ConfigurationError("PAGE_SIZE must be a positive integer")
        if settings.min_time_ms < 0:
            raise ConfigurationError("RATE_LIMIT_MIN_TIME_MS must not be negative")
        return settings


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """Load settings for the current process."""
    return Config(env_file=env_file).load()
