"""Configuration loader: YAML file with environment variable fallbacks."""

from __future__ import annotations

import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .errors import ConfigError

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class BackendConfig:
    base_url: str
    verify_ssl: bool = True
    request_timeout: float = 30.0  # seconds; per request, not applied to the event stream


@dataclass
class AppSettings:
    data_dir: Path = field(default_factory=lambda: Path.home() / ".messer")
    credentials_file: Path | None = None
    log_level: str = "WARNING"

    @property
    def session_token_path(self) -> Path:
        return self.data_dir / "session.json"

    @property
    def resolved_credentials_file(self) -> Path:
        return self.credentials_file or self.data_dir / "credentials.yaml"


@dataclass
class CliConfig:
    thread_page_size: int = 20
    history_limit: int = 5
    prompt: str = "> "


@dataclass
class AppConfig:
    backend: BackendConfig
    app: AppSettings = field(default_factory=AppSettings)
    cli: CliConfig = field(default_factory=CliConfig)


def _get_config_path(data_dir: Path | None = None) -> Path:
    if data_dir:
        return data_dir / "config.yaml"
    return Path.home() / ".messer" / "config.yaml"


def _positive_int(raw: Any, key: str, path: Path) -> int:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"'{key}' must be an integer in {path}, got {raw!r}") from None
    if value <= 0:
        raise ConfigError(f"'{key}' must be positive in {path}, got {value}")
    return value


def load_config(config_path: Path | None = None) -> AppConfig:
    raw: dict[str, Any] = {}
    path = config_path or _get_config_path()

    if path.exists():
        with open(path, encoding="utf-8") as f:
            try:
                raw = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Invalid YAML in {path}: {e}") from e
        if not isinstance(raw, dict):
            raise ConfigError(f"Expected a mapping at the top of {path}")

    backend_raw = raw.get("backend", {}) or {}
    base_url = backend_raw.get("base_url") or os.environ.get("MESSER_BASE_URL", "")
    if not base_url:
        raise ConfigError(
            f"Backend base_url is required. Set 'backend.base_url' in config.yaml ({path}) "
            "or MESSER_BASE_URL environment variable."
        )
    if not base_url.startswith(("http://", "https://")):
        raise ConfigError(f"Backend base_url must start with http:// or https://, got {base_url!r}")

    verify_ssl_raw = backend_raw.get("verify_ssl", os.environ.get("MESSER_VERIFY_SSL", "true"))
    verify_ssl = str(verify_ssl_raw).lower() not in ("false", "0", "no")

    timeout_raw = backend_raw.get("request_timeout", os.environ.get("MESSER_REQUEST_TIMEOUT", 30))
    try:
        request_timeout = float(timeout_raw)
    except (TypeError, ValueError):
        raise ConfigError(f"'backend.request_timeout' must be a number, got {timeout_raw!r}") from None

    backend = BackendConfig(
        base_url=base_url.rstrip("/"),
        verify_ssl=verify_ssl,
        request_timeout=request_timeout,
    )

    app_raw = raw.get("app", {}) or {}
    data_dir = Path(os.path.expanduser(app_raw.get("data_dir") or os.environ.get("MESSER_DATA_DIR", "~/.messer")))
    creds_raw = app_raw.get("credentials_file") or os.environ.get("MESSER_CREDENTIALS_FILE")
    log_level = str(app_raw.get("log_level") or os.environ.get("MESSER_LOG_LEVEL", "WARNING")).upper()
    if log_level not in _LOG_LEVELS:
        raise ConfigError(f"'app.log_level' must be one of {', '.join(_LOG_LEVELS)}, got {log_level!r}")
    app_settings = AppSettings(
        data_dir=data_dir,
        credentials_file=Path(os.path.expanduser(creds_raw)) if creds_raw else None,
        log_level=log_level,
    )

    app_settings.data_dir.mkdir(parents=True, exist_ok=True)
    try:
        app_settings.data_dir.chmod(stat.S_IRWXU)  # 0700
        if path.exists():
            path.chmod(stat.S_IRUSR | stat.S_IWUSR)  # 0600
    except OSError:
        pass  # May fail on Windows or non-owned files

    cli_raw = raw.get("cli", {}) or {}
    cli_config = CliConfig(
        thread_page_size=_positive_int(cli_raw.get("thread_page_size", 20), "cli.thread_page_size", path),
        history_limit=_positive_int(cli_raw.get("history_limit", 5), "cli.history_limit", path),
        prompt=str(cli_raw.get("prompt", "> ")),
    )

    return AppConfig(backend=backend, app=app_settings, cli=cli_config)
