"""Configuration management for dbmill."""

import configparser
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from dbmill.exceptions import ConfigError

DEFAULT_DRIVER = "ODBC Driver 18 for SQL Server"
DEFAULT_TIMEOUT = 30
DEFAULT_QUEUE_SIZE = 64


def load_dbmillcfg(profile: str = "DEFAULT") -> dict[str, str]:
    """Load connection settings from ~/.dbmill.cfg.

    Args:
        profile: Profile name to load (default: "DEFAULT")

    Returns:
        Dict with connection and optionally driver

    Raises:
        ConfigError: If the profile doesn't exist
    """
    cfg_path = Path.home() / ".dbmill.cfg"
    if not cfg_path.exists():
        return {}

    config = configparser.ConfigParser()
    config.read(cfg_path)

    if profile != "DEFAULT" and profile not in config:
        available = [s for s in config.sections()] or ["DEFAULT"]
        raise ConfigError(
            f"Profile '{profile}' not found in ~/.dbmill.cfg. "
            f"Available profiles: {', '.join(available)}"
        )

    section = config[profile]
    result = {}
    for key in ("connection", "driver"):
        if key in section:
            result[key] = section[key].strip()
    return result


def read_patterns(path: str | Path) -> list[str]:
    """Read one regular expression per line, skipping blanks and # comments."""
    try:
        text = Path(path).read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read pattern file {path}: {e}") from e

    patterns = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            patterns.append(line)
    return patterns


def _split_env_list(value: Optional[str]) -> list[str]:
    if not value:
        return []
    return [item for item in value.split(os.pathsep) if item]


@dataclass
class Config:
    """Configuration for dbmill."""

    connection: Optional[str] = None
    driver: str = DEFAULT_DRIVER
    path: str = "."
    layout_path: Optional[str] = None
    include: list[str] = field(default_factory=list)
    exclude: list[str] = field(default_factory=list)
    include_path: Optional[str] = None
    exclude_path: Optional[str] = None
    log_file: Optional[str] = None
    log_level: str = "info"
    skip_permissions: bool = False
    timeout: int = DEFAULT_TIMEOUT
    queue_size: int = DEFAULT_QUEUE_SIZE

    @classmethod
    def from_env(
        cls,
        *,
        connection: Optional[str] = None,
        driver: Optional[str] = None,
        path: Optional[str] = None,
        layout_path: Optional[str] = None,
        include: Optional[list[str]] = None,
        exclude: Optional[list[str]] = None,
        include_path: Optional[str] = None,
        exclude_path: Optional[str] = None,
        log_file: Optional[str] = None,
        log_level: Optional[str] = None,
        skip_permissions: Optional[bool] = None,
        timeout: Optional[int] = None,
        profile: Optional[str] = None,
    ) -> "Config":
        """Load configuration from ~/.dbmill.cfg, env vars, with CLI overrides.

        Priority (highest to lowest):
        1. Explicit parameters (CLI args)
        2. Environment variables
        3. ~/.dbmill.cfg profile
        """
        dbmill_cfg = {}
        profile_name = profile or os.environ.get("DBMILL_PROFILE", "DEFAULT")
        try:
            dbmill_cfg = load_dbmillcfg(profile_name)
        except ConfigError:
            if profile is not None:
                raise

        def resolve(explicit, env_key, cfg_key=None, default=None):
            if explicit is not None:
                return explicit
            env_val = os.environ.get(env_key)
            if env_val is not None:
                return env_val
            if cfg_key and cfg_key in dbmill_cfg:
                return dbmill_cfg[cfg_key]
            return default

        timeout_value = resolve(timeout, "DBMILL_TIMEOUT", default=DEFAULT_TIMEOUT)
        try:
            timeout_value = int(timeout_value)
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Invalid timeout: {timeout_value!r}") from e

        if skip_permissions is None:
            skip_permissions = os.environ.get("DBMILL_SKIP_PERMISSIONS", "").lower() in (
                "1",
                "true",
                "yes",
            )

        return cls(
            connection=resolve(connection, "DBMILL_CONNECTION", "connection"),
            driver=resolve(driver, "DBMILL_DRIVER", "driver", DEFAULT_DRIVER),
            path=resolve(path, "DBMILL_PATH", default="."),
            layout_path=resolve(layout_path, "DBMILL_LAYOUT"),
            include=list(include)
            if include
            else _split_env_list(os.environ.get("DBMILL_INCLUDE")),
            exclude=list(exclude)
            if exclude
            else _split_env_list(os.environ.get("DBMILL_EXCLUDE")),
            include_path=resolve(include_path, "DBMILL_INCLUDE_PATH"),
            exclude_path=resolve(exclude_path, "DBMILL_EXCLUDE_PATH"),
            log_file=resolve(log_file, "DBMILL_LOG"),
            log_level=resolve(log_level, "DBMILL_LOG_LEVEL", default="info"),
            skip_permissions=skip_permissions,
            timeout=timeout_value,
        )

    def patterns(self) -> tuple[list[str], list[str]]:
        """Return (include, exclude) patterns merged with the pattern files."""
        include = list(self.include)
        exclude = list(self.exclude)
        if self.include_path:
            include.extend(read_patterns(self.include_path))
        if self.exclude_path:
            exclude.extend(read_patterns(self.exclude_path))
        return include, exclude

    def validate_for_db_ops(self) -> None:
        """Validate that all required fields for database operations are present.

        Raises:
            ConfigError: If the connection or driver is missing, or limits are invalid.
        """
        missing = []
        if not self.connection:
            missing.append("connection (use --db or DBMILL_CONNECTION)")
        if not self.driver:
            missing.append("driver (use DBMILL_DRIVER or ~/.dbmill.cfg)")

        if missing:
            raise ConfigError(
                "Missing required configuration:\n  - " + "\n  - ".join(missing)
            )

        if self.timeout <= 0:
            raise ConfigError(f"Timeout must be positive, got {self.timeout}")
        if self.queue_size <= 0:
            raise ConfigError(f"Queue size must be positive, got {self.queue_size}")
