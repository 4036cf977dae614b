"""Configuration for quote-sync.

Configuration is stored in ~/.quotesync/config.toml
Quote data is stored in ~/.quotesync/quotes.db (SQLite key-value table)
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from quote_sync.sync.client import DEFAULT_BASE_URL, DEFAULT_REMOTE_CATEGORY

logger = logging.getLogger(__name__)

_MAX_PULL_LIMIT = 100
_MAX_INTERVAL_SECONDS = 24 * 3600


def get_quotesync_dir() -> Path:
    """Get the quote-sync data directory.

    Priority:
    1. QUOTESYNC_DIR environment variable
    2. ~/.quotesync/
    """
    env_dir = os.environ.get("QUOTESYNC_DIR")
    if env_dir:
        return Path(env_dir)
    return Path.home() / ".quotesync"


def _clamped_int(value: Any, default: int, low: int, high: int) -> int:
    try:
        return max(low, min(int(value), high))
    except (TypeError, ValueError):
        return default


def _clamped_float(value: Any, default: float, low: float, high: float) -> float:
    try:
        return max(low, min(float(value), high))
    except (TypeError, ValueError):
        return default


def _strict_bool(value: Any, default: bool) -> bool:
    if isinstance(value, bool):
        return value
    logger.warning("Ignoring non-boolean value %r", value)
    return default


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    if not isinstance(section, dict):
        logger.warning("Ignoring [%s]: expected a table, got %s", name, type(section).__name__)
        return {}
    return section


@dataclass(frozen=True)
class RemoteSettings:
    """Where and how to reach the remote collection."""

    base_url: str = DEFAULT_BASE_URL
    timeout: float = 10.0
    pull_limit: int = 5
    remote_category: str = DEFAULT_REMOTE_CATEGORY

    def to_dict(self) -> dict[str, Any]:
        return {
            "base_url": self.base_url,
            "timeout": self.timeout,
            "pull_limit": self.pull_limit,
            "remote_category": self.remote_category,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> RemoteSettings:
        base_url = data.get("base_url", DEFAULT_BASE_URL)
        if not isinstance(base_url, str) or not base_url.startswith(("http://", "https://")):
            logger.warning("Ignoring invalid remote.base_url %r", base_url)
            base_url = DEFAULT_BASE_URL
        category = data.get("remote_category", DEFAULT_REMOTE_CATEGORY)
        if not isinstance(category, str) or not category.strip():
            category = DEFAULT_REMOTE_CATEGORY
        return cls(
            base_url=base_url,
            timeout=_clamped_float(data.get("timeout", 10.0), 10.0, 0.5, 300.0),
            pull_limit=_clamped_int(data.get("pull_limit", 5), 5, 1, _MAX_PULL_LIMIT),
            remote_category=category.strip(),
        )


@dataclass(frozen=True)
class SyncSettings:
    """Auto-sync and retry behavior."""

    auto_sync: bool = False
    interval_seconds: int = 60
    max_push_attempts: int = 5  # 0 = retry forever

    @property
    def interval_ms(self) -> int:
        return self.interval_seconds * 1000

    def to_dict(self) -> dict[str, Any]:
        return {
            "auto_sync": self.auto_sync,
            "interval_seconds": self.interval_seconds,
            "max_push_attempts": self.max_push_attempts,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SyncSettings:
        return cls(
            auto_sync=_strict_bool(data.get("auto_sync", False), False),
            interval_seconds=_clamped_int(
                data.get("interval_seconds", 60), 60, 1, _MAX_INTERVAL_SECONDS
            ),
            max_push_attempts=_clamped_int(data.get("max_push_attempts", 5), 5, 0, 1000),
        )


@dataclass
class QuoteSyncConfig:
    """quote-sync configuration.

    Storage location: ~/.quotesync/config.toml
    """

    data_dir: Path = field(default_factory=get_quotesync_dir)
    remote: RemoteSettings = field(default_factory=RemoteSettings)
    sync: SyncSettings = field(default_factory=SyncSettings)
    version: str = "1.0"

    @classmethod
    def load(cls, config_path: Path | None = None) -> QuoteSyncConfig:
        """Load configuration from file, or create default if it doesn't exist."""
        if config_path is None:
            data_dir = get_quotesync_dir()
            config_path = data_dir / "config.toml"
        else:
            data_dir = config_path.parent

        if not config_path.exists():
            config = cls(data_dir=data_dir)
            config.save()
            return config

        try:
            with open(config_path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError:
            logger.warning("Invalid %s, using defaults", config_path, exc_info=True)
            return cls(data_dir=data_dir)

        return cls(
            data_dir=data_dir,
            remote=RemoteSettings.from_dict(_section(data, "remote")),
            sync=SyncSettings.from_dict(_section(data, "sync")),
            version=str(data.get("version", "1.0")),
        )

    def save(self) -> None:
        """Save configuration to TOML file (atomic write via temp+rename)."""
        self.data_dir.mkdir(parents=True, exist_ok=True)

        # json.dumps yields valid TOML basic strings
        lines = [
            "# quote-sync configuration",
            "",
            f"version = {json.dumps(self.version)}",
            "",
            "# Remote collection",
            "[remote]",
            f"base_url = {json.dumps(self.remote.base_url)}",
            f"timeout = {float(self.remote.timeout)}",
            f"pull_limit = {self.remote.pull_limit}",
            f"remote_category = {json.dumps(self.remote.remote_category)}",
            "",
            "# Sync behavior",
            "[sync]",
            f"auto_sync = {'true' if self.sync.auto_sync else 'false'}",
            f"interval_seconds = {self.sync.interval_seconds}",
            f"max_push_attempts = {self.sync.max_push_attempts}",
        ]

        content = "\n".join(lines) + "\n"
        fd, tmp_path = tempfile.mkstemp(dir=str(self.data_dir), suffix=".toml.tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)
            Path(tmp_path).replace(self.config_path)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    @property
    def config_path(self) -> Path:
        return self.data_dir / "config.toml"

    @property
    def db_path(self) -> Path:
        """SQLite database holding persisted quotes and sync state."""
        return self.data_dir / "quotes.db"

    def to_dict(self) -> dict[str, Any]:
        return {
            "data_dir": str(self.data_dir),
            "version": self.version,
            "remote": self.remote.to_dict(),
            "sync": self.sync.to_dict(),
        }


_config: QuoteSyncConfig | None = None


def get_config(reload: bool = False) -> QuoteSyncConfig:
    """Get the configuration (singleton).

    Args:
        reload: Force reload from disk
    """
    global _config
    if _config is None or reload:
        _config = QuoteSyncConfig.load()
    return _config


def reset_config() -> None:
    """Reset the global configuration (useful for testing)."""
    global _config
    _config = None
