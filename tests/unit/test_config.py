"""Tests for config.py - TOML configuration."""

from __future__ import annotations

from pathlib import Path

import pytest

from quote_sync.config import (
    QuoteSyncConfig,
    RemoteSettings,
    SyncSettings,
    get_config,
    get_quotesync_dir,
    reset_config,
)
from quote_sync.sync.client import DEFAULT_BASE_URL


@pytest.fixture()
def tmp_data_dir(tmp_path: Path) -> Path:
    """Return a temporary quote-sync data directory."""
    return tmp_path / ".quotesync"


class TestDataDir:
    def test_env_override(self, tmp_data_dir: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("QUOTESYNC_DIR", str(tmp_data_dir))
        assert get_quotesync_dir() == tmp_data_dir

    def test_default_under_home(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("QUOTESYNC_DIR", raising=False)
        assert get_quotesync_dir() == Path.home() / ".quotesync"


class TestLoadSave:
    def test_missing_file_is_created_with_defaults(self, tmp_data_dir: Path) -> None:
        config = QuoteSyncConfig.load(tmp_data_dir / "config.toml")

        assert config.config_path.exists()
        assert config.remote == RemoteSettings()
        assert config.sync == SyncSettings()
        assert config.db_path == tmp_data_dir / "quotes.db"

    def test_round_trip(self, tmp_data_dir: Path) -> None:
        config = QuoteSyncConfig(
            data_dir=tmp_data_dir,
            remote=RemoteSettings(
                base_url="http://localhost:9000/posts",
                timeout=2.5,
                pull_limit=20,
                remote_category='Cloud "quotes"',
            ),
            sync=SyncSettings(auto_sync=True, interval_seconds=30, max_push_attempts=0),
        )
        config.save()

        loaded = QuoteSyncConfig.load(config.config_path)

        assert loaded.remote == config.remote
        assert loaded.sync == config.sync
        assert loaded.sync.interval_ms == 30_000

    def test_save_leaves_no_temp_files(self, tmp_data_dir: Path) -> None:
        QuoteSyncConfig(data_dir=tmp_data_dir).save()
        assert [p.name for p in tmp_data_dir.iterdir()] == ["config.toml"]

    def test_invalid_toml_falls_back_to_defaults(self, tmp_data_dir: Path) -> None:
        tmp_data_dir.mkdir(parents=True)
        (tmp_data_dir / "config.toml").write_text("[remote\nbase_url = ", encoding="utf-8")

        config = QuoteSyncConfig.load(tmp_data_dir / "config.toml")

        assert config.remote.base_url == DEFAULT_BASE_URL

    def test_out_of_range_values_are_clamped(self, tmp_data_dir: Path) -> None:
        tmp_data_dir.mkdir(parents=True)
        (tmp_data_dir / "config.toml").write_text(
            "[remote]\n"
            'base_url = "file:///etc/passwd"\n'
            "pull_limit = 100000\n"
            'timeout = "soon"\n'
            "[sync]\n"
            "interval_seconds = 0\n"
            "max_push_attempts = -3\n",
            encoding="utf-8",
        )

        config = QuoteSyncConfig.load(tmp_data_dir / "config.toml")

        assert config.remote.base_url == DEFAULT_BASE_URL
        assert config.remote.pull_limit == 100
        assert config.remote.timeout == 10.0
        assert config.sync.interval_seconds == 1
        assert config.sync.max_push_attempts == 0

    def test_non_table_sections_fall_back_to_defaults(self, tmp_data_dir: Path) -> None:
        tmp_data_dir.mkdir(parents=True)
        (tmp_data_dir / "config.toml").write_text(
            'remote = "x"\nsync = 3\n', encoding="utf-8"
        )

        config = QuoteSyncConfig.load(tmp_data_dir / "config.toml")

        assert config.remote == RemoteSettings()
        assert config.sync == SyncSettings()

    def test_string_auto_sync_is_ignored(self, tmp_data_dir: Path) -> None:
        tmp_data_dir.mkdir(parents=True)
        (tmp_data_dir / "config.toml").write_text(
            '[sync]\nauto_sync = "false"\n', encoding="utf-8"
        )

        config = QuoteSyncConfig.load(tmp_data_dir / "config.toml")

        assert config.sync.auto_sync is False

    def test_to_dict(self, tmp_data_dir: Path) -> None:
        data = QuoteSyncConfig(data_dir=tmp_data_dir).to_dict()

        assert data["data_dir"] == str(tmp_data_dir)
        assert data["remote"]["pull_limit"] == 5
        assert data["sync"]["auto_sync"] is False


class TestSingleton:
    def test_get_config_caches_until_reset(
        self, tmp_data_dir: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("QUOTESYNC_DIR", str(tmp_data_dir))
        reset_config()
        try:
            first = get_config()
            assert get_config() is first
            assert get_config(reload=True) is not first
        finally:
            reset_config()
