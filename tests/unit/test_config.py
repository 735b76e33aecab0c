"""Tests for configuration paths, settings and profile values.

Uses isolated directories via tmp_path and PAY_LEDGER_CONFIG_PATH.
"""

import json

import pytest
import yaml

from payledger.sdk import config
from payledger.sdk.book import open_book


@pytest.fixture
def isolated_env(tmp_path, monkeypatch):
    """Set up isolated environment with config and data directories."""
    config_dir = tmp_path / "config"
    data_dir = tmp_path / "data"

    config_dir.mkdir()

    monkeypatch.setenv("PAY_LEDGER_CONFIG_PATH", str(config_dir))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "xdg-data"))

    return {
        "tmp_path": tmp_path,
        "config_dir": config_dir,
        "data_dir": data_dir,
    }


class TestPaths:

    def test_config_dir_from_env(self, isolated_env):
        assert config.get_config_dir() == isolated_env["config_dir"]

    def test_config_dir_xdg_fallback(self, tmp_path, monkeypatch):
        monkeypatch.delenv("PAY_LEDGER_CONFIG_PATH", raising=False)
        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))
        assert config.get_config_dir() == tmp_path / "pay-ledger"

    def test_data_path_default_is_xdg(self, isolated_env):
        expected = isolated_env["tmp_path"] / "xdg-data" / "pay-ledger"
        assert config.get_data_path() == expected
        assert expected.is_dir()

    def test_data_dir_setting_wins(self, isolated_env):
        config.set_setting("data_dir", str(isolated_env["data_dir"]))
        assert config.get_data_path() == isolated_env["data_dir"]
        assert config.get_snapshot_path() == isolated_env["data_dir"] / "ledger.json"


class TestSettings:

    def test_missing_settings_empty(self, isolated_env):
        assert config.load_settings() == {}
        assert config.get_setting("data_dir", "dflt") == "dflt"

    def test_set_setting_persists_json(self, isolated_env):
        path = config.set_setting("data_dir", "/tmp/x")
        assert json.loads(path.read_text()) == {"data_dir": "/tmp/x"}


class TestProfile:

    def test_default_currencies(self, isolated_env):
        assert config.get_currencies() == ["ILS", "JOD"]

    def test_currencies_and_snapshot_from_profile(self, isolated_env):
        profile = {"ledger": {"currencies": ["USD", "EUR"], "snapshot_file": "book.json"}}
        (isolated_env["config_dir"] / "profile.yaml").write_text(yaml.dump(profile))

        assert config.get_currencies() == ["USD", "EUR"]
        assert config.get_snapshot_path().name == "book.json"

    def test_profile_required_but_missing(self, isolated_env):
        with pytest.raises(config.ProfileNotFoundError):
            config.load_profile(require_exists=True)

    def test_save_profile_round_trip(self, isolated_env):
        config.save_profile({"ledger": {"currencies": ["ILS"]}})
        assert config.get_profile_value("ledger.currencies") == ["ILS"]
        assert config.get_profile_value("ledger.missing", "x") == "x"


class TestOpenBook:

    def test_open_book_uses_configured_snapshot(self, isolated_env):
        config.set_setting("data_dir", str(isolated_env["data_dir"]))
        book = open_book(clock=lambda: "2023-06-01")
        book.add_account("Rent", ["A", "B"])

        snapshot = isolated_env["data_dir"] / "ledger.json"
        assert snapshot.exists()
        assert len(open_book().list_accounts()) == 1
        assert book.currencies == ["ILS", "JOD"]
