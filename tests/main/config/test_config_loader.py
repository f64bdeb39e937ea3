"""
Tests for ConfigLoader — persistence configuration loading and validation
"""

import pytest

import src.main.config.config_loader as config_module
from src.main.config.config_loader import ConfigLoader, PersistConfig
from src.state.domain.migrations.wallet_migrations import CURRENT_VERSION
from src.state.infrastructure.persistence.exceptions import PersistConfigError

_ENV_KEYS = (
    "SQRL_STATE_DIR",
    "SQRL_STATE_BACKEND",
    "SQRL_STATE_DEBUG",
    "SQRL_STATE_RESET_ON_FAILURE",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch, tmp_path):
    """Isolate tests from the developer's environment and .env file."""
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.setattr(config_module, "PROJECT_ROOT", tmp_path)
    monkeypatch.setattr(config_module, "load_dotenv", lambda *a, **kw: False)


class TestPersistConfigLoading:

    def test_defaults_when_file_missing(self, tmp_path):
        config = ConfigLoader.load_persist_config(str(tmp_path / "missing.toml"))
        assert config == PersistConfig()
        assert config.key == "Sqrl-config"
        assert config.version == CURRENT_VERSION
        assert config.whitelist == ("settings", "wallet", "wallets")

    def test_load_toml_persist_section(self, tmp_path):
        path = tmp_path / "persist.toml"
        path.write_text(
            '[persist]\n'
            'key = "Sqrl-test"\n'
            'version = 8\n'
            'whitelist = ["settings"]\n'
            'backend = "sqlite"\n'
            'debug = true\n'
            'theme = "dark"\n',
            encoding="utf-8",
        )
        config = ConfigLoader.load_persist_config(str(path))

        assert config.key == "Sqrl-test"
        assert config.whitelist == ("settings",)
        assert config.backend == "sqlite"
        assert config.debug is True
        assert config.extra == {"theme": "dark"}

    def test_relative_path_resolved_against_project_root(self, tmp_path):
        (tmp_path / "config").mkdir()
        (tmp_path / "config" / "persist.toml").write_text(
            '[persist]\nkey = "from-root"\n', encoding="utf-8"
        )
        assert ConfigLoader.load_persist_config().key == "from-root"

    def test_load_legacy_yaml(self, tmp_path):
        path = tmp_path / "persist.yaml"
        path.write_text(
            "persist:\n  key: legacy\n  blacklist: [session]\n  reset_on_failure: true\n",
            encoding="utf-8",
        )
        config = ConfigLoader.load_persist_config(str(path))
        assert config.key == "legacy"
        assert config.blacklist == ("session",)
        assert config.reset_on_failure is True

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SQRL_STATE_DIR", "/var/lib/sqrl")
        monkeypatch.setenv("SQRL_STATE_BACKEND", " SQLite ")
        monkeypatch.setenv("SQRL_STATE_DEBUG", "yes")
        monkeypatch.setenv("SQRL_STATE_RESET_ON_FAILURE", "0")

        config = ConfigLoader.load_persist_config(str(tmp_path / "missing.toml"))

        assert config.storage_dir == "/var/lib/sqrl"
        assert config.backend == "sqlite"
        assert config.debug is True
        assert config.reset_on_failure is False

    def test_env_ignored_when_disabled(self, tmp_path, monkeypatch):
        monkeypatch.setenv("SQRL_STATE_BACKEND", "sqlite")
        config = ConfigLoader.load_persist_config(str(tmp_path / "missing.toml"), use_env=False)
        assert config.backend == "file"

    def test_storage_path_relative_to_project_root(self, tmp_path):
        assert PersistConfig(storage_dir="data").storage_path == tmp_path / "data"
        assert PersistConfig(storage_dir=str(tmp_path / "abs")).storage_path == tmp_path / "abs"


class TestPersistConfigValidation:

    @pytest.mark.parametrize("overrides", [
        {"key": ""},
        {"version": -1},
        {"version": True},
        {"floor_version": 9},
        {"backend": "redis"},
        {"throttle_seconds": -0.5},
        {"whitelist": ()},
    ])
    def test_invalid_config_rejected(self, overrides):
        with pytest.raises(PersistConfigError):
            ConfigLoader.validate_persist_config(PersistConfig(**overrides))

    def test_default_config_is_valid(self):
        assert ConfigLoader.validate_persist_config(PersistConfig()) is True

    def test_section_must_be_table(self):
        with pytest.raises(PersistConfigError):
            ConfigLoader.build_persist_config(["not", "a", "table"])

    def test_invalid_file_values_rejected_on_load(self, tmp_path):
        path = tmp_path / "persist.toml"
        path.write_text('[persist]\nbackend = "cloud"\n', encoding="utf-8")
        with pytest.raises(PersistConfigError):
            ConfigLoader.load_persist_config(str(path))
