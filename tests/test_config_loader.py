import pytest

from config.loader import load_runtime_config, load_settings
from namemc.errors import InvalidArgument


def test_defaults(tmp_path):
    settings = load_settings(tmp_path)
    assert settings.api_base_url == "https://api.namemc.test"
    assert settings.profile_ttl_seconds == 300
    assert settings.server_ttl_seconds == 600
    assert settings.max_concurrency is None
    assert settings.max_entries == 100
    assert settings.coalesce_fetches is False


def test_env_overrides(tmp_path, monkeypatch):
    monkeypatch.setenv("NAMEMC_PROFILE_TTL", "1.5")
    monkeypatch.setenv("NAMEMC_SERVER_TTL", "90")
    monkeypatch.setenv("NAMEMC_MAX_CONCURRENCY", "4")
    monkeypatch.setenv("NAMEMC_MAX_ENTRIES", "none")
    monkeypatch.setenv("NAMEMC_COALESCE", "yes")

    settings = load_settings(tmp_path)

    assert settings.profile_ttl_seconds == 1.5
    assert settings.server_ttl_seconds == 90
    assert settings.max_concurrency == 4
    assert settings.max_entries is None
    assert settings.coalesce_fetches is True


def test_dotenv_file_is_loaded(tmp_path, monkeypatch):
    # register the variable with monkeypatch so whatever dotenv sets is undone
    monkeypatch.setenv("NAMEMC_SERVER_TTL", "0")
    monkeypatch.delenv("NAMEMC_SERVER_TTL")
    (tmp_path / ".env").write_text("NAMEMC_SERVER_TTL=42\n", encoding="utf-8")

    assert load_settings(tmp_path).server_ttl_seconds == 42


@pytest.mark.parametrize("name", ["NAMEMC_PROFILE_TTL", "NAMEMC_MAX_ENTRIES"])
def test_garbage_numbers_rejected(tmp_path, monkeypatch, name):
    monkeypatch.setenv(name, "five")
    with pytest.raises(InvalidArgument):
        load_settings(tmp_path)


def test_runtime_config_missing_is_empty(tmp_path):
    assert load_runtime_config(tmp_path) == {}


def test_runtime_config_yaml(tmp_path):
    (tmp_path / "config").mkdir()
    (tmp_path / "config" / "config.yaml").write_text("http:\n  maxConnections: 8\n", encoding="utf-8")
    assert load_runtime_config(tmp_path) == {"http": {"maxConnections": 8}}
