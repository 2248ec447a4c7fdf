"""
Tests for YAML settings loading and validation
"""
import pytest
import yaml

from hymnal import settings as settings_module
from hymnal.constants import DEFAULT_SETTINGS
from hymnal.settings import load_settings, merge_settings, reload_conf, save_settings_section, verify_settings


@pytest.fixture(autouse=True)
def reset_cached_settings(monkeypatch):
    monkeypatch.setattr(settings_module, "_cached_settings", None)


@pytest.fixture
def config_file(tmp_path):
    return str(tmp_path / "config" / "settings.yaml")


class TestMergeSettings:
    def test_defaults(self):
        merged = merge_settings(None)
        assert merged == DEFAULT_SETTINGS
        assert merged is not DEFAULT_SETTINGS

    def test_section_values_merged(self):
        merged = merge_settings({"cache": {"ttl_hours": 6}, "extra": 1})
        assert merged["cache"]["ttl_hours"] == 6
        assert merged["cache"]["premium_ttl_minutes"] == DEFAULT_SETTINGS["cache"]["premium_ttl_minutes"]
        assert merged["extra"] == 1
        assert DEFAULT_SETTINGS["cache"]["ttl_hours"] == 24


class TestLoadSettings:
    def test_missing_file_is_created_with_defaults(self, config_file):
        loaded = load_settings(config_file=config_file)
        assert loaded == DEFAULT_SETTINGS
        with open(config_file) as f:
            assert yaml.safe_load(f) == DEFAULT_SETTINGS

    def test_file_values_override_defaults(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("remote:\n  backend: firebase\n  database_url: https://lpmi.example.org\n")
        loaded = load_settings(config_file=str(path))
        assert loaded["remote"]["backend"] == "firebase"
        assert loaded["local_store"] == DEFAULT_SETTINGS["local_store"]

    def test_cached_until_reload(self, tmp_path):
        path = tmp_path / "settings.yaml"
        path.write_text("cache:\n  ttl_hours: 2\n")
        assert load_settings(config_file=str(path))["cache"]["ttl_hours"] == 2

        path.write_text("cache:\n  ttl_hours: 3\n")
        assert load_settings(config_file=str(path))["cache"]["ttl_hours"] == 2
        assert reload_conf(config_file=str(path))["cache"]["ttl_hours"] == 3


class TestVerifySettings:
    @pytest.mark.parametrize(
        "section,data",
        [
            ("remote", {"backend": "memory"}),
            ("remote", {"backend": "firebase", "database_url": "https://x.example.org"}),
            ("local_store", {"backend": "redis"}),
            ("cache", {"ttl_hours": 12}),
            ("connectivity", {"online_interval_seconds": 300, "offline_interval_seconds": 30}),
        ],
    )
    def test_valid(self, section, data):
        assert verify_settings(section, data) == (True, [])

    @pytest.mark.parametrize(
        "section,data,path",
        [
            ("remote", {"backend": "ftp"}, "remote/backend"),
            ("remote", {"backend": "firebase"}, "remote/database_url"),
            ("local_store", {"backend": "memcached"}, "local_store/backend"),
            ("cache", {"ttl_hours": 0}, "cache/ttl_hours"),
            ("cache", {"role_ttl_seconds": "soon"}, "cache/role_ttl_seconds"),
            ("connectivity", {"online_interval_seconds": 10, "offline_interval_seconds": 60}, "connectivity/offline_interval_seconds"),
        ],
    )
    def test_invalid(self, section, data, path):
        success, errors = verify_settings(section, data)
        assert not success
        assert errors[0]["path"] == path

    def test_save_section(self, config_file):
        success, _ = save_settings_section("cache", {"ttl_hours": 48}, config_file=config_file)
        assert success
        assert load_settings(config_file=config_file)["cache"]["ttl_hours"] == 48

    def test_save_rejects_invalid(self, config_file):
        success, errors = save_settings_section("local_store", {"backend": "memcached"}, config_file=config_file)
        assert not success
        assert errors
