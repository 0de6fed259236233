"""
Tests for config loading.
"""

import pytest

from pulumipus import config


@pytest.fixture(autouse=True)
def fresh_config():
    config.reset_config()
    yield
    config.reset_config()


def test_env_vars_resolved_and_defaults_filled(tmp_path, monkeypatch):
    monkeypatch.setenv("PULUMIPUS_TEST_API", "https://api.example.test")
    path = tmp_path / "config.yaml"
    path.write_text(
        "api:\n"
        "  url: ${PULUMIPUS_TEST_API}\n"
        "wiretap:\n"
        "  enabled: false\n"
    )

    cfg = config.load_config(path)
    assert cfg["api"]["url"] == "https://api.example.test"
    assert cfg["api"]["timeout"] == 120
    assert cfg["wiretap"]["enabled"] is False
    assert cfg["console"]["url"] == "https://app.pulumi.com"
    assert cfg["participant"]["id"] == "pulumi.pulumipus"


def test_config_is_cached(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("api:\n  url: https://one\n")
    assert config.load_config(path)["api"]["url"] == "https://one"

    path.write_text("api:\n  url: https://two\n")
    assert config.get_config()["api"]["url"] == "https://one"


def test_env_override_path(tmp_path, monkeypatch):
    path = tmp_path / "other.yaml"
    path.write_text("console:\n  url: https://console.test\n")
    monkeypatch.setenv("PULUMIPUS_CONFIG", str(path))
    assert config.get_config()["console"]["url"] == "https://console.test"


def test_missing_config_raises(tmp_path):
    with pytest.raises(FileNotFoundError):
        config.load_config(tmp_path / "missing.yaml")


def test_unknown_env_var_resolves_empty(tmp_path, monkeypatch):
    monkeypatch.delenv("PULUMIPUS_NOT_SET", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text("logging:\n  file: ${PULUMIPUS_NOT_SET}\n")
    assert config.load_config(path)["logging"]["file"] == ""
