"""
Module: tests/unit/test_config_loader.py

What:
    Validate settings discovery, YAML parsing and schema validation in
    :mod:`imapsock.config.loader`.

Why:
    The connection trusts whatever the loader returns; malformed or unsafe
    settings (bad tag prefix, unusable attachments directory) must be rejected
    with a :class:`SettingsError` that names the file.

How:
    Write small YAML files into ``tmp_path`` and load them explicitly or via
    the environment variable, resetting the cache between loads.
"""

import pytest

from imapsock.config.loader import (
    get_settings,
    load_settings,
    parse_settings,
    reset_settings,
)
from imapsock.config.schema import ClientSettings
from imapsock.errors import ConfigLoadError, SettingsError


def test_env_path_is_used_by_default():
    settings = get_settings()
    assert settings.log_level == "ERROR"
    assert settings.unread_strategy == "unseen-flag"


def test_settings_are_cached(tmp_path, monkeypatch):
    first = get_settings()
    other = tmp_path / "other.yaml"
    other.write_text("log_level: DEBUG\n")
    monkeypatch.setenv("IMAPSOCK_CONFIG_PATH", str(other))
    assert get_settings() is first
    reset_settings()
    assert get_settings().log_level == "DEBUG"


def test_explicit_path_with_attachments_dir(tmp_path):
    target = tmp_path / "attachments"
    target.mkdir()
    path = tmp_path / "imapsock.yaml"
    path.write_text(f"attachments_dir: {target}\nstrict_responses: true\nlog_level: warning\n")
    settings = load_settings(path, reload=True)
    assert settings.attachments_dir == target
    assert settings.strict_responses
    assert settings.log_level == "WARN"


def test_missing_attachments_dir_is_rejected(tmp_path):
    path = tmp_path / "imapsock.yaml"
    path.write_text(f"attachments_dir: {tmp_path / 'missing'}\n")
    with pytest.raises(SettingsError) as excinfo:
        load_settings(path, reload=True)
    assert str(path) in str(excinfo.value)


def test_missing_explicit_path_raises(tmp_path):
    with pytest.raises(SettingsError):
        load_settings(tmp_path / "absent.yaml", reload=True)


def test_invalid_yaml_raises():
    with pytest.raises(ConfigLoadError):
        parse_settings("tag_prefix: [unclosed\n")


def test_top_level_must_be_mapping():
    with pytest.raises(SettingsError):
        parse_settings("- just\n- a list\n")


@pytest.mark.parametrize("prefix", ["a", "AB", "1", ""])
def test_tag_prefix_must_be_one_uppercase_letter(prefix):
    with pytest.raises(SettingsError):
        parse_settings(f"tag_prefix: '{prefix}'\n")


def test_unknown_keys_are_rejected():
    with pytest.raises(SettingsError):
        parse_settings("pipelining: true\n")


def test_defaults_when_no_file_exists(tmp_path, monkeypatch):
    monkeypatch.delenv("IMAPSOCK_CONFIG_PATH")
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("HOME", str(tmp_path))
    reset_settings()
    assert load_settings() == ClientSettings()


def test_empty_document_yields_defaults():
    assert parse_settings("") == ClientSettings()
