"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from wacore.auth.base import ValidationError
from wacore.config import Config


def test_defaults():
    config = Config()
    assert config.auth.qr_auth is True
    assert config.auth.qr_timeout == 60.0
    assert config.connection.retry_count == 5
    assert config.connection.retry_delay == 5.0
    assert config.connection.keep_alive_interval == 30.0
    assert config.features.webhooks is False
    config.validate()


def test_missing_file_gives_defaults(tmp_path):
    config = Config.load(tmp_path / "absent.toml")
    assert config.config_path == tmp_path / "absent.toml"
    assert config.connection.retry_count == 5


def test_from_dict():
    config = Config.from_dict({
        "log_level": "debug",
        "auth": {"pairing_code": True, "phone_number": "+40 712 345 678", "session_path": "/tmp/s"},
        "connection": {"retry_count": 2, "keep_alive": False, "browser_name": "bot"},
        "features": {"groups": False},
        "webhooks": {"url": "https://example.com/hook", "events": ["message.new"], "secret": "s"},
    })
    assert config.log_level == "DEBUG"
    assert config.auth.pairing_code is True
    assert config.auth.session_path == Path("/tmp/s")
    assert config.connection.retry_count == 2
    assert config.connection.keep_alive is False
    assert config.connection.browser_name == "bot"
    assert config.features.groups is False
    assert config.features.messaging is True
    assert config.webhooks.events == ["message.new"]
    config.validate()


def test_load_toml(tmp_path):
    pytest.importorskip("toml")
    path = tmp_path / "wacore.toml"
    path.write_text(
        'log_level = "WARNING"\n'
        "[connection]\n"
        "retry_delay = 2.5\n"
        "[webhooks]\n"
        'url = "https://example.com/hook"\n'
    )
    config = Config.load(path)
    assert config.log_level == "WARNING"
    assert config.connection.retry_delay == 2.5
    assert config.webhooks.url == "https://example.com/hook"


def test_invalid_toml(tmp_path):
    pytest.importorskip("toml")
    path = tmp_path / "wacore.toml"
    path.write_text("this is = = not toml")
    with pytest.raises(ValueError):
        Config.load(path)


@pytest.mark.parametrize("changes", [
    {"auth": {"qr_auth": False, "pairing_code": False}},
    {"auth": {"qr_timeout": 0}},
    {"auth": {"pairing_timeout": -1}},
    {"connection": {"retry_count": -1}},
    {"connection": {"keep_alive_interval": 0}},
    {"connection": {"url": "http://example.com"}},
    {"features": {"webhooks": True}},
    {"log_level": "LOUD"},
])
def test_validate_rejects(changes):
    with pytest.raises(ValueError):
        Config.from_dict(changes).validate()


def test_validate_rejects_bad_phone():
    config = Config.from_dict({"auth": {"pairing_code": True, "phone_number": "12345"}})
    with pytest.raises(ValidationError):
        config.validate()
