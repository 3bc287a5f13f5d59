import logging
import os
import sys
from datetime import timedelta

import pytest

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from pico.config.provider import Config, Repo, parse_duration
from pico.logging_config import VaultRequestFilter, get_logging_config


@pytest.mark.parametrize(
    "value,expected",
    [
        ("10s", timedelta(seconds=10)),
        ("1m", timedelta(minutes=1)),
        ("1m30s", timedelta(seconds=90)),
        ("24h", timedelta(hours=24)),
        ("250ms", timedelta(milliseconds=250)),
        ("1.5h", timedelta(minutes=90)),
        ("0", timedelta(0)),
        ("45", timedelta(seconds=45)),
        (30, timedelta(seconds=30)),
    ],
)
def test_parse_duration(value, expected):
    """Test Go-style durations and bare seconds"""
    assert parse_duration(value) == expected


@pytest.mark.parametrize("value", ["", "ten seconds", "10x", "s10", "1m 30s"])
def test_parse_duration_rejects_garbage(value):
    """Test that invalid durations raise ValueError"""
    with pytest.raises(ValueError):
        parse_duration(value)


@pytest.mark.parametrize("value", ["inf", "-inf", "nan", "1e20", "99999999999h", float("inf")])
def test_parse_duration_rejects_out_of_range(value):
    """Test that infinite and oversized durations raise ValueError, not OverflowError"""
    with pytest.raises(ValueError, match="invalid duration"):
        parse_duration(value)


def test_parse_duration_passes_timedelta_through():
    """Test that timedeltas are returned unchanged"""
    interval = timedelta(minutes=5)
    assert parse_duration(interval) is interval


def test_config_defaults():
    """Test default values of the configuration"""
    config = Config(target=Repo(url="https://git.example.com/t.git"), hostname="web-1")

    assert config.directory == "./cache/"
    assert config.check_interval == timedelta(minutes=1)
    assert config.vault_path == "/secret"
    assert config.vault_renewal == timedelta(hours=24)
    assert config.vault_config == "pico"
    assert config.bus_capacity == 100
    assert config.uses_vault is False


def test_config_requires_target_url():
    """Test that an empty repository URL is rejected"""
    with pytest.raises(ValueError, match="URL"):
        Config(target=Repo(url=""), hostname="web-1")


def test_config_requires_positive_interval():
    """Test that a zero check interval is rejected"""
    with pytest.raises(ValueError, match="check interval"):
        Config(target=Repo(url="https://x"), hostname="h", check_interval=timedelta(0))


def test_config_requires_vault_token_with_address():
    """Test that a vault address without a token is rejected"""
    with pytest.raises(ValueError, match="vault token"):
        Config(target=Repo(url="https://x"), hostname="h", vault_address="http://vault:8200")


def test_config_rejects_zero_bus_capacity():
    """Test that the bus needs room for at least one task"""
    with pytest.raises(ValueError, match="bus capacity"):
        Config(target=Repo(url="https://x"), hostname="h", bus_capacity=0)


def test_secrets_are_not_in_repr():
    """Test that credentials never show up in logged configuration"""
    config = Config(
        target=Repo(url="https://x", user="deploy", password="hunter2"),
        hostname="h",
        vault_address="http://vault:8200",
        vault_token="s.supersecret",
    )

    text = repr(config)
    assert "hunter2" not in text
    assert "s.supersecret" not in text
    assert "deploy" in text


def test_repo_credentials_need_both_halves():
    """Test that a username alone is not a credential"""
    assert Repo(url="https://x", user="deploy", password="pw").has_credentials
    assert not Repo(url="https://x", user="deploy").has_credentials
    assert not Repo(url="https://x", password="pw").has_credentials


def test_vault_request_filter_drops_api_lines():
    """Test that per-request httpx lines for the Vault API are filtered"""
    log_filter = VaultRequestFilter()

    def record(name, level, message):
        return logging.LogRecord(name, level, __file__, 1, message, None, None)

    assert not log_filter.filter(
        record("httpx", logging.INFO, 'HTTP Request: GET http://vault/v1/secret/data/pico "HTTP/1.1 200 OK"')
    )
    assert log_filter.filter(
        record("httpx", logging.WARNING, "HTTP Request: GET http://vault/v1/secret/data/pico failed")
    )
    assert log_filter.filter(record("pico.main", logging.INFO, "/v1/ mentioned elsewhere"))


def test_logging_config_levels():
    """Test the logging configuration at a given level"""
    config = get_logging_config("debug")

    assert config["loggers"]["pico"]["level"] == "DEBUG"
    assert config["loggers"]["pico.task"]["handlers"] == ["task"]
    assert config["handlers"]["http"]["filters"] == ["vault_request_filter"]
    assert config["root"]["level"] == "WARNING"
