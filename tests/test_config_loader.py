"""Tests for settings validation and configuration precedence."""

import pytest

from jaegercat.config import AgentSettings, ListenerConfig, LogLevel, OutputFormat, WireProtocol
from jaegercat.config_loader import load_settings
from jaegercat.errors import ConfigurationError


def test_defaults():
    settings = load_settings(environ={})

    assert settings.compact_thrift_port == 6831
    assert settings.binary_thrift_port == 6832
    assert settings.format is OutputFormat.JSON
    assert settings.udp_buffer_size == 65000
    assert settings.log_level is LogLevel.INFO
    assert settings.sample_services == frozenset()
    assert (settings.sampling_host, settings.sampling_port) == ("127.0.0.1", 5778)


def test_listeners_are_one_per_protocol():
    settings = AgentSettings(compact_thrift_port=7000, binary_thrift_port=7001, udp_buffer_size=512)

    assert settings.listeners() == (
        ListenerConfig(7000, WireProtocol.COMPACT, 512),
        ListenerConfig(7001, WireProtocol.BINARY, 512),
    )


def test_sample_services_are_split_verbatim():
    settings = load_settings(overrides={"sample_services": ["checkout,billing", "Cart"]}, environ={})

    assert settings.sampling().enabled_services == frozenset({"checkout", "billing", "Cart"})


def test_settings_are_immutable():
    settings = AgentSettings()

    with pytest.raises(Exception):
        settings.udp_buffer_size = 1  # type: ignore[misc]


def test_precedence_cli_over_env_over_file(tmp_path):
    config_file = tmp_path / "jaegercat.yaml"
    config_file.write_text(
        "compact_thrift_port: 7100\nbinary_thrift_port: 7101\nformat: raw\nsample_services: [a, b]\n",
        encoding="utf-8",
    )
    environ = {"JAEGERCAT_BINARY_THRIFT_PORT": "7201", "JAEGERCAT_FORMAT": "json-pretty"}

    settings = load_settings(config_file, overrides={"format": "json", "log_level": None}, environ=environ)

    assert settings.compact_thrift_port == 7100
    assert settings.binary_thrift_port == 7201
    assert settings.format is OutputFormat.JSON
    assert settings.log_level is LogLevel.INFO
    assert settings.sample_services == frozenset({"a", "b"})


def test_yaml_substitutes_environment_references(tmp_path):
    config_file = tmp_path / "jaegercat.yaml"
    config_file.write_text(
        "sampling_port: ${SAMPLING_PORT:5999}\nsample_services: ${SERVICES}\n",
        encoding="utf-8",
    )

    settings = load_settings(config_file, environ={"SERVICES": "checkout,billing"})

    assert settings.sampling_port == 5999
    assert settings.sample_services == frozenset({"checkout", "billing"})


def test_env_sample_services():
    settings = load_settings(environ={"JAEGERCAT_SAMPLE_SERVICES": "checkout"})

    assert settings.sample_services == frozenset({"checkout"})


@pytest.mark.parametrize(
    "overrides,field",
    [
        ({"compact_thrift_port": 70000}, "compact_thrift_port"),
        ({"binary_thrift_port": -1}, "binary_thrift_port"),
        ({"udp_buffer_size": 0}, "udp_buffer_size"),
        ({"format": "xml"}, "format"),
        ({"log_level": "warning"}, "log_level"),
    ],
)
def test_invalid_values_raise_configuration_error(overrides, field):
    with pytest.raises(ConfigurationError, match=field):
        load_settings(overrides=overrides, environ={})


def test_invalid_env_value():
    with pytest.raises(ConfigurationError, match="udp_buffer_size"):
        load_settings(environ={"JAEGERCAT_UDP_BUFFER_SIZE": "lots"})


def test_unknown_file_key(tmp_path):
    config_file = tmp_path / "jaegercat.yaml"
    config_file.write_text("udp_port: 1\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="udp_port"):
        load_settings(config_file, environ={})


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="cannot read"):
        load_settings(tmp_path / "missing.yaml", environ={})


def test_non_mapping_file(tmp_path):
    config_file = tmp_path / "jaegercat.yaml"
    config_file.write_text("- 1\n- 2\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="mapping"):
        load_settings(config_file, environ={})


def test_invalid_yaml(tmp_path):
    config_file = tmp_path / "jaegercat.yaml"
    config_file.write_text("format: [raw\n", encoding="utf-8")

    with pytest.raises(ConfigurationError, match="invalid YAML"):
        load_settings(config_file, environ={})
