"""Tests for the command line entry point."""

import socket

import pytest

from jaegercat import __version__, cli


def test_parser_leaves_unset_flags_empty():
    args = cli.parse_args([])

    assert cli.overrides_from_args(args) == {
        "compact_thrift_port": None,
        "binary_thrift_port": None,
        "format": None,
        "udp_buffer_size": None,
        "log_level": None,
        "sample_services": None,
    }
    assert args.config is None


def test_parser_reads_every_flag():
    args = cli.parse_args(
        [
            "--compact-thrift-port", "7831",
            "--binary-thrift-port", "7832",
            "-f", "json-pretty",
            "-b", "1024",
            "--log-level", "debug",
            "-S", "checkout,billing",
            "--sample-services", "cart",
            "-c", "agent.yaml",
        ]
    )

    assert cli.overrides_from_args(args) == {
        "compact_thrift_port": 7831,
        "binary_thrift_port": 7832,
        "format": "json-pretty",
        "udp_buffer_size": 1024,
        "log_level": "debug",
        "sample_services": ["checkout,billing", "cart"],
    }
    assert args.config == "agent.yaml"


@pytest.mark.parametrize(
    "argv",
    [
        ["--format", "xml"],
        ["--log-level", "warning"],
        ["--compact-thrift-port", "abc"],
        ["-b", "1.5"],
    ],
)
def test_parser_rejects_invalid_values(argv, capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.parse_args(argv)

    assert excinfo.value.code != 0
    assert "error" in capsys.readouterr().err


def test_version(capsys):
    with pytest.raises(SystemExit) as excinfo:
        cli.parse_args(["--version"])

    assert excinfo.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_out_of_range_port_exits_before_startup(capsys, monkeypatch):
    monkeypatch.setattr(cli.AgentSupervisor, "run", lambda self: pytest.fail("must not start"))

    assert cli.main(["--compact-thrift-port", "70000"]) == 1
    assert "jaegercat: error: compact_thrift_port" in capsys.readouterr().err


def test_port_in_use_is_fatal(capsys, monkeypatch):
    monkeypatch.setenv("JAEGERCAT_SAMPLING_HOST", "127.0.0.1")
    monkeypatch.setenv("JAEGERCAT_SAMPLING_PORT", "0")
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as taken:
        taken.bind(("0.0.0.0", 0))
        port = taken.getsockname()[1]

        status = cli.main(["--compact-thrift-port", str(port), "--binary-thrift-port", "0"])

    assert status == 1
    assert f"cannot bind UDP 0.0.0.0:{port}" in capsys.readouterr().err


def test_main_runs_supervisor_with_loaded_settings(monkeypatch, tmp_path):
    captured = {}

    def fake_run(self):
        captured["settings"] = self.settings
        return 0

    monkeypatch.setattr(cli.AgentSupervisor, "run", fake_run)
    config_file = tmp_path / "agent.yaml"
    config_file.write_text("format: raw\nudp_buffer_size: 2048\n", encoding="utf-8")

    assert cli.main(["-c", str(config_file), "-S", "checkout", "--log-level", "error"]) == 0
    settings = captured["settings"]
    assert settings.format.value == "raw"
    assert settings.udp_buffer_size == 2048
    assert settings.sample_services == frozenset({"checkout"})
    assert settings.log_level.value == "error"
