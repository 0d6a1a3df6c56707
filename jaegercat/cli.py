# Copyright 2025 jaegercat contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Command line entry point."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from typing import Any

from . import __version__
from .config import (
    DEFAULT_BINARY_THRIFT_PORT,
    DEFAULT_COMPACT_THRIFT_PORT,
    DEFAULT_UDP_BUFFER_SIZE,
    LogLevel,
    OutputFormat,
)
from .config_loader import load_settings
from .errors import JaegercatError
from .logging_utils import configure_logging, get_logger
from .sink import OutputSink
from .supervisor import AgentSupervisor

log = get_logger(__name__)


def build_parser() -> argparse.ArgumentParser:
    # Flags default to None so the config loader can tell "given" from "default"
    parser = argparse.ArgumentParser(
        prog="jaegercat",
        description="Print Jaeger agent UDP datagrams and answer sampling queries",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument(
        "--compact-thrift-port",
        type=int,
        help=f"UDP port for the compact-protocol listener (default: {DEFAULT_COMPACT_THRIFT_PORT})",
    )
    parser.add_argument(
        "--binary-thrift-port",
        type=int,
        help=f"UDP port for the binary-protocol listener (default: {DEFAULT_BINARY_THRIFT_PORT})",
    )
    parser.add_argument(
        "-f",
        "--format",
        choices=[item.value for item in OutputFormat],
        help=f"output format (default: {OutputFormat.JSON.value})",
    )
    parser.add_argument(
        "-b",
        "--udp-buffer-size",
        type=int,
        help=f"per-listener receive buffer size in bytes (default: {DEFAULT_UDP_BUFFER_SIZE})",
    )
    parser.add_argument(
        "--log-level",
        choices=[item.value for item in LogLevel],
        help=f"diagnostic log level (default: {LogLevel.INFO.value})",
    )
    parser.add_argument(
        "-S",
        "--sample-services",
        action="append",
        metavar="SERVICES",
        help="comma-delimited services granted the always-sample strategy; may repeat",
    )
    parser.add_argument("-c", "--config", help="YAML file with default settings")
    return parser


def parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def overrides_from_args(args: argparse.Namespace) -> dict[str, Any]:
    return {
        "compact_thrift_port": args.compact_thrift_port,
        "binary_thrift_port": args.binary_thrift_port,
        "format": args.format,
        "udp_buffer_size": args.udp_buffer_size,
        "log_level": args.log_level,
        "sample_services": args.sample_services,
    }


def main(argv: Sequence[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging()
    try:
        settings = load_settings(args.config, overrides_from_args(args))
        configure_logging(settings.log_level.value)
        supervisor = AgentSupervisor(settings, sink=OutputSink.stdout())
        return supervisor.run()
    except JaegercatError as e:
        log.error("Startup failed", **e.to_dict())
        print(f"jaegercat: error: {e.detail}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
