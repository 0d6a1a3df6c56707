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

"""Central configuration: immutable settings handed to every network unit."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

DEFAULT_COMPACT_THRIFT_PORT = 6831
DEFAULT_BINARY_THRIFT_PORT = 6832
DEFAULT_UDP_BUFFER_SIZE = 65000
DEFAULT_SAMPLING_HOST = "127.0.0.1"
DEFAULT_SAMPLING_PORT = 5778


class WireProtocol(str, Enum):
    """Thrift encoding used by a UDP listener."""

    COMPACT = "compact"
    BINARY = "binary"


class OutputFormat(str, Enum):
    RAW = "raw"
    JSON = "json"
    JSON_PRETTY = "json-pretty"


class LogLevel(str, Enum):
    DEBUG = "debug"
    INFO = "info"
    ERROR = "error"


@dataclass(frozen=True)
class ListenerConfig:
    port: int
    protocol: WireProtocol
    buffer_size: int


@dataclass(frozen=True)
class SamplingConfig:
    enabled_services: frozenset[str]
    host: str = DEFAULT_SAMPLING_HOST
    port: int = DEFAULT_SAMPLING_PORT


def split_services(value: str) -> list[str]:
    """Split a comma-delimited allow-list. Entries are kept verbatim."""
    if value == "":
        return []
    return value.split(",")


class AgentSettings(BaseModel):
    """Validated startup configuration.

    Built once by the CLI and never mutated; listeners and the sampling
    responder only receive the slices returned by :meth:`listeners` and
    :meth:`sampling`.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    compact_thrift_port: int = Field(default=DEFAULT_COMPACT_THRIFT_PORT, ge=0, le=65535)
    binary_thrift_port: int = Field(default=DEFAULT_BINARY_THRIFT_PORT, ge=0, le=65535)
    format: OutputFormat = OutputFormat.JSON
    udp_buffer_size: int = Field(default=DEFAULT_UDP_BUFFER_SIZE, gt=0)
    log_level: LogLevel = LogLevel.INFO
    sample_services: frozenset[str] = frozenset()
    sampling_host: str = DEFAULT_SAMPLING_HOST
    sampling_port: int = Field(default=DEFAULT_SAMPLING_PORT, ge=0, le=65535)

    @field_validator("sample_services", mode="before")
    @classmethod
    def _split_sample_services(cls, value: Any) -> Any:
        if value is None:
            return frozenset()
        if isinstance(value, str):
            return frozenset(split_services(value))
        if isinstance(value, (list, tuple, set, frozenset)):
            services: set[str] = set()
            for item in value:
                services.update(split_services(item) if isinstance(item, str) else [item])
            return frozenset(services)
        return value

    def listeners(self) -> tuple[ListenerConfig, ...]:
        """One listener per wire protocol, compact first."""
        return (
            ListenerConfig(self.compact_thrift_port, WireProtocol.COMPACT, self.udp_buffer_size),
            ListenerConfig(self.binary_thrift_port, WireProtocol.BINARY, self.udp_buffer_size),
        )

    def sampling(self) -> SamplingConfig:
        return SamplingConfig(
            enabled_services=self.sample_services,
            host=self.sampling_host,
            port=self.sampling_port,
        )
