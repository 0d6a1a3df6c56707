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

"""Decoded Jaeger batch models.

Field names serialize with the camelCase names of the Jaeger IDL
(``traceIdLow``, ``operationName``, ``serviceName``...).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class _WireEnum(str, Enum):
    @classmethod
    def from_wire(cls, value: int) -> _WireEnum:
        """Map a Thrift enum ordinal to its member."""
        members = list(cls)
        if not isinstance(value, int) or not 0 <= value < len(members):
            raise ValueError(f"unknown {cls.__name__} value: {value!r}")
        return members[value]


class TagType(_WireEnum):
    STRING = "STRING"
    DOUBLE = "DOUBLE"
    BOOL = "BOOL"
    LONG = "LONG"
    BINARY = "BINARY"


class SpanRefType(_WireEnum):
    CHILD_OF = "CHILD_OF"
    FOLLOWS_FROM = "FOLLOWS_FROM"


class JaegerModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        ser_json_bytes="base64",
    )


class Tag(JaegerModel):
    key: str
    v_type: TagType
    v_str: str | None = None
    v_double: float | None = None
    v_bool: bool | None = None
    v_long: int | None = None
    v_binary: bytes | None = None


class Log(JaegerModel):
    timestamp: int
    fields: list[Tag]


class SpanRef(JaegerModel):
    ref_type: SpanRefType
    trace_id_low: int
    trace_id_high: int
    span_id: int


class Span(JaegerModel):
    trace_id_low: int
    trace_id_high: int
    span_id: int
    parent_span_id: int
    operation_name: str
    references: list[SpanRef] | None = None
    flags: int
    start_time: int
    duration: int
    tags: list[Tag] | None = None
    logs: list[Log] | None = None


class Process(JaegerModel):
    service_name: str
    tags: list[Tag] | None = None


class ClientStats(JaegerModel):
    full_queue_dropped_spans: int
    too_large_dropped_spans: int
    failed_to_emit_spans: int


class Batch(JaegerModel):
    process: Process
    spans: list[Span]
    seq_no: int | None = None
    stats: ClientStats | None = None


class EmitBatchNotification(JaegerModel):
    """One decoded ``Agent.emitBatch`` call."""

    batch: Batch

    @property
    def service_name(self) -> str:
        return self.batch.process.service_name

    def to_json(self, indent: int | None = None) -> str:
        return self.model_dump_json(by_alias=True, exclude_none=True, indent=indent)
