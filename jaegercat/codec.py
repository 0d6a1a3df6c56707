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

"""
Thrift codec for Jaeger agent datagrams.

The Jaeger IDL is loaded at import time with thriftpy2; :func:`decode` reads
one ``Agent.emitBatch`` message with the requested wire protocol and returns
it as an :class:`EmitBatchNotification`.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import thriftpy2
from pydantic import ValidationError
from thriftpy2.protocol.binary import TBinaryProtocol
from thriftpy2.protocol.compact import TCompactProtocol
from thriftpy2.thrift import TMessageType
from thriftpy2.transport.memory import TMemoryBuffer

from .config import WireProtocol
from .errors import DecodeError
from .models import (
    Batch,
    ClientStats,
    EmitBatchNotification,
    Log,
    Process,
    Span,
    SpanRef,
    SpanRefType,
    Tag,
    TagType,
)

IDL_DIR = Path(__file__).parent / "idl"

jaeger_thrift = thriftpy2.load(str(IDL_DIR / "jaeger.thrift"), module_name="jaeger_thrift")
agent_thrift = thriftpy2.load(
    str(IDL_DIR / "agent.thrift"),
    module_name="agent_thrift",
    include_dirs=[str(IDL_DIR)],
)

EMIT_BATCH = "emitBatch"
_ACCEPTED_MESSAGE_TYPES = (TMessageType.CALL, TMessageType.ONEWAY)


# Pure-Python protocol and buffer classes only: the cython variants read past
# the end of a short datagram instead of raising.
def _protocol(transport: TMemoryBuffer, protocol: WireProtocol) -> Any:
    if protocol is WireProtocol.COMPACT:
        return TCompactProtocol(transport)
    if protocol is WireProtocol.BINARY:
        return TBinaryProtocol(transport)
    raise ValueError(f"unsupported wire protocol: {protocol!r}")


def decode(data: bytes, protocol: WireProtocol) -> EmitBatchNotification:
    """Decode one agent datagram.

    Raises:
        DecodeError: the bytes are not a well-formed ``emitBatch`` message
            for ``protocol``
    """
    proto = _protocol(TMemoryBuffer(bytes(data)), protocol)
    try:
        name, message_type, _seqid = proto.read_message_begin()
    except Exception as e:  # noqa: BLE001 - any parser failure means malformed input
        raise DecodeError(f"cannot read {protocol.value} message header: {e!r}") from e

    if name != EMIT_BATCH:
        raise DecodeError(f"unknown method: {name!r}")
    if message_type not in _ACCEPTED_MESSAGE_TYPES:
        raise DecodeError(f"unexpected message type {message_type} for {EMIT_BATCH}")

    args = agent_thrift.Agent.emitBatch_args()
    try:
        proto.read_struct(args)
        proto.read_message_end()
    except Exception as e:  # noqa: BLE001
        raise DecodeError(f"malformed {EMIT_BATCH} arguments: {e!r}") from e

    if args.batch is None:
        raise DecodeError(f"{EMIT_BATCH} call without a batch")
    try:
        return EmitBatchNotification(batch=_batch(args.batch))
    except (ValidationError, ValueError, TypeError, AttributeError) as e:
        raise DecodeError(f"invalid batch: {e}") from e


def _tags(raw: list[Any] | None) -> list[Tag] | None:
    if raw is None:
        return None
    return [
        Tag(
            key=tag.key,
            v_type=TagType.from_wire(tag.vType),
            v_str=tag.vStr,
            v_double=tag.vDouble,
            v_bool=tag.vBool,
            v_long=tag.vLong,
            v_binary=tag.vBinary,
        )
        for tag in raw
    ]


def _span(raw: Any) -> Span:
    references = None
    if raw.references is not None:
        references = [
            SpanRef(
                ref_type=SpanRefType.from_wire(ref.refType),
                trace_id_low=ref.traceIdLow,
                trace_id_high=ref.traceIdHigh,
                span_id=ref.spanId,
            )
            for ref in raw.references
        ]
    logs = None
    if raw.logs is not None:
        logs = [Log(timestamp=log.timestamp, fields=_tags(log.fields)) for log in raw.logs]
    return Span(
        trace_id_low=raw.traceIdLow,
        trace_id_high=raw.traceIdHigh,
        span_id=raw.spanId,
        parent_span_id=raw.parentSpanId,
        operation_name=raw.operationName,
        references=references,
        flags=raw.flags,
        start_time=raw.startTime,
        duration=raw.duration,
        tags=_tags(raw.tags),
        logs=logs,
    )


def _batch(raw: Any) -> Batch:
    if raw.process is None:
        raise ValueError("batch without process")
    if raw.spans is None:
        raise ValueError("batch without spans")
    stats = None
    if raw.stats is not None:
        stats = ClientStats(
            full_queue_dropped_spans=raw.stats.fullQueueDroppedSpans,
            too_large_dropped_spans=raw.stats.tooLargeDroppedSpans,
            failed_to_emit_spans=raw.stats.failedToEmitSpans,
        )
    return Batch(
        process=Process(service_name=raw.process.serviceName, tags=_tags(raw.process.tags)),
        spans=[_span(span) for span in raw.spans],
        seq_no=raw.seqNo,
        stats=stats,
    )


# Encoding is the inverse of decode; jaegercat only uses it to build test
# datagrams and to replay captured batches.


def _to_thrift_tags(tags: list[Tag] | None) -> list[Any] | None:
    if tags is None:
        return None
    return [
        jaeger_thrift.Tag(
            key=tag.key,
            vType=list(TagType).index(tag.v_type),
            vStr=tag.v_str,
            vDouble=tag.v_double,
            vBool=tag.v_bool,
            vLong=tag.v_long,
            vBinary=tag.v_binary,
        )
        for tag in tags
    ]


def _to_thrift_batch(batch: Batch) -> Any:
    spans = []
    for span in batch.spans:
        references = None
        if span.references is not None:
            references = [
                jaeger_thrift.SpanRef(
                    refType=list(SpanRefType).index(ref.ref_type),
                    traceIdLow=ref.trace_id_low,
                    traceIdHigh=ref.trace_id_high,
                    spanId=ref.span_id,
                )
                for ref in span.references
            ]
        logs = None
        if span.logs is not None:
            logs = [jaeger_thrift.Log(timestamp=log.timestamp, fields=_to_thrift_tags(log.fields)) for log in span.logs]
        spans.append(
            jaeger_thrift.Span(
                traceIdLow=span.trace_id_low,
                traceIdHigh=span.trace_id_high,
                spanId=span.span_id,
                parentSpanId=span.parent_span_id,
                operationName=span.operation_name,
                references=references,
                flags=span.flags,
                startTime=span.start_time,
                duration=span.duration,
                tags=_to_thrift_tags(span.tags),
                logs=logs,
            )
        )
    stats = None
    if batch.stats is not None:
        stats = jaeger_thrift.ClientStats(
            fullQueueDroppedSpans=batch.stats.full_queue_dropped_spans,
            tooLargeDroppedSpans=batch.stats.too_large_dropped_spans,
            failedToEmitSpans=batch.stats.failed_to_emit_spans,
        )
    return jaeger_thrift.Batch(
        process=jaeger_thrift.Process(
            serviceName=batch.process.service_name,
            tags=_to_thrift_tags(batch.process.tags),
        ),
        spans=spans,
        seqNo=batch.seq_no,
        stats=stats,
    )


def encode(message: EmitBatchNotification, protocol: WireProtocol, seqid: int = 0) -> bytes:
    """Encode a notification as a one-way ``emitBatch`` datagram."""
    transport = TMemoryBuffer()
    proto = _protocol(transport, protocol)
    proto.write_message_begin(EMIT_BATCH, TMessageType.ONEWAY, seqid)
    proto.write_struct(agent_thrift.Agent.emitBatch_args(batch=_to_thrift_batch(message.batch)))
    proto.write_message_end()
    return transport.getvalue()
