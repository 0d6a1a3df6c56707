"""Shared test helpers: ports, polling, datagram senders and sample batches."""

import io
import socket
import threading
import time
from collections.abc import Callable

from jaegercat.models import Batch, EmitBatchNotification, Log, Process, Span, SpanRef, Tag
from jaegercat.sink import OutputSink


def get_free_port(kind: int = socket.SOCK_DGRAM) -> int:
    sock = socket.socket(socket.AF_INET, kind)
    sock.bind(("127.0.0.1", 0))
    port = sock.getsockname()[1]
    sock.close()
    return port


def wait_until(condition: Callable[[], bool], timeout: float = 2.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while not condition():
        if time.monotonic() > deadline:
            return False
        time.sleep(interval)
    return True


def send_datagram(port: int, payload: bytes) -> None:
    with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sender:
        sender.sendto(payload, ("127.0.0.1", port))


def make_notification(service: str = "checkout", spans: int = 1) -> EmitBatchNotification:
    return EmitBatchNotification(
        batch=Batch(
            process=Process(
                service_name=service,
                tags=[Tag(key="hostname", v_type="STRING", v_str="web-1")],
            ),
            spans=[
                Span(
                    trace_id_low=0x1234 + i,
                    trace_id_high=0,
                    span_id=100 + i,
                    parent_span_id=0,
                    operation_name=f"GET /cart/{i}",
                    flags=1,
                    start_time=1_700_000_000_000_000 + i,
                    duration=1500,
                    references=[
                        SpanRef(ref_type="CHILD_OF", trace_id_low=0x1234, trace_id_high=0, span_id=99),
                    ],
                    tags=[
                        Tag(key="http.status_code", v_type="LONG", v_long=200),
                        Tag(key="error", v_type="BOOL", v_bool=False),
                        Tag(key="ratio", v_type="DOUBLE", v_double=0.25),
                        Tag(key="payload", v_type="BINARY", v_binary=b"\x00\xff\x10"),
                    ],
                    logs=[Log(timestamp=1_700_000_000_000_100, fields=[Tag(key="event", v_type="STRING", v_str="retry")])],
                )
                for i in range(spans)
            ],
            seq_no=7,
        )
    )


class CaptureSink(OutputSink):
    """In-memory sink that records each write separately."""

    def __init__(self):
        super().__init__(io.BytesIO())
        self.writes: list[bytes] = []
        self._lock = threading.Lock()

    def write(self, data: bytes) -> None:
        super().write(data)
        with self._lock:
            self.writes.append(data)

    def snapshot(self) -> list[bytes]:
        with self._lock:
            return list(self.writes)


class BrokenStream(io.RawIOBase):
    """Binary stream whose writes fail like a closed pipe."""

    def writable(self) -> bool:
        return True

    def write(self, data) -> int:
        raise BrokenPipeError(32, "Broken pipe")
