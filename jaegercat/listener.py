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

"""UDP ingestion listener: receive, decode, format and emit datagrams."""

from __future__ import annotations

import socket
import threading
from collections.abc import Callable

from .codec import decode
from .config import ListenerConfig, OutputFormat, WireProtocol
from .errors import DecodeError, ListenerError, StartupError
from .formatter import render
from .logging_utils import get_logger
from .models import EmitBatchNotification
from .sink import OutputSink

Decoder = Callable[[bytes, WireProtocol], EmitBatchNotification]
Formatter = Callable[[EmitBatchNotification, OutputFormat, bytes], bytes]

# How often a blocked receive wakes up to check for a stop request
POLL_INTERVAL = 0.5

log = get_logger(__name__)


class UdpListener:
    """Owns one bound UDP socket and a fixed-size receive buffer.

    Datagrams are handled strictly in arrival order on the thread that calls
    :meth:`run`. A datagram that fails to decode is logged and dropped; it
    never stops the loop.
    """

    def __init__(
        self,
        config: ListenerConfig,
        sock: socket.socket,
        *,
        output_format: OutputFormat,
        sink: OutputSink,
        decoder: Decoder = decode,
        formatter: Formatter = render,
    ):
        self.config = config
        self.output_format = output_format
        self.sink = sink
        self.decoder = decoder
        self.formatter = formatter
        self._sock = sock
        self._buffer = bytearray(config.buffer_size)
        self._stop = threading.Event()
        self.address: tuple[str, int] = sock.getsockname()[:2]
        self.log = log.bind(port=self.address[1], thrift_protocol=config.protocol.value)

    @property
    def name(self) -> str:
        return f"udp-{self.config.protocol.value}"

    @classmethod
    def bind(
        cls,
        config: ListenerConfig,
        *,
        output_format: OutputFormat,
        sink: OutputSink,
        decoder: Decoder = decode,
        formatter: Formatter = render,
        host: str = "0.0.0.0",
    ) -> UdpListener:
        """Bind ``host:config.port``.

        Raises:
            StartupError: the port is invalid or already in use
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_DGRAM)
        try:
            sock.bind((host, config.port))
        except (OSError, OverflowError) as e:
            sock.close()
            raise StartupError(f"cannot bind UDP {host}:{config.port} ({config.protocol.value}): {e}") from e
        # Wake up periodically so stop() is honoured without a datagram
        sock.settimeout(POLL_INTERVAL)

        listener = cls(
            config,
            sock,
            output_format=output_format,
            sink=sink,
            decoder=decoder,
            formatter=formatter,
        )
        listener.log.info("UDP server started")
        return listener

    def run(self) -> None:
        """Receive until :meth:`stop` is called.

        Raises:
            ListenerError: receiving on the bound socket failed
            SinkError: the output stream can no longer be written
        """
        view = memoryview(self._buffer)
        try:
            while not self._stop.is_set():
                try:
                    size, peer = self._sock.recvfrom_into(self._buffer)
                except socket.timeout:
                    continue
                except OSError as e:
                    if self._stop.is_set():
                        break
                    raise ListenerError(f"receive failed on UDP port {self.address[1]}: {e}") from e

                self.log.debug(f"Received {size} bytes from {peer[0]}:{peer[1]}")
                self.handle(bytes(view[:size]))
        finally:
            view.release()
            self.close()

    def handle(self, data: bytes) -> None:
        """Decode one datagram and emit it."""
        try:
            message = self.decoder(data, self.config.protocol)
        except DecodeError as e:
            self.log.error("Received malformed or unknown message", reason=e.detail)
            self.log.debug("Malformed message bytes", bytes=data.hex())
            return

        self.log.debug(
            "Decoded batch",
            service=message.service_name,
            spans=len(message.batch.spans),
        )
        self.sink.write(self.formatter(message, self.output_format, data))

    def stop(self) -> None:
        """Ask :meth:`run` to return; the socket is closed on exit."""
        self._stop.set()

    def close(self) -> None:
        try:
            self._sock.close()
        except OSError:
            pass
