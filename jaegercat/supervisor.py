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

"""Service supervisor: one thread per network unit, no restarts."""

from __future__ import annotations

import signal
import threading
import time
from typing import Any, Protocol

from .codec import decode
from .config import AgentSettings
from .errors import StartupError
from .formatter import render
from .listener import Decoder, Formatter, UdpListener
from .logging_utils import get_logger
from .sampling import SamplingResponder
from .sink import OutputSink

# Joins wake up this often so signal handlers get to run in the main thread
JOIN_INTERVAL = 0.5

log = get_logger(__name__)


class Unit(Protocol):
    name: str

    def run(self) -> None: ...

    def stop(self) -> None: ...

    def close(self) -> None: ...


class AgentSupervisor:
    """
    Starts every network unit as an independent thread and waits for them.

    Units are bound in the calling thread before any thread starts, so a bind
    failure aborts startup as a whole. Once running, a unit that exits
    without a stop request is logged as a failure; the others keep running.
    """

    def __init__(
        self,
        settings: AgentSettings,
        *,
        sink: OutputSink,
        decoder: Decoder = decode,
        formatter: Formatter = render,
        listen_host: str = "0.0.0.0",
    ):
        self.settings = settings
        self.sink = sink
        self.decoder = decoder
        self.formatter = formatter
        self.listen_host = listen_host
        self.units: list[Unit] = []
        self.failures: dict[str, BaseException | None] = {}
        self._threads: list[threading.Thread] = []
        self._stopping = threading.Event()
        self._lock = threading.Lock()

    @property
    def listeners(self) -> list[UdpListener]:
        return [unit for unit in self.units if isinstance(unit, UdpListener)]

    @property
    def responder(self) -> SamplingResponder | None:
        for unit in self.units:
            if isinstance(unit, SamplingResponder):
                return unit
        return None

    def bind(self) -> None:
        """Bind every unit or none of them.

        Raises:
            StartupError: any socket failed to bind
        """
        units: list[Unit] = []
        try:
            for config in self.settings.listeners():
                units.append(
                    UdpListener.bind(
                        config,
                        output_format=self.settings.format,
                        sink=self.sink,
                        decoder=self.decoder,
                        formatter=self.formatter,
                        host=self.listen_host,
                    )
                )
            units.append(SamplingResponder.bind(self.settings.sampling(), log_level=self.settings.log_level.value))
        except StartupError:
            for unit in units:
                unit.close()
            raise
        self.units = units

    def start(self) -> None:
        """Bind all units, then start one daemon thread per unit."""
        if self._threads:
            return
        self.bind()
        for unit in self.units:
            thread = threading.Thread(target=self._run_unit, args=(unit,), name=unit.name, daemon=True)
            self._threads.append(thread)
            thread.start()
        log.info("Agent started", units=[unit.name for unit in self.units])

    def _run_unit(self, unit: Unit) -> None:
        try:
            unit.run()
        except Exception as e:
            self._record_failure(unit, e)
            log.critical(f"Unit {unit.name} aborted", unit=unit.name, error=str(e), error_type=type(e).__name__)
            return
        except SystemExit as e:
            # uvicorn exits this way when it cannot start serving
            self._record_failure(unit, e)
            log.critical(f"Unit {unit.name} exited", unit=unit.name, code=e.code)
            return

        if not self._stopping.is_set():
            self._record_failure(unit, None)
            log.critical(f"Unit {unit.name} exited unexpectedly", unit=unit.name)

    def _record_failure(self, unit: Unit, error: BaseException | None) -> None:
        with self._lock:
            self.failures[unit.name] = error

    def wait(self, timeout: float | None = None) -> int:
        """Block until every unit finished.

        Returns:
            0 when all units stopped on request, 1 when any unit failed
        """
        deadline = None if timeout is None else time.monotonic() + timeout
        for thread in self._threads:
            while thread.is_alive():
                interval = JOIN_INTERVAL
                if deadline is not None:
                    interval = min(interval, deadline - time.monotonic())
                    if interval <= 0:
                        raise TimeoutError("units still running")
                thread.join(interval)
        return 1 if self.failures else 0

    def stop(self) -> None:
        """Stop every unit; a blocked receive or accept returns shortly."""
        if self._stopping.is_set():
            return
        self._stopping.set()
        log.info("Stopping agent", units=[unit.name for unit in self.units])
        for unit in self.units:
            unit.stop()

    def install_signal_handlers(self) -> None:
        """Stop all units on SIGINT and SIGTERM."""

        def handle_signal(signum: int, frame: Any = None) -> None:
            log.info(f"Received signal: {signal.Signals(signum).name}")
            self.stop()

        signal.signal(signal.SIGTERM, handle_signal)
        signal.signal(signal.SIGINT, handle_signal)

    def run(self) -> int:
        self.start()
        self.install_signal_handlers()
        return self.wait()
