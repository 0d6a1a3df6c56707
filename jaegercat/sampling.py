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
Sampling responder.

Answers ``GET /sampling?service=<name>`` with an "always sample" strategy for
allow-listed services and ``404`` for everything else.
"""

from __future__ import annotations

import socket

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import Response
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import SamplingConfig
from .errors import StartupError
from .logging_utils import get_logger

SAMPLE_ALL_RESPONSE = '{"strategyType": "PROBABILISTIC", "probabilisticSampling": {"samplingRate": 1}}'
UNKNOWN_SERVICE = "unknown"

log = get_logger(__name__)


def create_sampling_app(config: SamplingConfig) -> FastAPI:
    """Build the sampling app for an immutable allow-list."""
    app = FastAPI(
        title="jaegercat sampling",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )
    enabled_services = config.enabled_services

    @app.exception_handler(StarletteHTTPException)
    async def not_found(request: Request, exc: StarletteHTTPException) -> Response:
        # Unknown routes and wrong methods alike
        return Response(status_code=404)

    @app.get("/sampling")
    async def sampling(service: str | None = None) -> Response:
        """Grant the always-sample strategy to allow-listed services."""
        name = UNKNOWN_SERVICE if service is None else service
        if name in enabled_services:
            log.info(f"enabling service {name!r}", service=name)
            return Response(content=SAMPLE_ALL_RESPONSE, media_type="application/json")
        return Response(status_code=404)

    return app


class SamplingResponder:
    """Serves the sampling app with uvicorn on a socket bound up front."""

    name = "sampling"

    def __init__(self, config: SamplingConfig, sock: socket.socket, log_level: str = "info"):
        self.config = config
        self._sock = sock
        self.address: tuple[str, int] = sock.getsockname()[:2]
        self.app = create_sampling_app(config)
        self.server = uvicorn.Server(
            uvicorn.Config(
                self.app,
                log_level=log_level,
                access_log=False,
                log_config=None,
            )
        )

    @classmethod
    def bind(cls, config: SamplingConfig, log_level: str = "info") -> SamplingResponder:
        """Bind the HTTP listener in the calling thread.

        Raises:
            StartupError: the address is invalid or already in use
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((config.host, config.port))
            sock.listen(128)
        except (OSError, OverflowError) as e:
            sock.close()
            raise StartupError(f"cannot bind HTTP {config.host}:{config.port}: {e}") from e

        responder = cls(config, sock, log_level=log_level)
        log.info(
            "Sampling server started",
            address=f"{responder.address[0]}:{responder.address[1]}",
            services=sorted(config.enabled_services),
        )
        return responder

    def run(self) -> None:
        """Serve until :meth:`stop` is called."""
        try:
            self.server.run(sockets=[self._sock])
        finally:
            self.close()

    def stop(self) -> None:
        self.server.should_exit = True

    def close(self) -> None:
        try:
            self._sock.close()
        except OSError:
            pass
