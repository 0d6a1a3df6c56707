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

"""Structured error codes and exceptions for jaegercat."""

from enum import Enum


class ErrorCode(str, Enum):
    CONFIGURATION_ERROR = "configuration_error"
    STARTUP_ERROR = "startup_error"
    DECODE_ERROR = "decode_error"
    RECEIVE_ERROR = "receive_error"
    OUTPUT_ERROR = "output_error"


class JaegercatError(Exception):
    """Base class for every error raised by jaegercat."""

    code: ErrorCode = ErrorCode.STARTUP_ERROR

    def __init__(self, detail: str):
        super().__init__(detail)
        self.detail = detail

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code.value, "detail": self.detail}


class ConfigurationError(JaegercatError):
    """Invalid command line flag, environment variable or config file."""

    code = ErrorCode.CONFIGURATION_ERROR


class StartupError(JaegercatError):
    """A network unit could not be bound."""

    code = ErrorCode.STARTUP_ERROR


class DecodeError(JaegercatError):
    """A datagram is malformed or carries an unknown message."""

    code = ErrorCode.DECODE_ERROR


class ListenerError(JaegercatError):
    """Receiving on an already bound socket failed."""

    code = ErrorCode.RECEIVE_ERROR


class SinkError(JaegercatError):
    """Writing a formatted message to the output stream failed."""

    code = ErrorCode.OUTPUT_ERROR
