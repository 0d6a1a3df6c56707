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

"""Output sink shared by every listener."""

from __future__ import annotations

import sys
from typing import BinaryIO

from .errors import SinkError


class OutputSink:
    """Writes each formatted message with a single ``write`` call.

    Buffered binary streams serialize concurrent ``write`` calls internally,
    so messages from different listeners never interleave.
    """

    def __init__(self, stream: BinaryIO):
        self.stream = stream

    @classmethod
    def stdout(cls) -> OutputSink:
        return cls(sys.stdout.buffer)

    def write(self, data: bytes) -> None:
        try:
            self.stream.write(data)
            self.stream.flush()
        except (OSError, ValueError) as e:
            # ValueError: write to a closed stream
            raise SinkError(f"cannot write to output stream: {e}") from e
