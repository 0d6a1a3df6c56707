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

"""Render decoded messages for the output stream."""

from __future__ import annotations

from .config import OutputFormat
from .models import EmitBatchNotification


def render(message: EmitBatchNotification, output_format: OutputFormat, raw: bytes) -> bytes:
    """Return the exact bytes to write for one decoded datagram.

    ``raw`` is the received datagram; the RAW format passes it through
    unchanged, without a trailing newline. The JSON formats are terminated
    by a single newline.
    """
    if output_format is OutputFormat.RAW:
        return bytes(raw)
    if output_format is OutputFormat.JSON:
        return (message.to_json() + "\n").encode("utf-8")
    if output_format is OutputFormat.JSON_PRETTY:
        return (message.to_json(indent=2) + "\n").encode("utf-8")
    raise ValueError(f"unsupported output format: {output_format!r}")
