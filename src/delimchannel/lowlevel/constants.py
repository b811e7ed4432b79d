# Copyright 2021-2025, Francis Clairicia-Rose-Claire-Josephine
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
#
#
"""delimchannel's constants module."""

from __future__ import annotations

__all__ = [
    "CLOSED_SOCKET_ERRNOS",
    "DEFAULT_ENCODING",
    "DEFAULT_STREAM_BUFSIZE",
    "NOT_CONNECTED_SOCKET_ERRNOS",
]

import errno as _errno
from typing import Final

# Buffer size for a recv(2) operation
DEFAULT_STREAM_BUFSIZE: Final[int] = 16 * 1024  # 16KiB

# 7-bit ASCII
DEFAULT_ENCODING: Final[str] = "ascii"

# Errors that socket operations can return if the socket is closed
CLOSED_SOCKET_ERRNOS: Final[frozenset[int]] = frozenset(
    {
        # Unix
        _errno.EBADF,
        # Windows
        _errno.ENOTSOCK,
    }
)

# Errors that socket operations can return if the socket is not connected
NOT_CONNECTED_SOCKET_ERRNOS: Final[frozenset[int]] = frozenset(
    {
        # Most of the operating systems
        _errno.ENOTCONN,
        # macOS
        _errno.EINVAL,
    }
)
