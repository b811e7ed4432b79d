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
"""Transport implementation module wrapping sockets."""

from __future__ import annotations

__all__ = ["SocketStreamTransport"]

import socket
import warnings

from .. import _utils, constants
from . import abc as _transports


class SocketStreamTransport(_transports.StreamTransport):
    """
    A blocking stream data transport implementation which wraps a connected :data:`~socket.SOCK_STREAM` socket.
    """

    __slots__ = ("__socket",)

    def __init__(self, sock: socket.socket) -> None:
        """
        Parameters:
            sock: The :data:`~socket.SOCK_STREAM` socket to wrap. The socket is switched to blocking mode.
        """
        super().__init__()

        _utils.check_stream_socket(sock)
        self.__socket: socket.socket = sock
        self.__socket.settimeout(None)

    def __del__(self, *, _warn: _utils.WarnCallback = warnings.warn) -> None:
        try:
            sock: socket.socket = self.__socket
        except AttributeError:
            return
        if sock.fileno() >= 0:
            _warn(f"unclosed transport {self!r}", ResourceWarning, source=self)
            sock.close()

    def __repr__(self) -> str:
        try:
            return f"<{self.__class__.__name__} socket={self.__socket!r}>"
        except AttributeError:
            return f"<{self.__class__.__name__} (partially initialized)>"

    def is_closed(self) -> bool:
        return self.__socket.fileno() < 0

    def close(self) -> None:
        """
        Releases the read side, the write side, then the socket itself.

        Every step is attempted even if a previous one failed. Errors telling that the socket is not connected anymore
        are ignored during the shutdown steps. If something else went wrong, the first error is raised once all the
        steps are done, and the other ones are attached as notes.

        This method does nothing if the transport is already closed.
        """
        sock = self.__socket
        if sock.fileno() < 0:
            return

        errors: list[OSError] = []
        for how in (socket.SHUT_RD, socket.SHUT_WR):
            try:
                sock.shutdown(how)
            except OSError as exc:
                if exc.errno not in constants.NOT_CONNECTED_SOCKET_ERRNOS:
                    errors.append(exc)
        try:
            sock.close()
        except OSError as exc:
            errors.append(exc)

        if errors:
            first, *others = errors
            errors.clear()
            raise _utils.exception_with_notes(first, [f"Another error occurred while closing: {exc!r}" for exc in others])

    def recv(self, bufsize: int) -> bytes:
        if bufsize < 0:
            raise ValueError("'bufsize' must be a positive or null integer")
        return self.__socket.recv(bufsize)

    def send(self, data: bytes | bytearray | memoryview) -> int:
        return self.__socket.send(data)

    def send_eof(self) -> None:
        sock = self.__socket
        if sock.fileno() < 0:
            return
        sock.shutdown(socket.SHUT_WR)
