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
"""Low-level transports interfaces module."""


from __future__ import annotations

__all__ = [
    "BaseTransport",
    "StreamTransport",
]

import errno as _errno
from abc import ABCMeta, abstractmethod

from .. import _utils


class BaseTransport(metaclass=ABCMeta):
    """
    Base class for a resource which must be released explicitly.
    """

    __slots__ = ("__weakref__",)

    @abstractmethod
    def close(self) -> None:
        """
        Releases the resource.
        """
        raise NotImplementedError

    @abstractmethod
    def is_closed(self) -> bool:
        """
        Checks if :meth:`close` has been called.
        """
        raise NotImplementedError


class StreamTransport(BaseTransport):
    """
    A blocking, full-duplex continuous stream data transport.
    """

    __slots__ = ()

    @abstractmethod
    def recv(self, bufsize: int) -> bytes:
        """
        Blocks until at least one byte is available, then returns up to `bufsize` bytes.

        An empty byte string means the remote peer closed its write end.
        """
        raise NotImplementedError

    @abstractmethod
    def send(self, data: bytes | bytearray | memoryview) -> int:
        """
        Sends some of `data` and returns the number of bytes actually sent.
        """
        raise NotImplementedError

    @abstractmethod
    def send_eof(self) -> None:
        """
        Closes the write end of the stream.

        This method does nothing if the transport is closed.
        """
        raise NotImplementedError

    def send_all(self, data: bytes | bytearray | memoryview) -> None:
        """
        Calls :meth:`send` until every byte of `data` has been accepted.

        There is no way to know how much data was sent if an error occurs.

        Raises:
            ConnectionAbortedError: :meth:`send` accepted no byte at all.
        """

        total_sent: int = 0
        with memoryview(data) as data_view, data_view.cast("B") as view:
            while total_sent < view.nbytes:
                with view[total_sent:] as buffer:
                    sent = self.send(buffer)
                if sent < 0:
                    raise RuntimeError("transport.send() returned a negative value")
                if sent == 0:
                    raise _utils.error_from_errno(_errno.ECONNABORTED, "{strerror} (short write)")
                total_sent += sent
