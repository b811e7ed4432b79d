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
"""Low-level endpoint module for connection-oriented communication."""

from __future__ import annotations

__all__ = ["StreamEndpoint"]

import warnings
from collections.abc import Generator
from typing import TypeVar

from ..exceptions import MessageFramingError, TruncatedMessageError
from . import _utils
from .transports import abc as _transports

_T_Message = TypeVar("_T_Message")


class StreamEndpoint(_transports.BaseTransport):
    """
    A full-duplex communication endpoint based on continuous stream data transport.

    Received bytes which are not consumed by a message are kept for the next one.
    """

    __slots__ = (
        "__transport",
        "__buffer",
        "__eof_reached",
        "__eof_sent",
    )

    def __init__(self, transport: _transports.StreamTransport) -> None:
        """
        Parameters:
            transport: The data transport to use.
        """

        if not isinstance(transport, _transports.StreamTransport):
            raise TypeError(f"Expected a StreamTransport object, got {transport!r}")

        self.__transport: _transports.StreamTransport = transport
        self.__buffer: bytes = b""
        self.__eof_reached: bool = False
        self.__eof_sent: bool = False

    def __del__(self, *, _warn: _utils.WarnCallback = warnings.warn) -> None:
        try:
            transport = self.__transport
        except AttributeError:
            return
        if not transport.is_closed():
            _warn(f"unclosed endpoint {self!r}", ResourceWarning, source=self)
            transport.close()

    def __repr__(self) -> str:
        try:
            return f"<{self.__class__.__name__} transport={self.__transport!r}>"
        except AttributeError:
            return f"<{self.__class__.__name__} (partially initialized)>"

    def is_closed(self) -> bool:
        """
        Checks if :meth:`close` has been called.

        Returns:
            :data:`True` if the endpoint is closed.
        """
        return self.__transport.is_closed()

    def close(self) -> None:
        """
        Closes the endpoint.
        """
        try:
            self.__transport.close()
        finally:
            self.__buffer = b""

    def send_all(self, data: bytes | bytearray | memoryview) -> None:
        """
        Sends all of `data` to the remote endpoint.

        Raises:
            RuntimeError: :meth:`send_eof` has been called earlier.
        """
        if self.__eof_sent:
            raise RuntimeError("send_eof() has been called earlier")

        self.__transport.send_all(data)

    def send_eof(self) -> None:
        """
        Close the write end of the stream after the buffered write data is flushed.

        This method does nothing if the endpoint is closed.

        Can be safely called multiple times.
        """
        if self.__eof_sent:
            return

        self.__transport.send_eof()
        self.__eof_sent = True

    def recv_message(self, consumer: Generator[None, bytes, tuple[_T_Message, bytes]], bufsize: int) -> _T_Message:
        """
        Feeds `consumer` with the received data until it returns a message.

        Data kept from previous calls are given first. Then the transport is read by chunks of at most `bufsize` bytes.
        The unused trailing data returned by `consumer` are kept for the next call.

        Parameters:
            consumer: A fresh generator which yields until a full message has been received.
                      It is closed when this method returns.
            bufsize: Read buffer size.

        Raises:
            ValueError: `bufsize` is negative or null.
            TruncatedMessageError: The read end of the stream is closed before a full message has been received.
            MessageFramingError: Invalid data received.

        Returns:
            the received message.
        """
        _utils.validate_buffer_size(bufsize)

        try:
            try:
                next(consumer)
            except StopIteration:
                raise RuntimeError("consumer did not yield") from None

            transport = self.__transport
            chunk, self.__buffer = self.__buffer, b""
            received = bytearray(chunk)

            while True:
                if chunk:
                    try:
                        consumer.send(chunk)
                    except StopIteration as exc:
                        message, remaining = exc.value
                        self.__buffer = bytes(remaining)
                        return message
                    except MessageFramingError as exc:
                        self.__buffer = bytes(exc.remaining_data)
                        raise
                    finally:
                        del chunk
                if self.__eof_reached:
                    raise TruncatedMessageError("end-of-stream reached before the delimiter", bytes(received))
                chunk = transport.recv(bufsize)
                if not chunk:
                    self.__eof_reached = True
                else:
                    received += chunk
        finally:
            consumer.close()

    def discard_buffer(self) -> int:
        """
        Drops the data kept for the next message.

        Returns:
            the number of dropped bytes.
        """
        nbytes = len(self.__buffer)
        self.__buffer = b""
        return nbytes
