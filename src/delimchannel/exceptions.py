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
"""Exceptions definition module.

Here are all the exception classes defined and used by the library.
"""

from __future__ import annotations

__all__ = [
    "AlreadyClosedError",
    "BusyResourceError",
    "ChannelNotOpenError",
    "ChannelOpenError",
    "LimitOverrunError",
    "MessageDecodeError",
    "MessageFramingError",
    "TruncatedMessageError",
]

from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from _typeshed import ReadableBuffer


class BusyResourceError(RuntimeError):
    """Error raised when a thread attempts to use a resource that some other thread is
    already using, and this would lead to bugs and nonsense.
    """


class ChannelOpenError(ConnectionError):
    """Error raised when the connection to the remote host could not be established."""

    def __init__(self, message: str, address: tuple[str, int]) -> None:
        """
        Parameters:
            message: Error message.
            address: The ``(host, port)`` pair the channel tried to connect to.
        """

        super().__init__(message)

        self.address: tuple[str, int] = address
        """The remote address."""


class AlreadyClosedError(ConnectionError):
    """Error raised when trying to do an operation on a closed channel."""


class ChannelNotOpenError(RuntimeError):
    """Error raised when trying to do an operation on a channel which has not been opened yet."""


class TruncatedMessageError(ConnectionError):
    """The stream reached its end before the delimiter was found."""

    def __init__(self, message: str, partial_data: bytes = b"") -> None:
        """
        Parameters:
            message: Error message.
            partial_data: Bytes received before the end of the stream.
        """

        super().__init__(message)

        self.partial_data: bytes = partial_data
        """Bytes received before the end of the stream."""


class MessageFramingError(Exception):
    """Error raised by the framing layer if the received data is invalid."""

    def __init__(self, message: str, remaining_data: ReadableBuffer, error_info: Any = None) -> None:
        """
        Parameters:
            message: Error message.
            remaining_data: Unused trailing data.
            error_info: Additional error data.
        """

        super().__init__(message)

        self.remaining_data: ReadableBuffer = remaining_data
        """Unused trailing data."""

        self.error_info: Any = error_info
        """Additional error data."""


class MessageDecodeError(MessageFramingError):
    """The message bytes could not be decoded with the channel's encoding."""


class LimitOverrunError(MessageFramingError):
    """Reached the buffer size limit while looking for a delimiter."""

    def __init__(
        self,
        message: str,
        buffer: ReadableBuffer,
        consumed: int,
        separator: bytes = b"",
        *,
        separator_found: bool = True,
    ) -> None:
        """
        Parameters:
            message: Error message.
            buffer: Currently too big buffer.
            consumed: Total number of to be consumed bytes.
            separator: Searched separator.
            separator_found: If :data:`False`, the end of the message has not been received yet,
                             and the remaining data are the bytes which may start the separator.
        """

        remaining_data = memoryview(buffer)[consumed:]
        seplen = len(separator)
        if separator_found and seplen and remaining_data[:seplen] == separator:
            remaining_data = remaining_data[seplen:]

        super().__init__(message, bytes(remaining_data), error_info=None)

        self.consumed: int = consumed
        """Total number of to be consumed bytes."""

        self.separator: bytes = separator
        """Searched separator."""

        self.separator_found: bool = separator_found
        """:data:`False` if the data up to the next separator still belong to the oversized message."""
