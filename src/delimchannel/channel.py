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
"""Delimited text message channel implementation module."""

from __future__ import annotations

__all__ = ["ChannelState", "DelimitedMessageChannel", "open_channel"]

import contextlib
import enum
import errno as _errno
import logging
import socket as _socket
import warnings
from collections.abc import Callable, Iterator
from types import TracebackType
from typing import Any, Self, final

from .exceptions import AlreadyClosedError, ChannelNotOpenError, ChannelOpenError, LimitOverrunError, TruncatedMessageError
from .framing import DelimitedTextFraming
from .lowlevel import _utils, constants
from .lowlevel.endpoint import StreamEndpoint
from .lowlevel.transports.socket import SocketStreamTransport


@enum.unique
class ChannelState(enum.Enum):
    """The lifecycle states of a :class:`DelimitedMessageChannel`."""

    UNOPENED = "unopened"
    """The channel has been created, but :meth:`~DelimitedMessageChannel.open` has not succeeded yet."""

    OPEN = "open"
    """The connection is established."""

    CLOSED = "closed"
    """The connection has been released."""


class DelimitedMessageChannel:
    """
    A blocking TCP client channel exchanging delimiter-terminated text messages.

    A channel must be opened before reading or writing, and should always be closed to release the socket::

        with DelimitedMessageChannel("localhost", 9000) as channel:
            channel.write_message("ping<EOF>")
            reply = channel.read_message(1024, "<EOF>")

    A channel is not meant to be shared between threads.
    """

    __slots__ = (
        "__host",
        "__port",
        "__state",
        "__framing",
        "__socket",
        "__endpoint",
        "__connect_timeout",
        "__local_address",
        "__on_connected",
        "__on_message",
        "__logger",
        "__send_guard",
        "__receive_guard",
        "__unterminated_separator",
        "__weakref__",
    )

    def __init__(
        self,
        host: str,
        port: int,
        *,
        encoding: str = constants.DEFAULT_ENCODING,
        unicode_errors: str = "strict",
        limit: int | None = None,
        discard_trailing: bool = False,
        debug: bool = False,
        connect_timeout: float | None = None,
        local_address: tuple[str, int] | None = None,
        on_connected: Callable[[], object] | None = None,
        on_message: Callable[[str], object] | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        """
        The connection is not established until :meth:`open` is called.

        Connection Parameters:
            host: The remote host name or IP address.
            port: The remote port number.
            connect_timeout: The connection timeout (in seconds). Only used by :meth:`open`.
            local_address: If given, is a ``(local_host, local_port)`` tuple used to bind the socket locally.

        Framing Parameters:
            encoding: String encoding used for messages and delimiters. Defaults to ``"ascii"``.
            unicode_errors: Controls how encoding errors are handled.
            limit: Maximum buffer size when waiting for a delimiter. By default, there is no limit.
                   After an overrun, the rest of the oversized message is dropped by the next :meth:`read_message` call.
            discard_trailing: If :data:`True`, a message ends at the *last* delimiter found in the received data,
                              and everything received after it is dropped.
            debug: If :data:`True`, add information to :exc:`.MessageDecodeError` via the ``error_info`` attribute.

        Notification Parameters:
            on_connected: Called without arguments each time the channel becomes open.
            on_message: Called with the message text after each successful :meth:`read_message`.

        Keyword Arguments:
            logger: If given, the logger instance to use.

        Raises:
            ValueError: Invalid `port` or `limit`.
            LookupError: Unknown `encoding` or `unicode_errors` handler.
        """
        if not isinstance(port, int) or not (0 < port < 65536):
            raise ValueError(f"Invalid port number: {port!r}")

        self.__framing: DelimitedTextFraming = DelimitedTextFraming(
            encoding=encoding,
            unicode_errors=unicode_errors,
            limit=limit,
            discard_trailing=discard_trailing,
            debug=debug,
        )
        self.__host: str = host
        self.__port: int = port
        self.__state: ChannelState = ChannelState.UNOPENED
        self.__socket: _socket.socket | None = None
        self.__endpoint: StreamEndpoint | None = None
        self.__connect_timeout: float | None = connect_timeout
        self.__local_address: tuple[str, int] | None = local_address
        self.__on_connected: Callable[[], object] | None = on_connected
        self.__on_message: Callable[[str], object] | None = on_message
        self.__logger: logging.Logger = logger or logging.getLogger(__name__)
        self.__send_guard: _utils.ResourceGuard = _utils.ResourceGuard("another thread is writing on this channel")
        self.__receive_guard: _utils.ResourceGuard = _utils.ResourceGuard("another thread is reading on this channel")
        self.__unterminated_separator: bytes = b""

    @classmethod
    def from_socket(cls, sock: _socket.socket, /, **kwargs: Any) -> Self:
        """
        Creates an open channel from an already connected TCP socket.

        The channel takes ownership of `sock`: it is closed if the channel cannot be created.

        Parameters:
            sock: An already connected TCP :class:`socket.socket`.
            kwargs: Framing, notification and logger parameters given to the constructor.

        Raises:
            TypeError: `connect_timeout` or `local_address` were given.
            ValueError: `sock` is not a connected TCP socket.
        """
        try:
            if "connect_timeout" in kwargs or "local_address" in kwargs:
                raise TypeError("connect_timeout and local_address are meaningless with an already connected socket")
            _utils.check_inet_socket_family(sock.family)
            _utils.check_stream_socket(sock)
            _utils.check_socket_is_connected(sock)
            host, port = sock.getpeername()[:2]
            self = cls(host, port, **kwargs)
        except BaseException:
            sock.close()
            raise
        self.__attach(sock)
        return self

    def __del__(self, *, _warn: _utils.WarnCallback = warnings.warn) -> None:
        try:
            endpoint = self.__endpoint
        except AttributeError:
            return
        if endpoint is not None and not endpoint.is_closed():
            _warn(f"unclosed channel {self!r}", ResourceWarning, source=self)
            with contextlib.suppress(OSError):
                endpoint.close()

    def __repr__(self) -> str:
        try:
            return f"<{self.__class__.__name__} host={self.__host!r} port={self.__port} state={self.__state.value}>"
        except AttributeError:
            return f"<{self.__class__.__name__} (partially initialized)>"

    def __enter__(self) -> Self:
        """
        Calls :meth:`open` if the channel has not been opened yet.
        """
        if self.__state is ChannelState.UNOPENED:
            self.open()
        return self

    def __exit__(self, exc_type: type[BaseException] | None, exc_val: BaseException | None, exc_tb: TracebackType | None) -> None:
        """
        Calls :meth:`close`.
        """
        self.close()

    def open(self) -> None:
        """
        Connects to the remote host.

        If the connection fails, the channel stays unopened and this method can be called again.

        Raises:
            ChannelOpenError: The host name could not be resolved, or the connection could not be established.
            RuntimeError: The channel is already open.
            AlreadyClosedError: The channel is closed.
        """
        match self.__state:
            case ChannelState.OPEN:
                raise RuntimeError("Channel is already open")
            case ChannelState.CLOSED:
                raise self.__closed()

        address = (self.__host, self.__port)
        try:
            sock = _socket.create_connection(
                address,
                timeout=self.__connect_timeout,
                source_address=self.__local_address,
                all_errors=True,
            )
        except OSError as exc:
            raise ChannelOpenError(f"Could not connect to {self.__host}:{self.__port}: {exc}", address) from exc
        except ExceptionGroup as exc_grp:
            reasons = "; ".join(map(str, exc_grp.exceptions))
            raise ChannelOpenError(f"Could not connect to {self.__host}:{self.__port}: {reasons}", address) from exc_grp

        self.__attach(sock)

    def __attach(self, sock: _socket.socket) -> None:
        try:
            transport = SocketStreamTransport(sock)
        except BaseException:
            sock.close()
            raise

        with contextlib.suppress(OSError):
            sock.setsockopt(_socket.IPPROTO_TCP, _socket.TCP_NODELAY, True)

        self.__socket = sock
        self.__endpoint = StreamEndpoint(transport)
        self.__state = ChannelState.OPEN
        self.__logger.debug("Connected to %s:%d", self.__host, self.__port)

        if self.__on_connected is not None:
            self.__on_connected()

    def close(self) -> None:
        """
        Closes the channel: releases the read side, the write side and the socket, in that order.

        Every release step is attempted, and the first error encountered (if any) is raised afterwards.
        The channel is considered closed even if an error is raised.

        Can be safely called multiple times. Closing a channel which has never been opened only marks it as closed.

        Raises:
            OSError: unrelated OS error occurred. You should check :attr:`OSError.errno`.
        """
        state, self.__state = self.__state, ChannelState.CLOSED
        endpoint, self.__endpoint = self.__endpoint, None
        self.__socket = None
        if state is not ChannelState.OPEN or endpoint is None:
            return

        try:
            endpoint.close()
        except OSError as exc:
            self.__logger.warning("Error while closing the connection to %s:%d: %s", self.__host, self.__port, exc)
            raise
        finally:
            self.__logger.debug("Connection to %s:%d closed", self.__host, self.__port)

    def is_closed(self) -> bool:
        """
        Checks if the channel is in a closed state.

        If :data:`True`, all future operations on the channel object will raise a :exc:`.AlreadyClosedError`.

        Returns:
            the channel state.
        """
        return self.__state is ChannelState.CLOSED

    def is_connected(self) -> bool:
        """
        Checks if the underlying socket is connected to the remote host.

        Returns:
            :data:`False` before :meth:`open` and after :meth:`close`, and whether the socket has a peer otherwise.
        """
        sock = self.__socket
        if self.__state is not ChannelState.OPEN or sock is None:
            return False
        try:
            return _utils.is_socket_connected(sock)
        except OSError as exc:
            if exc.errno in constants.CLOSED_SOCKET_ERRNOS:
                return False
            raise

    def read_message(self, buffer_size: int, delimiter: str) -> str:
        """
        Waits for a whole message terminated by `delimiter` to arrive from the remote host.

        The data is read by chunks of at most `buffer_size` bytes.

        Parameters:
            buffer_size: Read buffer size.
            delimiter: The string which marks the end of the message.

        Raises:
            ChannelNotOpenError: the channel has not been opened.
            AlreadyClosedError: the channel object is closed.
            TruncatedMessageError: the remote host closed its write end before sending `delimiter`.
            ConnectionAbortedError: connection unexpectedly closed during operation.
                                    You should not attempt any further operation and close the channel object.
            OSError: unrelated OS error occurred. You should check :attr:`OSError.errno`.
            LimitOverrunError: the message is bigger than the buffer limit.
            MessageDecodeError: the message cannot be decoded.
            BusyResourceError: another thread is reading on this channel.
            ValueError: `buffer_size` is negative or null, or `delimiter` is empty.

        Returns:
            the message text, without the delimiter which ends it.
            With `discard_trailing` enabled, the text stops at the *last* delimiter received, so it may contain
            earlier occurrences of `delimiter`.
        """
        with self.__receive_guard:
            _utils.validate_buffer_size(buffer_size)
            endpoint = self.__get_endpoint()
            consumer = self.__framing.incremental_deserialize(delimiter)
            with self.__convert_socket_error():
                if separator := self.__unterminated_separator:
                    nbytes = endpoint.recv_message(self.__framing.incremental_skip(separator), buffer_size)
                    self.__unterminated_separator = b""
                    self.__logger.debug("Dropped %d byte(s) left from an oversized message", nbytes)
                try:
                    message = endpoint.recv_message(consumer, buffer_size)
                except LimitOverrunError as exc:
                    if not exc.separator_found:
                        self.__unterminated_separator = exc.separator
                    raise
            if self.__framing.discard_trailing and (nbytes := endpoint.discard_buffer()):
                self.__logger.debug("Discarded %d byte(s) received after the delimiter", nbytes)

        if self.__on_message is not None:
            self.__on_message(message)
        return message

    def write_message(self, text: str, encoding: str | None = None) -> None:
        """
        Encodes `text` and sends all the bytes to the remote host.

        No delimiter is appended.

        Parameters:
            text: The string to send.
            encoding: If given, overrides the channel encoding for this message.

        Raises:
            ChannelNotOpenError: the channel has not been opened.
            AlreadyClosedError: the channel object is closed.
            ConnectionAbortedError: connection unexpectedly closed during operation.
                                    You should not attempt any further operation and close the channel object.
            OSError: unrelated OS error occurred. You should check :attr:`OSError.errno`.
            RuntimeError: :meth:`send_eof` has been called earlier.
            UnicodeEncodeError: `text` cannot be encoded.
            BusyResourceError: another thread is writing on this channel.
        """
        with self.__send_guard:
            endpoint = self.__get_endpoint()
            data = self.__framing.encode(text, encoding)
            with self.__convert_socket_error():
                endpoint.send_all(data)

    def send_eof(self) -> None:
        """
        Close the write end of the stream.

        This method does nothing if the channel is closed.

        Can be safely called multiple times.

        Raises:
            ChannelNotOpenError: the channel has not been opened.
            OSError: unrelated OS error occurred. You should check :attr:`OSError.errno`.
        """
        with self.__send_guard:
            if self.__state is ChannelState.CLOSED:
                return
            endpoint = self.__get_endpoint()
            with self.__convert_socket_error():
                endpoint.send_eof()

    def get_local_address(self) -> tuple[str, int]:
        """
        Returns the local socket IP address and port.

        Raises:
            ChannelNotOpenError: the channel has not been opened.
            AlreadyClosedError: the channel object is closed.

        Returns:
            the channel's local address.
        """
        self.__get_endpoint()
        assert self.__socket is not None  # nosec assert_used
        host, port = self.__socket.getsockname()[:2]
        return host, port

    def get_remote_address(self) -> tuple[str, int]:
        """
        Returns the remote socket IP address and port.

        Raises:
            ChannelNotOpenError: the channel has not been opened.
            AlreadyClosedError: the channel object is closed.

        Returns:
            the channel's remote address.
        """
        self.__get_endpoint()
        assert self.__socket is not None  # nosec assert_used
        host, port = self.__socket.getpeername()[:2]
        return host, port

    def fileno(self) -> int:
        """
        Returns the socket's file descriptor, or ``-1`` if the channel is not open.

        Returns:
            the opened file descriptor.
        """
        sock = self.__socket
        if sock is None:
            return -1
        return sock.fileno()

    def __get_endpoint(self) -> StreamEndpoint:
        match self.__state:
            case ChannelState.UNOPENED:
                raise ChannelNotOpenError("Channel is not open")
            case ChannelState.CLOSED:
                raise self.__closed()
        endpoint = self.__endpoint
        assert endpoint is not None  # nosec assert_used
        return endpoint

    @contextlib.contextmanager
    def __convert_socket_error(self) -> Iterator[None]:
        try:
            yield
        except AlreadyClosedError:
            raise
        except TruncatedMessageError as exc:
            if self.__state is ChannelState.CLOSED:
                # close() called while read_message() is waiting...
                raise self.__closed() from exc
            self.__logger.debug("End of stream reached (%s:%d)", self.__host, self.__port)
            raise
        except ConnectionError as exc:
            raise self.__abort() from exc
        except OSError as exc:
            if exc.errno in constants.CLOSED_SOCKET_ERRNOS:
                if self.__state is ChannelState.CLOSED:
                    raise self.__closed() from exc
                exc.add_note("The socket file descriptor was closed unexpectedly.")
            raise

    @staticmethod
    def __abort() -> OSError:
        return _utils.error_from_errno(_errno.ECONNABORTED)

    @staticmethod
    def __closed() -> AlreadyClosedError:
        return AlreadyClosedError("Closed channel")

    @property
    @final
    def host(self) -> str:
        """The remote host given at construction. Read-only attribute."""
        return self.__host

    @property
    @final
    def port(self) -> int:
        """The remote port number given at construction. Read-only attribute."""
        return self.__port

    @property
    @final
    def state(self) -> ChannelState:
        """The current lifecycle state. Read-only attribute."""
        return self.__state

    @property
    @final
    def encoding(self) -> str:
        """The default string encoding. Read-only attribute."""
        return self.__framing.encoding


def open_channel(host: str, port: int, /, **kwargs: Any) -> DelimitedMessageChannel:
    """
    Creates a :class:`DelimitedMessageChannel` and opens it.

    Parameters:
        host: The remote host name or IP address.
        port: The remote port number.
        kwargs: Other parameters given to :class:`DelimitedMessageChannel`.

    Raises:
        ChannelOpenError: The host name could not be resolved, or the connection could not be established.

    Returns:
        an open channel.
    """
    channel = DelimitedMessageChannel(host, port, **kwargs)
    channel.open()
    return channel
