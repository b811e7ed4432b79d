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
from __future__ import annotations

__all__ = [
    "ResourceGuard",
    "WarnCallback",
    "check_inet_socket_family",
    "check_socket_is_connected",
    "check_stream_socket",
    "error_from_errno",
    "exception_with_notes",
    "is_socket_connected",
    "validate_buffer_size",
]

import errno as _errno
import os
import socket as _socket
from abc import abstractmethod
from collections.abc import Iterable
from typing import Any, Protocol, TypeVar, overload

from . import constants

_T_Exception = TypeVar("_T_Exception", bound=BaseException)


def error_from_errno(errno: int, msg: str = "{strerror}") -> OSError:
    msg = msg.format(strerror=os.strerror(errno))
    return OSError(errno, msg)


def check_inet_socket_family(family: int) -> None:
    if family not in {_socket.AF_INET, _socket.AF_INET6}:
        raise ValueError("Only these families are supported: AF_INET, AF_INET6")


def check_stream_socket(sock: _socket.socket) -> None:
    if sock.type != _socket.SOCK_STREAM:
        raise ValueError("A 'SOCK_STREAM' socket is expected")


def is_socket_connected(sock: _socket.socket) -> bool:
    try:
        sock.getpeername()
    except OSError as exc:
        if exc.errno not in constants.NOT_CONNECTED_SOCKET_ERRNOS:
            raise
        connected = False
    else:
        connected = True
    return connected


def check_socket_is_connected(sock: _socket.socket) -> None:
    if not is_socket_connected(sock):
        raise error_from_errno(_errno.ENOTCONN)


def validate_buffer_size(buffer_size: int) -> int:
    if not isinstance(buffer_size, int) or buffer_size <= 0:
        raise ValueError("'buffer_size' must be a strictly positive integer")
    return buffer_size


def exception_with_notes(exc: _T_Exception, notes: str | Iterable[str]) -> _T_Exception:
    if isinstance(notes, str):
        notes = (notes,)
    for note in notes:
        exc.add_note(note)
    return exc


class WarnCallback(Protocol):
    @overload
    @abstractmethod
    def __call__(
        self,
        /,
        message: str,
        category: type[Warning] | None = None,
        stacklevel: int = 1,
        source: Any | None = None,
    ) -> None: ...

    @overload
    @abstractmethod
    def __call__(
        self,
        /,
        message: Warning,
        category: Any = None,
        stacklevel: int = 1,
        source: Any | None = None,
    ) -> None: ...


class ResourceGuard:
    __slots__ = (
        "__held",
        "__msg",
    )

    def __init__(self, message: str) -> None:
        self.__held: bool = False
        self.__msg = message

    def __enter__(self) -> None:
        if self.__held:
            from ..exceptions import BusyResourceError

            msg = self.__msg
            raise BusyResourceError(msg)
        self.__held = True

    def __exit__(self, *args: Any) -> None:
        if not self.__held:
            raise AssertionError("ResourceGuard released too many times")
        self.__held = False
