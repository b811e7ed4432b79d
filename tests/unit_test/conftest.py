from __future__ import annotations

from collections.abc import Iterator
from socket import AF_INET, IPPROTO_TCP, SOCK_STREAM, socket as Socket
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from unittest.mock import MagicMock

    from pytest_mock import MockerFixture


@pytest.fixture
def remote_address() -> tuple[str, int]:
    return ("127.0.0.1", 9000)


@pytest.fixture
def local_address() -> tuple[str, int]:
    return ("127.0.0.1", 54321)


@pytest.fixture
def mock_tcp_socket(
    remote_address: tuple[str, int],
    local_address: tuple[str, int],
    mocker: MockerFixture,
) -> Iterator[MagicMock]:
    mock_socket = mocker.NonCallableMagicMock(spec=Socket, name="mock_tcp_socket")
    mock_socket.family = AF_INET
    mock_socket.type = SOCK_STREAM
    mock_socket.proto = IPPROTO_TCP
    mock_socket.fileno.return_value = 12345
    mock_socket.getpeername.return_value = remote_address
    mock_socket.getsockname.return_value = local_address

    def close_side_effect() -> None:
        mock_socket.fileno.return_value = -1

    mock_socket.close.side_effect = close_side_effect
    mock_socket.send.side_effect = lambda data: memoryview(data).nbytes

    yield mock_socket

    # Do not let the garbage collector complain about this fake file descriptor.
    mock_socket.fileno.return_value = -1
