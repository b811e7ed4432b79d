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
"""Delimiter-based text message framing module.

A message is a sequence of encoded text terminated by a delimiter string which is not part of the payload.
The delimiter is searched in the byte domain, and the payload is decoded once the delimiter has been found,
so multi-byte characters split across two received chunks are decoded correctly.
"""

from __future__ import annotations

__all__ = ["DelimitedTextFraming", "GeneratorStreamReader"]

import codecs
from collections.abc import Generator
from typing import Final, final

from .exceptions import LimitOverrunError, MessageDecodeError
from .lowlevel.constants import DEFAULT_ENCODING

# Codecs whose code units are wider than one byte
_CODE_UNIT_SIZES: Final[dict[str, int]] = {
    "utf-16": 2,
    "utf-16-le": 2,
    "utf-16-be": 2,
    "utf-32": 4,
    "utf-32-le": 4,
    "utf-32-be": 4,
}


def _find_aligned(buffer: bytes, separator: bytes, start: int, alignment: int, last_occurrence: bool) -> int:
    # Occurrences which do not start on a code unit boundary are in the middle of a character.
    if last_occurrence:
        end = len(buffer)
        while (sepidx := buffer.rfind(separator, start, end)) > 0 and sepidx % alignment:
            end = sepidx + len(separator) - 1
    else:
        while (sepidx := buffer.find(separator, start)) > 0 and sepidx % alignment:
            start = sepidx + 1
    return sepidx


class GeneratorStreamReader:
    """
    A binary stream-like object using an in-memory bytes buffer.

    The "blocking" operation is done with the generator's :keyword:`yield` statement.
    """

    __slots__ = ("__buffer",)

    def __init__(self) -> None:
        self.__buffer: bytes = b""

    def read_all(self) -> bytes:
        """
        Read and return all the bytes currently in the reader.

        Returns:
            a :class:`bytes` object.
        """

        data, self.__buffer = self.__buffer, b""
        return data

    def read_until(
        self,
        separator: bytes,
        limit: int | None = None,
        *,
        alignment: int = 1,
        last_occurrence: bool = False,
    ) -> Generator[None, bytes, bytes]:
        r"""
        Read data from the stream until `separator` is found.

        On success, the data and separator will be removed from the internal buffer (consumed).
        The returned data does not include the separator.

        Each time new data is received, only the new bytes (plus the last ``len(separator) - 1`` bytes of the previous buffer,
        in case the separator has been split in two) are searched.

        If the amount of data read exceeds `limit`, a :exc:`.LimitOverrunError` exception is raised.

        Example::

            def incremental_deserialize(self) -> Generator[None, bytes, tuple[str, bytes]]:
                reader = GeneratorStreamReader()

                line: bytes = yield from reader.read_until(b"\r\n", limit=65535)
                assert not line.endswith(b"\r\n")

                ...

        Parameters:
            separator: The byte sequence to find.
            limit: The maximum buffer size. :data:`None` means no limit.
            alignment: Only occurrences starting at a multiple of `alignment` are taken into account.
            last_occurrence: If :data:`True`, stop at the last occurrence of `separator` found in the buffer
                             instead of the first one.

        Raises:
            LimitOverrunError: Reached buffer size limit.

        Yields:
            until `separator` is found in the buffer.

        Returns:
            a :class:`bytes` object.
        """

        if limit is not None and limit <= 0:
            raise ValueError("limit must be a positive integer")
        if alignment <= 0:
            raise ValueError("alignment must be a positive integer")
        seplen: int = len(separator)
        if seplen < 1:
            raise ValueError("Empty separator")

        buffer = self.__buffer
        while not buffer:
            self.__buffer = buffer = bytes((yield))

        offset: int = 0
        sepidx: int = -1
        while True:
            buflen = len(buffer)

            if buflen - offset >= seplen:
                # There is no occurrence before 'offset', so the last occurrence in the whole buffer
                # is the last one starting from 'offset'.
                sepidx = _find_aligned(buffer, separator, offset, alignment, last_occurrence)
                if sepidx != -1:
                    break

                offset = buflen + 1 - seplen
                if limit is not None and offset > limit:
                    msg = "Delimiter is not found, and chunk exceed the limit"
                    raise LimitOverrunError(msg, buffer, offset - offset % alignment, separator, separator_found=False)

            buffer += yield
            self.__buffer = buffer

        if limit is not None and sepidx > limit:
            msg = "Delimiter is found, but chunk is longer than limit"
            raise LimitOverrunError(msg, buffer, sepidx, separator)

        data = buffer[:sepidx]
        self.__buffer = buffer[sepidx + seplen :]

        return data

    def skip_until(self, separator: bytes, *, alignment: int = 1) -> Generator[None, bytes, int]:
        """
        Drop data from the stream until `separator` is found. The separator is dropped too.

        While waiting, only the bytes which may be the beginning of `separator` are kept in the buffer.

        Parameters:
            separator: The byte sequence to find.
            alignment: Only occurrences starting at a multiple of `alignment` are taken into account.

        Yields:
            until `separator` is found in the buffer.

        Returns:
            the number of dropped bytes.
        """

        if alignment <= 0:
            raise ValueError("alignment must be a positive integer")
        seplen: int = len(separator)
        if seplen < 1:
            raise ValueError("Empty separator")

        buffer = self.__buffer
        nbytes_dropped: int = 0
        while (sepidx := _find_aligned(buffer, separator, 0, alignment, False)) == -1:
            nbytes = max(len(buffer) + 1 - seplen, 0)
            nbytes -= nbytes % alignment
            nbytes_dropped += nbytes
            self.__buffer = buffer = buffer[nbytes:]
            buffer += yield
            self.__buffer = buffer

        self.__buffer = buffer[sepidx + seplen :]
        return nbytes_dropped + sepidx + seplen


class DelimitedTextFraming:
    """
    Encoding rules and delimiter framing shared by the read and write sides of a channel.
    """

    __slots__ = (
        "__encoding",
        "__unicode_errors",
        "__limit",
        "__code_unit_size",
        "__discard_trailing",
        "__debug",
    )

    def __init__(
        self,
        *,
        encoding: str = DEFAULT_ENCODING,
        unicode_errors: str = "strict",
        limit: int | None = None,
        discard_trailing: bool = False,
        debug: bool = False,
    ) -> None:
        """
        Parameters:
            encoding: String encoding. Defaults to ``"ascii"``.
            unicode_errors: Controls how encoding errors are handled.
            limit: Maximum buffer size when waiting for a delimiter. By default, there is no limit.
            discard_trailing: If :data:`True`, a message ends at the *last* delimiter found in the received data,
                              and everything received after it is dropped.
                              By default, a message ends at the first delimiter and the following bytes are kept
                              for the next message.
            debug: If :data:`True`, add information to :exc:`.MessageDecodeError` via the ``error_info`` attribute.

        Raises:
            LookupError: Unknown `encoding` or `unicode_errors` handler.
            ValueError: `limit` is negative or null.
        """
        if limit is not None and limit <= 0:
            raise ValueError("limit must be a positive integer")
        codec_info = codecs.lookup(encoding)
        codecs.lookup_error(unicode_errors)
        super().__init__()
        self.__encoding: str = encoding
        self.__unicode_errors: str = unicode_errors
        self.__limit: int | None = limit
        self.__code_unit_size: int = _CODE_UNIT_SIZES.get(codec_info.name, 1)
        self.__discard_trailing: bool = bool(discard_trailing)
        self.__debug: bool = bool(debug)

    def encode(self, text: str, encoding: str | None = None) -> bytes:
        """
        Encodes the given string to bytes.

        Example:
            >>> framing = DelimitedTextFraming()
            >>> framing.encode("ping")
            b'ping'

        Parameters:
            text: The string to encode.
            encoding: If given, overrides the default encoding for this call.

        Raises:
            TypeError: `text` is not a :class:`str`.
            UnicodeError: Invalid string.

        Returns:
            the byte sequence.

        Important:
            The output **does not** contain any delimiter.
        """
        if encoding is None:
            encoding = self.__encoding
        return bytes(text, encoding, self.__unicode_errors)

    def encode_delimiter(self, delimiter: str) -> bytes:
        """
        Encodes `delimiter` with the default encoding.

        Raises:
            TypeError: `delimiter` is not a :class:`str`.
            ValueError: `delimiter` is empty.
            UnicodeError: `delimiter` cannot be represented with the encoding.
        """
        if not isinstance(delimiter, str):
            raise TypeError(f"Expected a str object, got {delimiter!r}")
        separator = bytes(delimiter, self.__encoding, "strict")
        if not separator:
            raise ValueError("Empty delimiter")
        return separator

    def decode(self, data: bytes, remaining_data: bytes = b"") -> str:
        """
        Decodes a complete message.

        Parameters:
            data: The message bytes, without delimiter.
            remaining_data: Bytes received after the message, given back through the raised error if any.

        Raises:
            MessageDecodeError: :class:`UnicodeError` raised when decoding `data`.

        Returns:
            the string.
        """
        try:
            return str(data, self.__encoding, self.__unicode_errors)
        except UnicodeError as exc:
            msg = str(exc)
            if self.__debug:
                raise MessageDecodeError(msg, remaining_data, error_info={"data": data}) from exc
            raise MessageDecodeError(msg, remaining_data) from exc

    def incremental_deserialize(self, delimiter: str) -> Generator[None, bytes, tuple[str, bytes]]:
        """
        Returns a generator which yields until `delimiter` is found and returns the decoded string
        together with the unused trailing data.

        `delimiter` is validated immediately, before the generator is returned.

        Raises:
            TypeError: `delimiter` is not a :class:`str`.
            ValueError: `delimiter` is empty.
        """
        separator = self.encode_delimiter(delimiter)
        return self.__read_message(separator)

    def __read_message(self, separator: bytes) -> Generator[None, bytes, tuple[str, bytes]]:
        reader = GeneratorStreamReader()
        data = yield from reader.read_until(
            separator,
            limit=self.__limit,
            alignment=self.__code_unit_size,
            last_occurrence=self.__discard_trailing,
        )
        remainder = reader.read_all()
        try:
            return self.decode(data, remainder), remainder
        finally:
            del data

    def incremental_skip(self, separator: bytes) -> Generator[None, bytes, tuple[int, bytes]]:
        """
        Returns a generator which drops data until the encoded `separator` is found.

        It is used to get rid of the end of a message which exceeded the buffer limit.
        The generator returns the number of dropped bytes together with the unused trailing data.
        """
        reader = GeneratorStreamReader()
        nbytes = yield from reader.skip_until(separator, alignment=self.__code_unit_size)
        return nbytes, reader.read_all()

    @property
    @final
    def encoding(self) -> str:
        """
        String encoding. Read-only attribute.
        """
        return self.__encoding

    @property
    @final
    def unicode_errors(self) -> str:
        """
        Controls how encoding errors are handled. Read-only attribute.
        """
        return self.__unicode_errors

    @property
    @final
    def buffer_limit(self) -> int | None:
        """
        Maximum buffer size, or :data:`None` if unbounded. Read-only attribute.
        """
        return self.__limit

    @property
    @final
    def discard_trailing(self) -> bool:
        """
        Whether data received after the last delimiter is dropped. Read-only attribute.
        """
        return self.__discard_trailing

    @property
    @final
    def debug(self) -> bool:
        """
        The debug mode flag. Read-only attribute.
        """
        return self.__debug
