"""Binary encoding of message batches exchanged during a session.

Layout (little endian, fixed-width integers):

* an optional offset is one tag byte (0 = absent, 1 = present) followed,
  when present, by a u32;
* a message list is a u64 count followed by, for each message, a u64 payload
  length, the payload bytes and the u32 message id.

A client request is ``(offset, messages)``; a server reply is
``(messages, offset)``.
"""

from __future__ import annotations

import struct
from collections.abc import Iterable

_U32_MAX = 0xFFFFFFFF

MessageLog = list[tuple[bytes, int]]


class WireFormatError(ValueError):
    """Data that does not follow the wire format."""


class _Reader:
    def __init__(self, data: bytes) -> None:
        self._data = memoryview(bytes(data))
        self._pos = 0

    def take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise WireFormatError("unexpected end of data")
        chunk = bytes(self._data[self._pos:end])
        self._pos = end
        return chunk

    def u8(self) -> int:
        return self.take(1)[0]

    def u32(self) -> int:
        return struct.unpack("<I", self.take(4))[0]

    def u64(self) -> int:
        return struct.unpack("<Q", self.take(8))[0]

    def optional_u32(self) -> int | None:
        tag = self.u8()
        if tag == 0:
            return None
        if tag == 1:
            return self.u32()
        raise WireFormatError(f"invalid option tag {tag}")

    def messages(self) -> MessageLog:
        count = self.u64()
        result: MessageLog = []
        for _ in range(count):
            payload = self.take(self.u64())
            result.append((payload, self.u32()))
        return result


def _check_u32(value: int, what: str) -> int:
    if not isinstance(value, int) or not 0 <= value <= _U32_MAX:
        raise WireFormatError(f"{what} must be an integer in 0..{_U32_MAX}, got {value!r}")
    return value


def _pack_optional(offset: int | None) -> bytes:
    if offset is None:
        return b"\x00"
    return b"\x01" + struct.pack("<I", _check_u32(offset, "offset"))


def _pack_messages(messages: Iterable[tuple[bytes, int]]) -> bytes:
    items = list(messages)
    parts = [struct.pack("<Q", len(items))]
    for payload, message_id in items:
        payload = bytes(payload)
        parts.append(struct.pack("<Q", len(payload)))
        parts.append(payload)
        parts.append(struct.pack("<I", _check_u32(message_id, "message id")))
    return b"".join(parts)


def encode_messages(offset: int | None, messages: Iterable[tuple[bytes, int]]) -> bytes:
    """Encode a client request: the last offset it received and its queued messages."""
    return _pack_optional(offset) + _pack_messages(messages)


def decode_messages(data: bytes) -> tuple[int | None, MessageLog]:
    """Decode a client request into ``(offset, messages)``.

    Trailing bytes after the encoded value are ignored.
    """
    reader = _Reader(data)
    offset = reader.optional_u32()
    return offset, reader.messages()


def encode_reply(messages: Iterable[tuple[bytes, int]], offset: int | None) -> bytes:
    """Encode a server reply: its queued messages and the last offset it received."""
    return _pack_messages(messages) + _pack_optional(offset)


def decode_reply(data: bytes) -> tuple[MessageLog, int | None]:
    """Decode a server reply into ``(messages, offset)``.

    Trailing bytes after the encoded value are ignored.
    """
    reader = _Reader(data)
    messages = reader.messages()
    return messages, reader.optional_u32()