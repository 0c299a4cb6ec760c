"""Big-endian helpers for reading and writing binary streams."""

from __future__ import annotations

from typing import BinaryIO


def _read_up_to(reader: BinaryIO, length: int) -> bytes:
    data = bytearray()
    while len(data) < length:
        chunk = reader.read(length - len(data))
        if not chunk:
            break
        data += chunk
    return bytes(data)


def read_exact(reader: BinaryIO, length: int) -> bytes:
    """Read exactly `length` bytes, raising EOFError if the stream ends first."""
    data = _read_up_to(reader, length)
    if len(data) < length:
        raise EOFError(f"expected {length} bytes, got {len(data)}")
    return data


def read_uint(reader: BinaryIO, size: int) -> int:
    """Read an unsigned big-endian integer of `size` bytes."""
    return int.from_bytes(read_exact(reader, size), "big")


def read_string(reader: BinaryIO, length: int) -> str:
    """Read at most `length` bytes and decode them as UTF-8."""
    return _read_up_to(reader, length).decode("utf-8")


def write_uint(writer: BinaryIO, value: int, size: int) -> None:
    """Write an unsigned big-endian integer of `size` bytes."""
    writer.write(value.to_bytes(size, "big"))