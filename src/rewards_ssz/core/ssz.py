"""
SSZ primitives

Little-endian unsigned integers, fixed-length byte vectors, 4-byte offsets
and lists of fixed-size elements: the subset of SimpleSerialize the rewards
file layout needs.
"""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

BYTES_PER_LENGTH_OFFSET: int = 4


class SSZError(ValueError):
    """Base exception for SSZ serialization failures."""
    pass


class SSZDecodeError(SSZError):
    """Raised when bytes are truncated or violate the layout."""
    pass


class SSZEncodeError(SSZError):
    """Raised when a value does not fit its SSZ type."""
    pass


def encode_uint(value: int, size: int, what: str = "value") -> bytes:
    if not isinstance(value, int) or isinstance(value, bool):
        raise SSZEncodeError(f"{what}: expected int, got {type(value).__name__}")
    if value < 0 or value >= 1 << (8 * size):
        raise SSZEncodeError(f"{what}: {value} does not fit in uint{8 * size}")
    return value.to_bytes(size, "little")


def encode_uint64(value: int, what: str = "value") -> bytes:
    return encode_uint(value, 8, what)


def encode_uint256(value: int, what: str = "value") -> bytes:
    return encode_uint(value, 32, what)


def encode_fixed_bytes(value: bytes, size: int, what: str = "value") -> bytes:
    if len(value) != size:
        raise SSZEncodeError(f"{what}: expected {size} bytes, got {len(value)}")
    return bytes(value)


def encode_container(fields: Sequence[Tuple[bool, bytes]]) -> bytes:
    """
    Serialize a container.

    Each field is (is_variable, encoded). Fixed fields are inlined; variable
    fields are replaced by an offset in the fixed part and appended after it
    in declaration order.
    """
    fixed_size = sum(
        BYTES_PER_LENGTH_OFFSET if is_variable else len(encoded)
        for is_variable, encoded in fields
    )
    fixed_parts: List[bytes] = []
    variable_parts: List[bytes] = []
    offset = fixed_size
    for is_variable, encoded in fields:
        if is_variable:
            fixed_parts.append(encode_uint(offset, BYTES_PER_LENGTH_OFFSET, "offset"))
            variable_parts.append(encoded)
            offset += len(encoded)
        else:
            fixed_parts.append(encoded)
    if offset >= 1 << (8 * BYTES_PER_LENGTH_OFFSET):
        raise SSZEncodeError(f"container too large for 4-byte offsets: {offset} bytes")
    return b"".join(fixed_parts) + b"".join(variable_parts)


def split_fixed_list(
    data: bytes,
    element_size: int,
    max_length: Optional[int],
    what: str,
) -> List[bytes]:
    """Split a list of fixed-size elements into per-element chunks."""
    if len(data) % element_size:
        raise SSZDecodeError(
            f"{what}: {len(data)} bytes is not a multiple of the element size {element_size}"
        )
    count = len(data) // element_size
    if max_length is not None and count > max_length:
        raise SSZDecodeError(f"{what}: {count} elements exceeds the limit of {max_length}")
    return [data[i * element_size:(i + 1) * element_size] for i in range(count)]


class SSZReader:
    """Sequential reader over the fixed part of a container."""

    def __init__(self, data: bytes):
        self._data = data
        self._pos = 0

    @property
    def position(self) -> int:
        return self._pos

    def read(self, size: int, what: str) -> bytes:
        end = self._pos + size
        if end > len(self._data):
            raise SSZDecodeError(
                f"{what}: truncated input, need {size} bytes at offset {self._pos}, "
                f"only {len(self._data) - self._pos} left"
            )
        chunk = self._data[self._pos:end]
        self._pos = end
        return chunk

    def uint64(self, what: str) -> int:
        return int.from_bytes(self.read(8, what), "little")

    def uint256(self, what: str) -> int:
        return int.from_bytes(self.read(32, what), "little")

    def fixed_bytes(self, size: int, what: str) -> bytes:
        return self.read(size, what)

    def offset(self, what: str) -> int:
        return int.from_bytes(self.read(BYTES_PER_LENGTH_OFFSET, what), "little")
