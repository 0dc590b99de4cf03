"""Variable-length integer encoding (unsigned and zig-zag signed, 64 bit)."""

from __future__ import annotations

MAX_VARINT_LEN64 = 10

_MASK64 = (1 << 64) - 1
_INT64_MIN = -(1 << 63)
_INT64_MAX = (1 << 63) - 1


def encode_uvarint(value: int) -> bytes:
    """Encode an unsigned 64-bit integer."""
    if value < 0 or value > _MASK64:
        raise ValueError(f"value out of range for uvarint: {value}")
    out = bytearray()
    while value >= 0x80:
        out.append((value & 0x7F) | 0x80)
        value >>= 7
    out.append(value)
    return bytes(out)


def encode_varint(value: int) -> bytes:
    """Encode a signed 64-bit integer with zig-zag encoding."""
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise ValueError(f"value out of range for varint: {value}")
    return encode_uvarint(((value << 1) ^ (value >> 63)) & _MASK64)


def decode_uvarint(buf: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode an unsigned varint at ``offset``; return (value, next offset)."""
    result = 0
    shift = 0
    window = memoryview(buf)[offset : offset + MAX_VARINT_LEN64]
    for count, byte in enumerate(window):
        if count == MAX_VARINT_LEN64 - 1 and byte > 1:
            raise ValueError("varint overflows a 64-bit integer")
        if byte < 0x80:
            return result | (byte << shift), offset + count + 1
        result |= (byte & 0x7F) << shift
        shift += 7
    raise ValueError("missing data for varint")


def decode_varint(buf: bytes, offset: int = 0) -> tuple[int, int]:
    """Decode a zig-zag signed varint at ``offset``; return (value, next offset)."""
    raw, offset = decode_uvarint(buf, offset)
    value = raw >> 1
    if raw & 1:
        value = ~value
    return value, offset