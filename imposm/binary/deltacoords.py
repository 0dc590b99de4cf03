"""Delta-encoded storage of node coordinates."""

from __future__ import annotations

from typing import Iterable, Sequence

from imposm.binary.serialize import coord_to_int, int_to_coord
from imposm.binary.varint import decode_uvarint, decode_varint, encode_uvarint, encode_varint
from imposm.element import Node


class DeltaCoordsError(ValueError):
    """Raised when delta coordinates cannot be decoded."""


def _delta_varints(values: Iterable[int]) -> bytes:
    out = bytearray()
    last = 0
    for value in values:
        out += encode_varint(value - last)
        last = value
    return bytes(out)


def marshal_delta_nodes(nodes: Sequence[Node]) -> bytes:
    """Encode IDs and coordinates of ``nodes`` as delta varints."""
    return (
        encode_uvarint(len(nodes))
        + _delta_varints(node.id for node in nodes)
        + _delta_varints(coord_to_int(node.long) for node in nodes)
        + _delta_varints(coord_to_int(node.lat) for node in nodes)
    )


def _read_deltas(buf: bytes, offset: int, count: int) -> tuple[list[int], int]:
    values = []
    last = 0
    for _ in range(count):
        delta, offset = decode_varint(buf, offset)
        last += delta
        values.append(last)
    return values, offset


def unmarshal_delta_nodes(buf: bytes) -> list[Node]:
    """Decode nodes written by :func:`marshal_delta_nodes`."""
    try:
        count, offset = decode_uvarint(buf, 0)
        ids, offset = _read_deltas(buf, offset, count)
        longs, offset = _read_deltas(buf, offset, count)
        lats, offset = _read_deltas(buf, offset, count)
    except ValueError as exc:
        raise DeltaCoordsError(
            "unmarshal delta coords: missing data for varint or overflow"
        ) from exc
    return [
        Node(id=node_id, long=int_to_coord(long & 0xFFFFFFFF), lat=int_to_coord(lat & 0xFFFFFFFF))
        for node_id, long, lat in zip(ids, longs, lats)
    ]