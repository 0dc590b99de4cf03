"""Binary (de)serialization of cached nodes, ways and relations."""

from __future__ import annotations

from typing import Iterable, Sequence

from imposm.binary.tags import tags_as_array, tags_from_array
from imposm.binary.varint import decode_uvarint, decode_varint, encode_uvarint, encode_varint
from imposm.element import Member, MemberType, Node, Relation, Way

COORD_FACTOR = 11930464.7083  # ((2<<31)-1)/360.0


def coord_to_int(coord: float) -> int:
    """Convert a WGS84 coordinate into an unsigned 32-bit integer."""
    return int((coord + 180.0) * COORD_FACTOR) & 0xFFFFFFFF


def int_to_coord(value: int) -> float:
    """Convert an unsigned 32-bit integer back into a WGS84 coordinate."""
    return value / COORD_FACTOR - 180.0


def delta_pack(values: Sequence[int]) -> list[int]:
    """Return the first value followed by the differences to each predecessor."""
    values = list(values)
    return values[:1] + [cur - prev for prev, cur in zip(values, values[1:])]


def delta_unpack(values: Sequence[int]) -> list[int]:
    """Reverse :func:`delta_pack`."""
    result: list[int] = []
    for value in values:
        result.append(value + result[-1] if result else value)
    return result


def _encode_strings(strings: Sequence[str]) -> bytes:
    out = bytearray(encode_uvarint(len(strings)))
    for s in strings:
        raw = s.encode("utf-8")
        out += encode_uvarint(len(raw))
        out += raw
    return bytes(out)


def _decode_strings(buf: bytes, offset: int) -> tuple[list[str], int]:
    count, offset = decode_uvarint(buf, offset)
    result = []
    for _ in range(count):
        length, offset = decode_uvarint(buf, offset)
        end = offset + length
        if end > len(buf):
            raise ValueError("truncated string")
        result.append(bytes(buf[offset:end]).decode("utf-8"))
        offset = end
    return result, offset


def _encode_varints(values: Iterable[int]) -> bytes:
    return b"".join(encode_varint(v) for v in values)


def _check_end(buf: bytes, offset: int) -> None:
    if offset != len(buf):
        raise ValueError("trailing data after record")


def marshal_node(node: Node) -> bytes:
    """Serialize coordinates and tags of a node (not its ID)."""
    return (
        encode_uvarint(coord_to_int(node.long))
        + encode_uvarint(coord_to_int(node.lat))
        + _encode_strings(tags_as_array(node.tags))
    )


def unmarshal_node(data: bytes) -> Node:
    long_int, offset = decode_uvarint(data, 0)
    lat_int, offset = decode_uvarint(data, offset)
    tags, offset = _decode_strings(data, offset)
    _check_end(data, offset)
    return Node(tags=tags_from_array(tags), long=int_to_coord(long_int), lat=int_to_coord(lat_int))


def marshal_way(way: Way) -> bytes:
    """Serialize node refs and tags of a way (not its ID)."""
    return (
        encode_uvarint(len(way.refs))
        + _encode_varints(delta_pack(way.refs))
        + _encode_strings(tags_as_array(way.tags))
    )


def unmarshal_way(data: bytes) -> Way:
    count, offset = decode_uvarint(data, 0)
    deltas = []
    for _ in range(count):
        delta, offset = decode_varint(data, offset)
        deltas.append(delta)
    tags, offset = _decode_strings(data, offset)
    _check_end(data, offset)
    return Way(tags=tags_from_array(tags), refs=delta_unpack(deltas))


def marshal_relation(relation: Relation) -> bytes:
    """Serialize members and tags of a relation (not its ID)."""
    out = bytearray(encode_uvarint(len(relation.members)))
    for member in relation.members:
        out += encode_varint(member.id)
        out += encode_uvarint(int(member.type))
    out += _encode_strings([member.role for member in relation.members])
    out += _encode_strings(tags_as_array(relation.tags))
    return bytes(out)


def unmarshal_relation(data: bytes) -> Relation:
    count, offset = decode_uvarint(data, 0)
    ids_and_types = []
    for _ in range(count):
        member_id, offset = decode_varint(data, offset)
        member_type, offset = decode_uvarint(data, offset)
        ids_and_types.append((member_id, MemberType(member_type)))
    roles, offset = _decode_strings(data, offset)
    if len(roles) != count:
        raise ValueError("member roles do not match member count")
    tags, offset = _decode_strings(data, offset)
    _check_end(data, offset)
    members = [
        Member(id=member_id, type=member_type, role=role)
        for (member_id, member_type), role in zip(ids_and_types, roles)
    ]
    return Relation(tags=tags_from_array(tags), members=members)