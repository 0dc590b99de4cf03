"""Binary encoding of bunches of ID references."""

from __future__ import annotations

from typing import Sequence

from imposm.binary.varint import decode_uvarint, decode_varint, encode_uvarint, encode_varint
from imposm.element import IDRefs


class IDRefsDecodeError(ValueError):
    """Raised when an ID refs bunch is truncated or corrupt."""


def marshal_idrefs_bunch(id_refs: Sequence[IDRefs]) -> bytes:
    """Encode IDs and their refs as delta varints."""
    out = bytearray(encode_uvarint(len(id_refs)))
    last_id = 0
    for entry in id_refs:
        out += encode_varint(entry.id - last_id)
        last_id = entry.id
    for entry in id_refs:
        out += encode_uvarint(len(entry.refs))
    last_ref = 0
    for entry in id_refs:
        for ref in entry.refs:
            out += encode_varint(ref - last_ref)
            last_ref = ref
    return bytes(out)


def unmarshal_idrefs_bunch(buf: bytes) -> list[IDRefs]:
    """Decode a bunch; an empty or unreadable header yields an empty list."""
    try:
        count, offset = decode_uvarint(buf, 0)
    except ValueError:
        return []

    try:
        ids = []
        last = 0
        for _ in range(count):
            delta, offset = decode_varint(buf, offset)
            last += delta
            ids.append(last)

        ref_counts = []
        for _ in range(count):
            num_refs, offset = decode_uvarint(buf, offset)
            ref_counts.append(num_refs)

        result = []
        last = 0
        for entry_id, num_refs in zip(ids, ref_counts):
            refs = []
            for _ in range(num_refs):
                delta, offset = decode_varint(buf, offset)
                last += delta
                refs.append(last)
            result.append(IDRefs(id=entry_id, refs=refs))
    except ValueError as exc:
        raise IDRefsDecodeError("no data") from exc
    return result