"""Basic OSM element types and sorted ID reference lists."""

from __future__ import annotations

import bisect
import enum
from dataclasses import dataclass, field
from typing import Optional

# Relation IDs are negated and shifted by this offset in single-table imports
# so that they never collide with (negated) way IDs.
REL_ID_OFFSET = -(10**17)


@dataclass
class IDRefs:
    """An ID together with a sorted list of unique references."""

    id: int = 0
    refs: list[int] = field(default_factory=list)

    def add(self, ref: int) -> None:
        """Insert ``ref`` keeping the list sorted; duplicates are ignored."""
        i = bisect.bisect_left(self.refs, ref)
        if i < len(self.refs) and self.refs[i] == ref:
            return
        self.refs.insert(i, ref)

    def delete(self, ref: int) -> None:
        """Remove ``ref`` if present."""
        i = bisect.bisect_left(self.refs, ref)
        if i < len(self.refs) and self.refs[i] == ref:
            del self.refs[i]


class MemberType(enum.IntEnum):
    NODE = 0
    WAY = 1
    RELATION = 2


@dataclass
class Node:
    id: int = 0
    tags: dict[str, str] = field(default_factory=dict)
    long: float = 0.0
    lat: float = 0.0


@dataclass
class Way:
    id: int = 0
    tags: dict[str, str] = field(default_factory=dict)
    refs: list[int] = field(default_factory=list)
    nodes: list[Node] = field(default_factory=list)


@dataclass
class Member:
    id: int = 0
    type: MemberType = MemberType.NODE
    role: str = ""
    way: Optional[Way] = None


@dataclass
class Relation:
    id: int = 0
    tags: dict[str, str] = field(default_factory=dict)
    members: list[Member] = field(default_factory=list)