"""Cache of ways."""

from __future__ import annotations

import os
from typing import Iterable, Iterator, Optional, Sequence, Union

from imposm.binary.serialize import marshal_way, unmarshal_way
from imposm.cache.options import CacheOptions, global_cache_options
from imposm.cache.store import SKIP, KeyValueStore, NotFoundError, id_from_key, id_to_key
from imposm.element import Member, MemberType, Way


class WaysCache(KeyValueStore):
    """Stores ways with their node refs and tags."""

    def __init__(self, path: Union[str, os.PathLike], options: Optional[CacheOptions] = None):
        super().__init__(path, options if options is not None else global_cache_options().ways)

    def put_way(self, way: Way) -> None:
        if way.id == SKIP:
            return
        self.put(id_to_key(way.id), marshal_way(way))

    def put_ways(self, ways: Iterable[Way]) -> None:
        self.write_batch((id_to_key(way.id), marshal_way(way)) for way in ways if way.id != SKIP)

    def get_way(self, id_: int) -> Way:
        data = self.get(id_to_key(id_))
        if data is None:
            raise NotFoundError(f"way {id_} not found")
        way = unmarshal_way(data)
        way.id = id_
        return way

    def delete_way(self, id_: int) -> None:
        self.delete(id_to_key(id_))

    def iter(self) -> Iterator[Way]:
        """Yield all cached ways in ID order."""
        for key, data in self.items():
            way = unmarshal_way(data)
            way.id = id_from_key(key)
            yield way

    def fill_members(self, members: Optional[Sequence[Member]]) -> None:
        """Attach the cached way to every way member; raises if one is missing."""
        for member in members or ():
            if member.type == MemberType.WAY:
                member.way = self.get_way(member.id)