"""The set of caches for coords, nodes, ways and relations of an import."""

from __future__ import annotations

import os
import shutil
from typing import Iterable, Optional, Union

from imposm.cache.delta import DeltaCoordsCache
from imposm.cache.nodes import NodesCache
from imposm.cache.relations import RelationsCache
from imposm.cache.store import NotFoundError
from imposm.cache.ways import WaysCache
from imposm.element import Member, MemberType

_CACHE_NAMES = ("coords", "nodes", "ways", "relations", "inserted_ways")


class OSMCache:
    """All element caches stored below one directory."""

    def __init__(self, dir: Union[str, os.PathLike]):
        self.dir = os.fspath(dir)
        self.coords: Optional[DeltaCoordsCache] = None
        self.nodes: Optional[NodesCache] = None
        self.ways: Optional[WaysCache] = None
        self.relations: Optional[RelationsCache] = None
        self.opened = False

    def _path(self, name: str) -> str:
        return os.path.join(self.dir, name)

    def open(self) -> None:
        """Open (and create if missing) all caches."""
        os.makedirs(self.dir, mode=0o755, exist_ok=True)
        try:
            self.coords = DeltaCoordsCache(self._path("coords"))
            self.nodes = NodesCache(self._path("nodes"))
            self.ways = WaysCache(self._path("ways"))
            self.relations = RelationsCache(self._path("relations"))
        except BaseException:
            self.close()
            raise
        self.opened = True

    def close(self) -> None:
        for name in ("coords", "nodes", "ways", "relations"):
            store = getattr(self, name)
            if store is not None:
                store.close()
                setattr(self, name, None)
        self.opened = False

    def exists(self) -> bool:
        """Return True if the caches are open or any cache exists on disk."""
        if self.opened:
            return True
        return any(os.path.exists(self._path(name)) for name in _CACHE_NAMES)

    def remove(self) -> None:
        """Close and delete all caches from disk."""
        if self.opened:
            self.close()
        for name in _CACHE_NAMES:
            path = self._path(name)
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.rmtree(path)
            elif os.path.lexists(path):
                os.remove(path)

    def first_member_is_cached(self, members: Iterable[Member]) -> bool:
        """Check whether the first way or node member is cached.

        Also True if there is no way or node member at all.
        """
        for member in members:
            try:
                if member.type == MemberType.WAY:
                    self.ways.get_way(member.id)
                    return True
                if member.type == MemberType.NODE:
                    self.coords.get_coord(member.id)
                    return True
            except NotFoundError:
                return False
        return True

    def __enter__(self) -> "OSMCache":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()