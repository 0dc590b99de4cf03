"""Reverse indices used for diff imports (which ways/relations use an element)."""

from __future__ import annotations

import bisect
import os
import shutil
import threading
from dataclasses import dataclass, field
from operator import attrgetter
from typing import Iterable, Optional, Sequence, Union

from imposm.binary.idrefs import marshal_idrefs_bunch, unmarshal_idrefs_bunch
from imposm.cache.options import CacheOptions, global_cache_options
from imposm.cache.store import KeyValueStore, id_to_key
from imposm.element import IDRefs, Member, MemberType, Way

BUFFER_SIZE = 64 * 1024
_BUNCH_SIZE = 64
_entry_id = attrgetter("id")


def _bunch_id(id_: int) -> int:
    quotient = abs(id_) // _BUNCH_SIZE
    return -quotient if id_ < 0 else quotient


@dataclass
class IDRefBunch:
    """IDRefs sorted by ID that share one storage key."""

    id: int
    id_refs: list[IDRefs] = field(default_factory=list)

    def get(self, id_: int) -> Optional[IDRefs]:
        i = bisect.bisect_left(self.id_refs, id_, key=_entry_id)
        if i < len(self.id_refs) and self.id_refs[i].id == id_:
            return self.id_refs[i]
        return None

    def get_create(self, id_: int) -> IDRefs:
        i = bisect.bisect_left(self.id_refs, id_, key=_entry_id)
        if i < len(self.id_refs) and self.id_refs[i].id == id_:
            return self.id_refs[i]
        entry = IDRefs(id=id_)
        self.id_refs.insert(i, entry)
        return entry


class IDRefBunches(dict):
    """Bunch ID to :class:`IDRefBunch`."""

    def add(self, bunch_id: int, id_: int, ref: int) -> None:
        bunch = self.setdefault(bunch_id, IDRefBunch(bunch_id))
        bunch.get_create(id_).add(ref)


def merge_bunch(bunch: Sequence[IDRefs], new_bunch: Iterable[IDRefs]) -> list[IDRefs]:
    """Merge new entries into a sorted bunch; entries without refs are removed."""
    result = [IDRefs(entry.id, list(entry.refs)) for entry in bunch]
    last_idx = 0
    for new in new_bunch:
        for i in range(last_idx, len(result)):
            entry = result[i]
            if entry.id == new.id:
                if not new.refs:
                    del result[i]
                else:
                    for ref in new.refs:
                        entry.add(ref)
                last_idx = i
                break
            if entry.id > new.id:
                if new.refs:
                    result.insert(i, IDRefs(new.id, list(new.refs)))
                last_idx = i
                break
        else:
            if new.refs:
                result.append(IDRefs(new.id, list(new.refs)))
                last_idx = len(result) - 1
    return result


class RefIndex(KeyValueStore):
    """Maps IDs to sorted lists of referencing IDs, stored in bunches of 64."""

    def __init__(self, path: Union[str, os.PathLike], options: Optional[CacheOptions] = None):
        super().__init__(path, options if options is not None else global_cache_options().coords_index)
        self.linear_import = False
        self._buffer = IDRefBunches()
        self._buffer_lock = threading.Lock()

    def set_linear_import(self, value: bool) -> None:
        """Buffer additions for bulk writes; get and delete are refused meanwhile."""
        if value == self.linear_import:
            return
        if not value:
            self._write_buffer()
        self.linear_import = value

    def flush(self) -> None:
        if self.linear_import:
            self._write_buffer()

    def close(self) -> None:
        if self.linear_import:
            self.set_linear_import(False)
        super().close()

    def _check_not_linear(self, operation: str) -> None:
        if self.linear_import:
            raise RuntimeError(f"{operation} not supported in linear import mode")

    def _load(self, id_: int) -> Optional[IDRefBunch]:
        data = self.get_raw(id_)
        if data is None:
            return None
        return IDRefBunch(_bunch_id(id_), unmarshal_idrefs_bunch(data))

    def get_raw(self, id_: int) -> Optional[bytes]:
        return KeyValueStore.get(self, id_to_key(_bunch_id(id_)))

    def _store(self, bunch: IDRefBunch) -> None:
        self.put(id_to_key(bunch.id), marshal_idrefs_bunch(bunch.id_refs))

    def get(self, id_: int) -> list[int]:
        """Return the refs of ``id_`` (empty if there are none)."""
        self._check_not_linear("get")
        bunch = self._load(id_)
        if bunch is not None:
            entry = bunch.get(id_)
            if entry is not None:
                return list(entry.refs)
        return []

    def add(self, id_: int, ref: int) -> None:
        """Add a single ref, written immediately."""
        bunch = self._load(id_) or IDRefBunch(_bunch_id(id_))
        bunch.get_create(id_).add(ref)
        self._store(bunch)

    def delete_ref(self, id_: int, ref: int) -> None:
        self._check_not_linear("delete")
        bunch = self._load(id_)
        if bunch is not None:
            entry = bunch.get(id_)
            if entry is not None:
                entry.delete(ref)
                self._store(bunch)

    def delete(self, id_: int) -> None:
        """Remove all refs of ``id_``."""
        self._check_not_linear("delete")
        bunch = self._load(id_)
        if bunch is not None:
            entry = bunch.get(id_)
            if entry is not None:
                entry.refs = []
                self._store(bunch)

    def _add_ref(self, id_: int, ref: int) -> None:
        if not self.linear_import:
            self.add(id_, ref)
            return
        with self._buffer_lock:
            self._buffer.add(_bunch_id(id_), id_, ref)
            full = len(self._buffer) >= BUFFER_SIZE
        if full:
            self._write_buffer()

    def _write_buffer(self) -> None:
        with self._buffer_lock:
            buffer, self._buffer = self._buffer, IDRefBunches()
        if not buffer:
            return
        items = []
        for bunch_id, bunch in buffer.items():
            key = id_to_key(bunch_id)
            data = KeyValueStore.get(self, key)
            merged = bunch.id_refs if data is None else merge_bunch(unmarshal_idrefs_bunch(data), bunch.id_refs)
            items.append((key, marshal_idrefs_bunch(merged)))
        self.write_batch(items)


class CoordsRefIndex(RefIndex):
    """Which ways reference a node."""

    def add_from_way(self, way: Way) -> None:
        for node in way.nodes:
            self._add_ref(node.id, way.id)

    def delete_from_way(self, way: Way) -> None:
        self._check_not_linear("delete")
        for node in way.nodes:
            self.delete_ref(node.id, way.id)


class CoordsRelRefIndex(RefIndex):
    """Which relations reference a node."""

    def add_from_members(self, rel_id: int, members: Iterable[Member]) -> None:
        for member in members:
            if member.type == MemberType.NODE:
                self._add_ref(member.id, rel_id)


class WaysRefIndex(RefIndex):
    """Which relations reference a way."""

    def __init__(self, path: Union[str, os.PathLike], options: Optional[CacheOptions] = None):
        super().__init__(path, options if options is not None else global_cache_options().ways_index)

    def add_from_members(self, rel_id: int, members: Iterable[Member]) -> None:
        for member in members:
            if member.type == MemberType.WAY:
                self._add_ref(member.id, rel_id)


_INDEX_NAMES = ("coords_index", "coords_rel_index", "ways_index")


class DiffCache:
    """The reverse indices of a diff import below one directory."""

    def __init__(self, dir: Union[str, os.PathLike]):
        self.dir = os.fspath(dir)
        self.coords: Optional[CoordsRefIndex] = None
        self.coords_rel: Optional[CoordsRelRefIndex] = None
        self.ways: Optional[WaysRefIndex] = None
        self.opened = False

    def _path(self, name: str) -> str:
        return os.path.join(self.dir, name)

    def open(self) -> None:
        try:
            self.coords = CoordsRefIndex(self._path("coords_index"))
            self.coords_rel = CoordsRelRefIndex(self._path("coords_rel_index"))
            self.ways = WaysRefIndex(self._path("ways_index"))
        except BaseException:
            self.close()
            raise
        self.opened = True

    def close(self) -> None:
        for name in ("coords", "coords_rel", "ways"):
            index = getattr(self, name)
            if index is not None:
                index.close()
                setattr(self, name, None)
        self.opened = False

    def flush(self) -> None:
        for index in (self.coords, self.coords_rel, self.ways):
            if index is not None:
                index.flush()

    def exists(self) -> bool:
        if self.opened:
            return True
        return any(os.path.exists(self._path(name)) for name in _INDEX_NAMES)

    def remove(self) -> None:
        if self.opened:
            self.close()
        for name in _INDEX_NAMES:
            path = self._path(name)
            if os.path.isdir(path) and not os.path.islink(path):
                shutil.rmtree(path)
            elif os.path.lexists(path):
                os.remove(path)

    def __enter__(self) -> "DiffCache":
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()