"""Coordinates cache that stores nodes in delta-encoded bunches."""

from __future__ import annotations

import bisect
import itertools
import os
import threading
from collections import OrderedDict
from dataclasses import replace
from operator import attrgetter
from typing import Optional, Sequence, Union

from imposm.binary.deltacoords import marshal_delta_nodes, unmarshal_delta_nodes
from imposm.cache.options import CoordsCacheOptions, global_cache_options
from imposm.cache.store import SKIP, KeyValueStore, NotFoundError, id_to_key
from imposm.element import Node, Way

_node_id = attrgetter("id")


def remove_skipped_nodes(nodes: Sequence[Node]) -> list[Node]:
    """Return the nodes whose ID is not SKIP, in order."""
    return [node for node in nodes if node.id != SKIP]


class _CoordsBunch:
    """Nodes sorted by ID that share one storage key."""

    def __init__(self, bunch_id: int):
        self.id = bunch_id
        self.coords: list[Node] = []
        self.lock = threading.Lock()
        self.needs_write = False

    def _index(self, id_: int) -> int:
        return bisect.bisect_left(self.coords, id_, key=_node_id)

    def get_coord(self, id_: int) -> Node:
        idx = self._index(id_)
        if idx < len(self.coords) and self.coords[idx].id == id_:
            return replace(self.coords[idx])
        raise NotFoundError(f"coord {id_} not found")

    def delete_coord(self, id_: int) -> None:
        idx = self._index(id_)
        if idx < len(self.coords) and self.coords[idx].id == id_:
            del self.coords[idx]

    def put_coord(self, node: Node) -> None:
        """Insert or overwrite a single node."""
        idx = self._index(node.id)
        if idx < len(self.coords) and self.coords[idx].id == node.id:
            self.coords[idx] = replace(node)
        else:
            self.coords.insert(idx, replace(node))

    def put_coords(self, nodes: Sequence[Node]) -> None:
        """Add many new nodes at once; duplicates and updates are not handled."""
        self.coords.extend(replace(node) for node in nodes)
        self.coords.sort(key=_node_id)


class DeltaCoordsCache(KeyValueStore):
    """Node coordinates grouped into bunches with an LRU of loaded bunches."""

    def __init__(
        self, path: Union[str, os.PathLike], options: Optional[CoordsCacheOptions] = None
    ):
        options = options if options is not None else global_cache_options().coords
        if options.bunch_size <= 0:
            raise ValueError("bunch size must be positive")
        super().__init__(path, options)
        self._bunch_size = options.bunch_size
        self._capacity = options.bunch_cache_capacity
        self._table: OrderedDict[int, _CoordsBunch] = OrderedDict()
        self._table_lock = threading.Lock()
        self._linear_import = False
        self._read_only = False

    def set_linear_import(self, value: bool) -> None:
        self._linear_import = value

    def set_read_only(self, value: bool) -> None:
        self._read_only = value

    def flush(self) -> None:
        """Write all modified bunches and drop them from memory."""
        with self._table_lock:
            for bunch_id, bunch in self._table.items():
                if bunch.needs_write:
                    self._put_coords_packed(bunch_id, bunch.coords)
            self._table.clear()

    def close(self) -> None:
        self.flush()
        super().close()

    def get_coord(self, id_: int) -> Node:
        bunch = self._get_bunch(self._bunch_id(id_))
        if self._read_only:
            bunch.lock.release()
            return bunch.get_coord(id_)
        try:
            return bunch.get_coord(id_)
        finally:
            bunch.lock.release()

    def delete_coord(self, id_: int) -> None:
        bunch = self._get_bunch(self._bunch_id(id_))
        try:
            bunch.delete_coord(id_)
            bunch.needs_write = True
        finally:
            bunch.lock.release()

    def fill_way(self, way: Optional[Way]) -> None:
        """Set ``way.nodes`` from the cached coords of its refs."""
        if way is None:
            return
        nodes = []
        bunch: Optional[_CoordsBunch] = None
        last_bunch_id: Optional[int] = None
        try:
            for ref in way.refs:
                bunch_id = self._bunch_id(ref)
                if bunch_id != last_bunch_id:
                    if bunch is not None:
                        bunch.lock.release()
                        bunch = None
                    bunch = self._get_bunch(bunch_id)
                    last_bunch_id = bunch_id
                nodes.append(bunch.get_coord(ref))
        finally:
            if bunch is not None:
                bunch.lock.release()
        way.nodes = nodes

    def put_coords(self, nodes: Sequence[Node]) -> None:
        """Store nodes; they must be sorted by ID."""
        nodes = remove_skipped_nodes(nodes)
        if not nodes:
            return
        total = len(nodes)
        groups = [
            (bunch_id, list(group))
            for bunch_id, group in itertools.groupby(nodes, key=lambda n: self._bunch_id(n.id))
        ]
        end = 0
        for pos, (bunch_id, group) in enumerate(groups):
            end += len(group)
            is_last = pos == len(groups) - 1
            if (
                not is_last
                and self._linear_import
                and self._bunch_size < end < total - self._bunch_size
            ):
                # Away from the boundaries no other writer touches this bunch.
                self._put_coords_packed(bunch_id, group)
                continue
            bunch = self._get_bunch(bunch_id)
            try:
                if self._linear_import:
                    bunch.put_coords(group)
                else:
                    for node in group:
                        bunch.put_coord(node)
                bunch.needs_write = True
            finally:
                bunch.lock.release()

    def first_ref_is_cached(self, refs: Sequence[int]) -> bool:
        if not refs:
            return False
        try:
            self.get_coord(refs[0])
        except NotFoundError:
            return False
        return True

    def _bunch_id(self, node_id: int) -> int:
        quotient = abs(node_id) // self._bunch_size
        return -quotient if node_id < 0 else quotient

    def _put_coords_packed(self, bunch_id: int, nodes: Sequence[Node]) -> None:
        key = id_to_key(bunch_id)
        if not nodes:
            self.delete(key)
        else:
            self.put(key, marshal_delta_nodes(nodes))

    def _get_coords_packed(self, bunch_id: int) -> list[Node]:
        data = self.get(id_to_key(bunch_id))
        if data is None:
            return []
        return unmarshal_delta_nodes(data)

    def _get_bunch(self, bunch_id: int) -> _CoordsBunch:
        """Return the bunch with its lock held by the caller."""
        with self._table_lock:
            bunch = self._table.get(bunch_id)
            needs_load = bunch is None
            if bunch is None:
                bunch = _CoordsBunch(bunch_id)
                self._table[bunch_id] = bunch
            else:
                self._table.move_to_end(bunch_id)
            bunch.lock.acquire()
            try:
                self._check_capacity()
            except BaseException:
                bunch.lock.release()
                raise
        if needs_load:
            try:
                bunch.coords = self._get_coords_packed(bunch_id)
            except BaseException:
                bunch.lock.release()
                raise
        return bunch

    def _check_capacity(self) -> None:
        while len(self._table) > self._capacity:
            bunch_id, bunch = self._table.popitem(last=False)
            if bunch.needs_write:
                self._put_coords_packed(bunch_id, bunch.coords)