"""Cache of tagged nodes."""

from __future__ import annotations

import os
from typing import Iterable, Iterator, Optional, Union

from imposm.binary.serialize import marshal_node, unmarshal_node
from imposm.cache.options import CacheOptions, global_cache_options
from imposm.cache.store import SKIP, KeyValueStore, NotFoundError, id_from_key, id_to_key
from imposm.element import Node


class NodesCache(KeyValueStore):
    """Stores nodes with tags; untagged nodes are not kept."""

    def __init__(self, path: Union[str, os.PathLike], options: Optional[CacheOptions] = None):
        super().__init__(path, options if options is not None else global_cache_options().nodes)

    def put_node(self, node: Node) -> None:
        if node.id == SKIP or not node.tags:
            return
        self.put(id_to_key(node.id), marshal_node(node))

    def put_nodes(self, nodes: Iterable[Node]) -> int:
        """Store all tagged nodes in one batch; return how many were stored."""
        batch = [
            (id_to_key(node.id), marshal_node(node))
            for node in nodes
            if node.id != SKIP and node.tags
        ]
        self.write_batch(batch)
        return len(batch)

    def get_node(self, id_: int) -> Node:
        data = self.get(id_to_key(id_))
        if data is None:
            raise NotFoundError(f"node {id_} not found")
        node = unmarshal_node(data)
        node.id = id_
        return node

    def delete_node(self, id_: int) -> None:
        self.delete(id_to_key(id_))

    def iter(self) -> Iterator[Node]:
        """Yield all cached nodes in ID order."""
        for key, data in self.items():
            node = unmarshal_node(data)
            node.id = id_from_key(key)
            yield node