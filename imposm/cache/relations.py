"""Cache of relations."""

from __future__ import annotations

import os
from typing import Iterable, Iterator, Optional, Union

from imposm.binary.serialize import marshal_relation, unmarshal_relation
from imposm.cache.options import CacheOptions, global_cache_options
from imposm.cache.store import SKIP, KeyValueStore, NotFoundError, id_from_key, id_to_key
from imposm.element import Relation


class RelationsCache(KeyValueStore):
    """Stores relations with their members and tags."""

    def __init__(self, path: Union[str, os.PathLike], options: Optional[CacheOptions] = None):
        super().__init__(path, options if options is not None else global_cache_options().relations)

    def put_relation(self, relation: Relation) -> None:
        if relation.id == SKIP:
            return
        self.put(id_to_key(relation.id), marshal_relation(relation))

    def put_relations(self, relations: Iterable[Relation]) -> None:
        """Store all tagged relations in one batch."""
        self.write_batch(
            (id_to_key(rel.id), marshal_relation(rel))
            for rel in relations
            if rel.id != SKIP and rel.tags
        )

    def iter(self) -> Iterator[Relation]:
        """Yield all cached relations in ID order."""
        for key, data in self.items():
            rel = unmarshal_relation(data)
            rel.id = id_from_key(key)
            yield rel

    def get_relation(self, id_: int) -> Relation:
        data = self.get(id_to_key(id_))
        if data is None:
            raise NotFoundError(f"relation {id_} not found")
        rel = unmarshal_relation(data)
        rel.id = id_
        return rel

    def delete_relation(self, id_: int) -> None:
        self.delete(id_to_key(id_))