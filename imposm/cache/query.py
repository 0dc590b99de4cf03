"""The query-cache command: dump cached nodes, ways and relations as JSON."""

from __future__ import annotations

import argparse
import json
import sys
from typing import Any, Optional, Sequence

from imposm.cache.diff import DiffCache
from imposm.cache.osm import OSMCache
from imposm.cache.store import NotFoundError
from imposm.element import MemberType, Node, Relation, Way

DEFAULT_CACHE_DIR = "/tmp/imposm"


def split_ids(ids: str) -> list[int]:
    """Parse a comma separated list of IDs."""
    try:
        return [int(part, 10) for part in ids.split(",")]
    except ValueError as exc:
        raise ValueError(f"invalid id list: {ids!r}") from exc


def _node_dict(node: Node) -> dict[str, Any]:
    return {"id": node.id, "tags": dict(node.tags), "long": node.long, "lat": node.lat}


def _way_dict(way: Way) -> dict[str, Any]:
    return {"id": way.id, "tags": dict(way.tags), "refs": list(way.refs)}


def _relation_dict(rel: Relation) -> dict[str, Any]:
    return {
        "id": rel.id,
        "tags": dict(rel.tags),
        "members": [{"id": m.id, "type": int(m.type), "role": m.role} for m in rel.members],
    }


def collect_relations(osm_cache: OSMCache, ids: Sequence[int], recurse: bool) -> dict[str, Any]:
    rels: dict[str, Any] = {}
    for id_ in ids:
        try:
            rel = osm_cache.relations.get_relation(id_)
        except NotFoundError:
            rels[str(id_)] = None
            continue
        entry = _relation_dict(rel)
        if recurse:
            way_ids = [m.id for m in rel.members if m.type == MemberType.WAY]
            ways = collect_ways(osm_cache, None, way_ids, True, False)
            if ways:
                entry["ways"] = ways
        rels[str(id_)] = entry
    return rels


def collect_ways(
    osm_cache: OSMCache,
    diff_cache: Optional[DiffCache],
    ids: Sequence[int],
    recurse: bool,
    deps: bool,
) -> dict[str, Any]:
    ways: dict[str, Any] = {}
    for id_ in ids:
        try:
            way = osm_cache.ways.get_way(id_)
        except NotFoundError:
            ways[str(id_)] = None
            continue
        entry = _way_dict(way)
        if recurse:
            nodes = collect_nodes(osm_cache, None, way.refs, False)
            if nodes:
                entry["nodes"] = nodes
        if deps:
            rel_ids = diff_cache.ways.get(id_)
            if rel_ids:
                entry["relations"] = collect_relations(osm_cache, rel_ids, False)
        ways[str(id_)] = entry
    return ways


def collect_nodes(
    osm_cache: OSMCache, diff_cache: Optional[DiffCache], ids: Sequence[int], deps: bool
) -> dict[str, Any]:
    nodes: dict[str, Any] = {}
    for id_ in ids:
        try:
            node = osm_cache.nodes.get_node(id_)
        except NotFoundError:
            try:
                node = osm_cache.coords.get_coord(id_)
            except NotFoundError:
                nodes[str(id_)] = None
                continue
        entry = _node_dict(node)
        if deps:
            way_ids = diff_cache.coords.get(id_)
            if way_ids:
                entry["ways"] = collect_ways(osm_cache, diff_cache, way_ids, False, True)
        nodes[str(id_)] = entry
    return nodes


def _parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="imposm query-cache",
        description="Query cache for nodes/ways/relations.",
        allow_abbrev=False,
    )
    parser.add_argument("-node", "--node", default="", help="node")
    parser.add_argument("-way", "--way", default="", help="way")
    parser.add_argument("-rel", "--rel", default="", help="relation")
    parser.add_argument("-full", "--full", action="store_true", help="recurse into relations/ways")
    parser.add_argument("-deps", "--deps", action="store_true", help="show dependent ways/relations")
    parser.add_argument("-cachedir", "--cachedir", default=DEFAULT_CACHE_DIR, help="cache directory")
    return parser


def query(args: Sequence[str]) -> dict[str, Any]:
    """Run a query described by command line ``args`` and return the result."""
    parser = _parser()
    if not args:
        parser.print_help(sys.stderr)
        raise SystemExit(1)
    opts = parser.parse_args(list(args))
    if opts.full and opts.deps:
        raise ValueError("cannot use -full and -deps option together")

    osm_cache = OSMCache(opts.cachedir)
    diff_cache = DiffCache(opts.cachedir)
    osm_cache.open()
    try:
        diff_cache.open()
        result: dict[str, Any] = {}
        if opts.rel:
            rels = collect_relations(osm_cache, split_ids(opts.rel), opts.full)
            if rels:
                result["relations"] = rels
        if opts.way:
            ways = collect_ways(osm_cache, diff_cache, split_ids(opts.way), opts.full, opts.deps)
            if ways:
                result["ways"] = ways
        if opts.node:
            nodes = collect_nodes(osm_cache, diff_cache, split_ids(opts.node), opts.deps)
            if nodes:
                result["nodes"] = nodes
        return result
    finally:
        diff_cache.close()
        osm_cache.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Print the query result as indented JSON."""
    args = sys.argv[1:] if argv is None else list(argv)
    try:
        result = query(args)
    except (ValueError, OSError) as exc:
        print(f"[fatal] {exc}", file=sys.stderr)
        return 1
    print(json.dumps(result, indent=2))
    return 0