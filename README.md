# imposm

Building blocks for importing OpenStreetMap data: on-disk caches for nodes,
ways, relations and coordinates, the compact binary encodings those caches
use, reverse reference indexes for applying change files, and the handling
of command-line and JSON configuration for imports.

The package has no dependencies outside the standard library.

## What is inside

- `imposm.element` – the OSM element types (`Node`, `Way`, `Relation`,
  `Member`, `MemberType`) and `IDRefs`, a sorted, duplicate-free list of
  references belonging to one ID (`add`, `delete`).
- `imposm.binary` – the encodings behind the caches:
  - `varint`: signed (zig-zag) and unsigned 64-bit variable-length integers
    (`encode_varint`, `decode_varint`, `encode_uvarint`, `decode_uvarint`);
  - `tags`: tag lists in which common tags such as `building=yes` collapse
    to a single private-use character and common keys such as `name` to a
    single control character (`tags_as_array`, `tags_from_array`,
    `append_tag`, `tag_code_point`);
  - `serialize`: nodes, ways and relations (`marshal_node`,
    `unmarshal_node`, `marshal_way`, `unmarshal_way`, `marshal_relation`,
    `unmarshal_relation`), coordinates as 32-bit integers (`coord_to_int`,
    `int_to_coord`) and delta packing of ID lists (`delta_pack`,
    `delta_unpack`);
  - `deltacoords`: lists of nodes with delta-encoded IDs and coordinates
    (`marshal_delta_nodes`, `unmarshal_delta_nodes`, `DeltaCoordsError`);
  - `idrefs`: bunches of `IDRefs` (`marshal_idrefs_bunch`,
    `unmarshal_idrefs_bunch`, `IDRefsDecodeError`).
- `imposm.cache` – the caches themselves:
  - `store.KeyValueStore` keeps byte keys and values in an SQLite file inside
    the cache directory; IDs become 8-byte big-endian keys (`id_to_key`,
    `id_from_key`);
  - `NodesCache`, `WaysCache` and `RelationsCache` store tagged nodes, ways
    and relations and iterate over them in ID order;
  - `DeltaCoordsCache` keeps coordinates in bunches with an LRU of recently
    used bunches and a linear-import mode for bulk loading;
  - `OSMCache` opens the coords, nodes, ways and relations caches below one
    directory;
  - `DiffCache` holds the reverse indexes (`CoordsRefIndex`,
    `CoordsRelRefIndex`, `WaysRefIndex`: which ways use a node, which
    relations use a node or a way) needed to apply change files;
  - `options` holds the cache tuning (`CacheOptions`,
    `CoordsCacheOptions`, `OSMCacheOptions`). `global_cache_options()`
    returns the defaults, or reads a JSON file named in the
    `IMPOSM_CACHE_CONFIG` environment variable on top of them. The bunch
    size and bunch capacity of the coords cache and the cache size of each
    store are used; the remaining fields are kept but have no effect on the
    SQLite storage.
- `imposm.config` – parsing of the options of the import, diff and run
  commands (`parse_import`, `parse_diff_import`, `parse_run_import`) and
  merging them with a JSON config file (`Base.update_from_config`,
  `Base.check`). An unreadable or invalid config file raises `ConfigError`;
  empty arguments or invalid options print a message and exit.
- `imposm.database` – a registry of database backends (`register`,
  `open_database`, `DatabaseConfig`) with a `NullDB` backend, registered as
  `null`, that discards everything and only counts what it was given.
  Unknown connection types raise `UnsupportedDatabaseError`.
- `imposm.pgparams` – PostgreSQL connection parameter helpers
  (`disable_default_ssl`, `strip_prefix_from_connection_params`) and
  `run_parallel` for running tasks in a thread pool.

Missing elements in the caches raise `NotFoundError`.

## Inspecting a cache

The `imposm-query-cache` command prints cached nodes, ways and relations as
JSON. IDs are given as comma-separated lists:

    imposm-query-cache -cachedir /tmp/imposm -way 4242,4243

Options:

- `-node IDS`, `-way IDS`, `-rel IDS` – elements to look up;
- `-full` – also resolve the nodes of ways and the member ways of relations;
- `-deps` – also show the ways and relations that depend on an element;
- `-cachedir DIR` – the cache directory (default `/tmp/imposm`).

`-full` and `-deps` cannot be used together. Elements that are not cached
appear with a `null` value. Nodes are looked up in the nodes cache first and
in the coords cache after that.

## What it does not do

- There is no import, diff or run command: the option parsers in
  `imposm.config` return parsed options but nothing reads OSM files,
  applies change files or writes tables with them.
- There is no PostgreSQL/PostGIS backend; the only registered database is
  `null`, so `open_database` with a `postgis:` or `postgres:` connection
  raises `UnsupportedDatabaseError`.
- There is no mapping of tags to tables and no geometry building.

## Running the tests

Install the `test` extra and run pytest from the project directory.