"""Tuning options for the on-disk caches."""

from __future__ import annotations

import functools
import json
import os
from dataclasses import dataclass, field, fields
from typing import Any, Union

CONFIG_ENV = "IMPOSM_CACHE_CONFIG"


@dataclass
class CacheOptions:
    """Storage options of a single cache."""

    cache_size_m: int = 0
    max_open_files: int = 0
    block_restart_interval: int = 0
    write_buffer_size_m: int = 0
    block_size_k: int = 0
    max_file_size_m: int = 0


@dataclass
class CoordsCacheOptions(CacheOptions):
    """Storage options of the coords cache, including its bunch settings."""

    bunch_size: int = 0
    bunch_cache_capacity: int = 0


@dataclass
class OSMCacheOptions:
    """Options of all caches."""

    coords: CoordsCacheOptions = field(default_factory=CoordsCacheOptions)
    ways: CacheOptions = field(default_factory=CacheOptions)
    nodes: CacheOptions = field(default_factory=CacheOptions)
    relations: CacheOptions = field(default_factory=CacheOptions)
    coords_index: CacheOptions = field(default_factory=CacheOptions)
    ways_index: CacheOptions = field(default_factory=CacheOptions)


def _element_options(restart_interval: int = 128) -> CacheOptions:
    return CacheOptions(
        cache_size_m=16,
        write_buffer_size_m=64,
        block_size_k=0,
        max_open_files=64,
        max_file_size_m=32,
        block_restart_interval=restart_interval,
    )


def default_cache_options() -> OSMCacheOptions:
    """Return a fresh copy of the built-in defaults."""
    return OSMCacheOptions(
        coords=CoordsCacheOptions(
            cache_size_m=16,
            write_buffer_size_m=64,
            block_size_k=0,
            max_open_files=64,
            max_file_size_m=32,
            block_restart_interval=256,
            bunch_size=32,
            bunch_cache_capacity=8096,
        ),
        nodes=_element_options(),
        ways=_element_options(),
        relations=_element_options(),
        coords_index=CacheOptions(
            cache_size_m=32,
            write_buffer_size_m=128,
            block_size_k=0,
            max_open_files=256,
            max_file_size_m=8,
            block_restart_interval=256,
        ),
        ways_index=CacheOptions(
            cache_size_m=16,
            write_buffer_size_m=64,
            block_size_k=0,
            max_open_files=64,
            max_file_size_m=8,
            block_restart_interval=128,
        ),
    )


def _json_name(attr: str) -> str:
    # JSON keys are CamelCase and matched case-insensitively.
    return attr.replace("_", "").lower()


def _update(target: Any, data: Any, where: str) -> None:
    if not isinstance(data, dict):
        raise ValueError(f"cache config: expected an object for {where}")
    by_name = {_json_name(f.name): f.name for f in fields(target)}
    for key, value in data.items():
        attr = by_name.get(key.lower())
        if attr is None or value is None:
            continue
        current = getattr(target, attr)
        if isinstance(current, CacheOptions):
            _update(current, value, key)
        elif isinstance(value, int) and not isinstance(value, bool):
            setattr(target, attr, value)
        else:
            raise ValueError(f"cache config: {key} in {where} must be an integer")


def load_cache_options(path: Union[str, os.PathLike]) -> OSMCacheOptions:
    """Read a JSON file and apply it on top of the defaults."""
    with open(path, encoding="utf-8") as f:
        data = json.load(f)
    options = default_cache_options()
    _update(options, data, "cache config")
    return options


@functools.cache
def global_cache_options() -> OSMCacheOptions:
    """Options used by all caches, read once from IMPOSM_CACHE_CONFIG if set."""
    path = os.environ.get(CONFIG_ENV, "")
    if path:
        return load_cache_options(path)
    return default_cache_options()