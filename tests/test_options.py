import json

import pytest

from imposm.cache.options import (
    CacheOptions,
    CoordsCacheOptions,
    OSMCacheOptions,
    default_cache_options,
    global_cache_options,
    load_cache_options,
)


def test_defaults_match_builtin_config():
    opts = default_cache_options()
    assert opts.coords.bunch_size == 32
    assert opts.coords.bunch_cache_capacity == 8096
    assert opts.coords.block_restart_interval == 256
    assert opts.coords_index.max_open_files == 256
    assert opts.coords_index.write_buffer_size_m == 128
    assert opts.ways_index.max_file_size_m == 8


def test_defaults_are_fresh_copies():
    a = default_cache_options()
    b = default_cache_options()
    a.nodes.cache_size_m = 1
    assert b.nodes.cache_size_m == default_cache_options().nodes.cache_size_m
    assert a != b


def test_load_merges_over_defaults(tmp_path):
    conf = tmp_path / "cache.json"
    conf.write_text(json.dumps({"Coords": {"BunchSize": 64}, "Ways": {"MaxOpenFiles": 5}}))
    opts = load_cache_options(conf)
    defaults = default_cache_options()
    assert opts.coords.bunch_size == 64
    assert opts.ways.max_open_files == 5
    assert opts.coords.bunch_cache_capacity == defaults.coords.bunch_cache_capacity
    assert opts.nodes == defaults.nodes


def test_load_keys_case_insensitive(tmp_path):
    conf = tmp_path / "cache.json"
    conf.write_text(json.dumps({"nodes": {"cachesizem": 7}, "COORDSINDEX": {"BlockSizeK": 4}}))
    opts = load_cache_options(conf)
    assert opts.nodes.cache_size_m == 7
    assert opts.coords_index.block_size_k == 4


def test_load_ignores_unknown_keys(tmp_path):
    conf = tmp_path / "cache.json"
    conf.write_text(json.dumps({"Unknown": {"X": 1}, "Nodes": {"Other": 2}}))
    assert load_cache_options(conf) == default_cache_options()


def test_load_rejects_non_integer(tmp_path):
    conf = tmp_path / "cache.json"
    conf.write_text(json.dumps({"Nodes": {"CacheSizeM": "big"}}))
    with pytest.raises(ValueError):
        load_cache_options(conf)


def test_load_rejects_invalid_json(tmp_path):
    conf = tmp_path / "cache.json"
    conf.write_text("{not json")
    with pytest.raises(ValueError):
        load_cache_options(conf)


def test_load_missing_file(tmp_path):
    with pytest.raises(OSError):
        load_cache_options(tmp_path / "missing.json")


def test_global_options_from_env(tmp_path, monkeypatch):
    conf = tmp_path / "cache.json"
    conf.write_text(json.dumps({"Relations": {"CacheSizeM": 3}}))
    monkeypatch.setenv("IMPOSM_CACHE_CONFIG", str(conf))
    global_cache_options.cache_clear()
    try:
        assert global_cache_options().relations.cache_size_m == 3
    finally:
        monkeypatch.delenv("IMPOSM_CACHE_CONFIG")
        global_cache_options.cache_clear()
    assert global_cache_options() == default_cache_options()


def test_structure_types():
    opts = OSMCacheOptions()
    assert isinstance(opts.coords, CoordsCacheOptions)
    assert isinstance(opts.ways_index, CacheOptions)
    assert opts.coords.bunch_size == 0