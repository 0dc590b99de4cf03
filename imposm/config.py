"""Command line and JSON configuration of the import, diff and run commands."""

from __future__ import annotations

import argparse
import json
import re
import sys
from dataclasses import dataclass, field
from datetime import timedelta
from decimal import Decimal, InvalidOperation
from typing import Any, Optional, Sequence

DEFAULT_SRID = 3857
DEFAULT_CACHE_DIR = "/tmp/imposm3"
DEFAULT_SCHEMA_IMPORT = "import"
DEFAULT_SCHEMA_PRODUCTION = "public"
DEFAULT_SCHEMA_BACKUP = "backup"

_ONE_MINUTE = timedelta(minutes=1)


class ConfigError(ValueError):
    """Raised for unreadable or invalid configuration."""


_DURATION_PART = re.compile(r"(\d+\.?\d*|\.\d+)(ns|us|µs|μs|ms|s|m|h)")
_MICROSECONDS_PER_UNIT = {
    "ns": Decimal("0.001"),
    "us": Decimal(1),
    "µs": Decimal(1),
    "μs": Decimal(1),
    "ms": Decimal(1000),
    "s": Decimal(1_000_000),
    "m": Decimal(60_000_000),
    "h": Decimal(3_600_000_000),
}


def _parse_duration(text: str) -> timedelta:
    """Parse a duration such as ``90s``, ``1h30m`` or ``1.5h``."""
    rest = text
    negative = False
    if rest[:1] in ("+", "-"):
        negative = rest[0] == "-"
        rest = rest[1:]
    if rest == "0":
        return timedelta(0)
    if not rest:
        raise ConfigError(f"invalid duration {text!r}")
    total = Decimal(0)
    pos = 0
    while pos < len(rest):
        match = _DURATION_PART.match(rest, pos)
        if match is None:
            raise ConfigError(f"invalid duration {text!r}")
        try:
            number = Decimal(match.group(1))
        except InvalidOperation as exc:
            raise ConfigError(f"invalid duration {text!r}") from exc
        total += number * _MICROSECONDS_PER_UNIT[match.group(2)]
        pos = match.end()
    micros = int(total.to_integral_value())
    return timedelta(microseconds=-micros if negative else micros)


def _duration(text: str) -> timedelta:
    return _parse_duration(text)


def parse_minutes_interval(value: Any) -> timedelta:
    """Interpret a JSON interval: a duration string or a number of minutes."""
    if isinstance(value, str):
        return _parse_duration(value)
    if isinstance(value, int) and not isinstance(value, bool):
        return timedelta(minutes=value)
    raise ConfigError(f"invalid interval {value!r}: expected duration string or minutes")


@dataclass
class Schemas:
    """Database schemas used for import, production and backup tables."""

    import_: str = ""
    production: str = ""
    backup: str = ""


def _default_schemas() -> Schemas:
    return Schemas(DEFAULT_SCHEMA_IMPORT, DEFAULT_SCHEMA_PRODUCTION, DEFAULT_SCHEMA_BACKUP)


@dataclass
class _FileConfig:
    cache_dir: str = DEFAULT_CACHE_DIR
    diff_dir: str = ""
    connection: str = ""
    mapping_file: str = ""
    limit_to: str = ""
    limit_to_cache_buffer: float = 0.0
    srid: int = DEFAULT_SRID
    schemas: Schemas = field(default_factory=Schemas)
    expire_tiles_dir: str = ""
    expire_tiles_zoom: int = 0
    replication_url: str = ""
    replication_interval: timedelta = timedelta(0)
    diff_state_before: timedelta = timedelta(0)


_STRING_KEYS = {
    "cachedir": "cache_dir",
    "diffdir": "diff_dir",
    "connection": "connection",
    "mapping": "mapping_file",
    "limitto": "limit_to",
    "expiretiles_dir": "expire_tiles_dir",
    "replication_url": "replication_url",
}
_INT_KEYS = {"srid": "srid", "expiretiles_zoom": "expire_tiles_zoom"}
_INTERVAL_KEYS = {
    "replication_interval": "replication_interval",
    "diff_state_before": "diff_state_before",
}
_SCHEMA_KEYS = {"import": "import_", "production": "production", "backup": "backup"}


def _expect_str(key: str, value: Any) -> str:
    if not isinstance(value, str):
        raise ConfigError(f"config: {key} must be a string")
    return value


def _apply_schemas(schemas: Schemas, data: Any) -> None:
    if data is None:
        return
    if not isinstance(data, dict):
        raise ConfigError("config: schemas must be an object")
    for key, value in data.items():
        attr = _SCHEMA_KEYS.get(key.lower())
        if attr is not None and value is not None:
            setattr(schemas, attr, _expect_str(key, value))


def _read_config_file(path: str) -> _FileConfig:
    conf = _FileConfig()
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except OSError as exc:
        raise ConfigError(f"reading config {path}: {exc}") from exc
    except json.JSONDecodeError as exc:
        raise ConfigError(f"parsing config {path}: {exc}") from exc
    if data is None:
        return conf
    if not isinstance(data, dict):
        raise ConfigError(f"config {path} must hold a JSON object")

    for key, value in data.items():
        name = key.lower()
        if name in _INTERVAL_KEYS:
            setattr(conf, _INTERVAL_KEYS[name], parse_minutes_interval(value))
        elif value is None:
            continue
        elif name in _STRING_KEYS:
            setattr(conf, _STRING_KEYS[name], _expect_str(key, value))
        elif name in _INT_KEYS:
            if not isinstance(value, int) or isinstance(value, bool):
                raise ConfigError(f"config: {key} must be an integer")
            setattr(conf, _INT_KEYS[name], value)
        elif name == "limitto_cache_buffer":
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ConfigError(f"config: {key} must be a number")
            conf.limit_to_cache_buffer = float(value)
        elif name == "schemas":
            _apply_schemas(conf.schemas, value)
    return conf


@dataclass
class Base:
    """Options shared by all commands."""

    connection: str = ""
    cache_dir: str = DEFAULT_CACHE_DIR
    diff_dir: str = ""
    mapping_file: str = ""
    srid: int = DEFAULT_SRID
    limit_to: str = ""
    limit_to_cache_buffer: float = 0.0
    config_file: str = ""
    http_profile: str = ""
    quiet: bool = False
    schemas: Schemas = field(default_factory=_default_schemas)
    expire_tiles_dir: str = ""
    expire_tiles_zoom: int = 0
    replication_url: str = ""
    replication_interval: timedelta = timedelta(0)
    diff_state_before: timedelta = timedelta(0)
    force_diff_import: bool = False

    def update_from_config(self) -> None:
        """Fill options not given on the command line from the JSON config file."""
        conf = _read_config_file(self.config_file) if self.config_file else _FileConfig()

        if conf.schemas.import_ and self.schemas.import_ == DEFAULT_SCHEMA_IMPORT:
            self.schemas.import_ = conf.schemas.import_
        if conf.schemas.production and self.schemas.production == DEFAULT_SCHEMA_PRODUCTION:
            self.schemas.production = conf.schemas.production
        if conf.schemas.backup and self.schemas.backup == DEFAULT_SCHEMA_BACKUP:
            self.schemas.backup = conf.schemas.backup

        if not self.connection:
            self.connection = conf.connection
        if conf.srid == 0:
            conf.srid = DEFAULT_SRID
        if self.srid == DEFAULT_SRID:
            self.srid = conf.srid
        if not self.mapping_file:
            self.mapping_file = conf.mapping_file
        if not self.limit_to:
            self.limit_to = conf.limit_to
        if self.limit_to == "NONE":
            # allows to disable a configured limitto from the command line
            self.limit_to = ""
        if self.limit_to_cache_buffer == 0.0:
            self.limit_to_cache_buffer = conf.limit_to_cache_buffer
        if self.cache_dir == DEFAULT_CACHE_DIR:
            self.cache_dir = conf.cache_dir

        if not self.expire_tiles_dir:
            self.expire_tiles_dir = conf.expire_tiles_dir
        if self.expire_tiles_zoom == 0:
            self.expire_tiles_zoom = conf.expire_tiles_zoom
        if self.expire_tiles_zoom < 6 or self.expire_tiles_zoom > 18:
            self.expire_tiles_zoom = 14

        if conf.replication_interval and self.replication_interval == _ONE_MINUTE:
            self.replication_interval = conf.replication_interval
        if self.replication_interval < _ONE_MINUTE:
            self.replication_interval = _ONE_MINUTE
        self.replication_url = conf.replication_url

        if not self.diff_dir:
            # the cache dir was used for the diff state before diffdir existed
            self.diff_dir = conf.diff_dir or self.cache_dir

        if conf.diff_state_before and not self.diff_state_before:
            self.diff_state_before = conf.diff_state_before

    def check(self) -> list[str]:
        """Return a message for each invalid option."""
        errors = []
        if self.srid not in (3857, 4326):
            errors.append("only -srid=3857 or -srid=4326 are supported")
        if not self.mapping_file:
            errors.append("missing mapping")
        return errors


@dataclass
class ImportOptions:
    """Options of the import command."""

    base: Base = field(default_factory=Base)
    overwritecache: bool = False
    appendcache: bool = False
    read: str = ""
    write: bool = False
    optimize: bool = False
    diff: bool = False
    deploy_production: bool = False
    revert_deploy: bool = False
    remove_backup: bool = False


def _make_parser(command: str, positional: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=f"imposm {command}",
        usage=f"%(prog)s [args]{positional}",
        allow_abbrev=False,
    )
    parser.add_argument("rest", nargs="*", help=argparse.SUPPRESS)
    return parser


def _flag(parser: argparse.ArgumentParser, name: str, **kwargs: Any) -> None:
    parser.add_argument(f"-{name}", f"--{name}", dest=name.replace("-", "_"), **kwargs)


def _add_base_flags(parser: argparse.ArgumentParser) -> None:
    _flag(parser, "connection", default="", help="connection parameters")
    _flag(parser, "cachedir", default=DEFAULT_CACHE_DIR, help="cache directory")
    _flag(parser, "diffdir", default="", help="diff directory for last.state.txt")
    _flag(parser, "mapping", default="", help="mapping file")
    _flag(parser, "srid", type=int, default=DEFAULT_SRID, help="srs id")
    _flag(parser, "limitto", default="", help="limit to geometries")
    _flag(parser, "limittocachebuffer", type=float, default=0.0, help="limit to buffer for cache")
    _flag(parser, "config", default="", help="config (json)")
    _flag(parser, "httpprofile", default="", help="bind address for profile server")
    _flag(parser, "quiet", action="store_true", help="quiet log output")
    _flag(parser, "dbschema-import", default=DEFAULT_SCHEMA_IMPORT, help="db schema for imports")
    _flag(parser, "dbschema-production", default=DEFAULT_SCHEMA_PRODUCTION, help="db schema for production")
    _flag(parser, "dbschema-backup", default=DEFAULT_SCHEMA_BACKUP, help="db schema for backups")


def _add_expire_flags(parser: argparse.ArgumentParser) -> None:
    _flag(parser, "expiretiles-dir", default="", help="write expire tiles into dir")
    # None marks "not given", so that the config file may set the zoom
    _flag(parser, "expiretiles-zoom", type=int, default=None,
          help="write expire tiles in this zoom level (default 14)")


def _base_from_args(ns: argparse.Namespace) -> Base:
    return Base(
        connection=ns.connection,
        cache_dir=ns.cachedir,
        diff_dir=ns.diffdir,
        mapping_file=ns.mapping,
        srid=ns.srid,
        limit_to=ns.limitto,
        limit_to_cache_buffer=ns.limittocachebuffer,
        config_file=ns.config,
        http_profile=ns.httpprofile,
        quiet=ns.quiet,
        schemas=Schemas(ns.dbschema_import, ns.dbschema_production, ns.dbschema_backup),
    )


def _parse(parser: argparse.ArgumentParser, args: Sequence[str]) -> argparse.Namespace:
    if not args:
        parser.print_help(sys.stderr)
        raise SystemExit(2)
    return parser.parse_args(list(args))


def _finish(base: Base) -> None:
    base.update_from_config()
    errors = base.check()
    if errors:
        print("errors in config/options:")
        for error in errors:
            print(f"\t{error}")
        raise SystemExit(1)


def parse_import(args: Sequence[str]) -> ImportOptions:
    """Parse the arguments of the import command."""
    parser = _make_parser("import", "")
    _add_base_flags(parser)
    _flag(parser, "overwritecache", action="store_true", help="overwritecache")
    _flag(parser, "appendcache", action="store_true", help="append cache")
    _flag(parser, "read", default="", help="read")
    _flag(parser, "write", action="store_true", help="write")
    _flag(parser, "optimize", action="store_true", help="optimize")
    _flag(parser, "diff", action="store_true", help="enable diff support")
    _flag(parser, "deployproduction", action="store_true", help="deploy production")
    _flag(parser, "revertdeploy", action="store_true", help="revert deploy to production")
    _flag(parser, "removebackup", action="store_true", help="remove backups from deploy")
    _flag(parser, "diff-state-before", type=_duration, default=timedelta(0),
          help="set initial diff sequence before")
    _flag(parser, "replication-interval", type=_duration, default=_ONE_MINUTE,
          help="replication interval as duration (1m, 1h, 24h)")

    ns = _parse(parser, args)
    base = _base_from_args(ns)
    base.diff_state_before = ns.diff_state_before
    base.replication_interval = ns.replication_interval
    _finish(base)
    return ImportOptions(
        base=base,
        overwritecache=ns.overwritecache,
        appendcache=ns.appendcache,
        read=ns.read,
        write=ns.write,
        optimize=ns.optimize,
        diff=ns.diff,
        deploy_production=ns.deployproduction,
        revert_deploy=ns.revertdeploy,
        remove_backup=ns.removebackup,
    )


def parse_diff_import(args: Sequence[str]) -> tuple[Base, list[str]]:
    """Parse the arguments of the diff command; return options and diff files."""
    parser = _make_parser("diff", " [.osc.gz, ...]")
    _add_base_flags(parser)
    _add_expire_flags(parser)
    _flag(parser, "force", action="store_true",
          help="force import of diff if sequence was already imported")

    ns = _parse(parser, args)
    base = _base_from_args(ns)
    base.expire_tiles_dir = ns.expiretiles_dir
    base.expire_tiles_zoom = ns.expiretiles_zoom if ns.expiretiles_zoom is not None else 0
    base.force_diff_import = ns.force
    _finish(base)
    return base, list(ns.rest)


def parse_run_import(args: Sequence[str]) -> Base:
    """Parse the arguments of the run command."""
    parser = _make_parser("run", "")
    _add_base_flags(parser)
    _add_expire_flags(parser)
    _flag(parser, "replication-interval", type=_duration, default=_ONE_MINUTE,
          help="replication interval as duration (1m, 1h, 24h)")

    ns = _parse(parser, args)
    base = _base_from_args(ns)
    base.expire_tiles_dir = ns.expiretiles_dir
    base.expire_tiles_zoom = ns.expiretiles_zoom if ns.expiretiles_zoom is not None else 0
    base.replication_interval = ns.replication_interval
    _finish(base)
    return base