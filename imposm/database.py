"""Registry of database backends and a backend that discards everything."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Optional


@dataclass
class DatabaseConfig:
    """Connection and schema settings handed to a database backend."""

    connection_params: str = ""
    srid: int = 3857
    import_schema: str = "import"
    production_schema: str = "public"
    backup_schema: str = "backup"


class UnsupportedDatabaseError(ValueError):
    """Raised when no backend is registered for a connection type."""


_Factory = Callable[[DatabaseConfig, Any], Any]
_DATABASES: dict[str, _Factory] = {}


def register(name: str, factory: _Factory) -> None:
    """Register ``factory`` for connection strings starting with ``name:``."""
    _DATABASES[name] = factory


def open_database(conf: DatabaseConfig, mapping: Optional[Any]) -> Any:
    """Create the database backend selected by the connection string prefix."""
    connection_type = conf.connection_params.split(":", 1)[0]
    factory = _DATABASES.get(connection_type)
    if factory is None:
        raise UnsupportedDatabaseError(f"unsupported database type: {connection_type}")
    return factory(conf, mapping)


class NullDB:
    """A database that accepts and discards all data.

    It keeps track of its transaction state and of how many elements
    it discarded, so callers can see what would have been written.
    """

    def __init__(self) -> None:
        self.initialized = False
        self.in_transaction = False
        self.closed = False
        self.discarded = 0

    def init(self) -> None:
        self.initialized = True

    def begin(self) -> None:
        self.in_transaction = True

    def end(self) -> None:
        self.in_transaction = False

    def abort(self) -> None:
        self.in_transaction = False

    def close(self) -> None:
        self.in_transaction = False
        self.closed = True

    def _discard(self) -> None:
        self.discarded += 1

    def insert_point(self, elem, geometry, matches) -> None:
        self._discard()

    def insert_linestring(self, elem, geometry, matches) -> None:
        self._discard()

    def insert_polygon(self, elem, geometry, matches) -> None:
        self._discard()

    def insert_relation_member(self, rel, member, index, geometry, matches) -> None:
        self._discard()


def _new_null_db(conf: DatabaseConfig, mapping: Optional[Any]) -> NullDB:
    return NullDB()


register("null", _new_null_db)