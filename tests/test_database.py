import pytest

from imposm.database import (
    DatabaseConfig,
    NullDB,
    UnsupportedDatabaseError,
    open_database,
    register,
)
from imposm.element import Node


def test_open_null_database():
    db = open_database(DatabaseConfig(connection_params="null:"), None)
    assert isinstance(db, NullDB)
    results = [
        db.init(),
        db.begin(),
        db.insert_point(Node(id=1), None, []),
        db.insert_linestring(Node(id=2), None, []),
        db.insert_polygon(Node(id=3), None, []),
        db.insert_relation_member(None, None, 0, None, []),
        db.end(),
        db.abort(),
        db.close(),
    ]
    assert results == [None] * 9


def test_unsupported_database_type():
    with pytest.raises(UnsupportedDatabaseError) as exc:
        open_database(DatabaseConfig(connection_params="foo:host=localhost"), None)
    assert str(exc.value) == "unsupported database type: foo"


def test_registered_factory_receives_config_and_mapping():
    calls = []

    def factory(conf, mapping):
        calls.append((conf, mapping))
        return ("db", conf.connection_params)

    register("testdb-factory", factory)
    conf = DatabaseConfig(connection_params="testdb-factory:host=localhost dbname=osm", srid=4326)
    mapping = {"tables": {}}
    db = open_database(conf, mapping)
    assert db == ("db", "testdb-factory:host=localhost dbname=osm")
    assert calls == [(conf, mapping)]


def test_connection_type_without_colon():
    register("testdb-plain", lambda conf, mapping: "plain")
    assert open_database(DatabaseConfig(connection_params="testdb-plain"), None) == "plain"


def test_register_replaces_factory():
    register("testdb-replace", lambda conf, mapping: "first")
    register("testdb-replace", lambda conf, mapping: "second")
    assert open_database(DatabaseConfig(connection_params="testdb-replace:"), None) == "second"


def test_factory_errors_propagate():
    def failing(conf, mapping):
        raise RuntimeError("cannot connect")

    register("testdb-failing", failing)
    with pytest.raises(RuntimeError, match="cannot connect"):
        open_database(DatabaseConfig(connection_params="testdb-failing:"), None)