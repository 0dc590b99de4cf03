import pytest

from imposm.cache.nodes import NodesCache
from imposm.cache.store import NotFoundError
from imposm.element import Node


def test_create_cache(tmp_path):
    with NodesCache(tmp_path):
        assert tmp_path.is_dir()
        assert (tmp_path).exists()


def test_read_write_node(tmp_path):
    cache = NodesCache(tmp_path)
    cache.put_node(Node(id=1234, tags={"foo": "bar"}))
    cache.close()

    with NodesCache(tmp_path) as cache:
        data = cache.get_node(1234)
        assert data.id == 1234
        assert data.tags["foo"] == "bar"
        with pytest.raises(NotFoundError):
            cache.get_node(99)


def test_untagged_and_skipped_nodes_not_stored(tmp_path):
    with NodesCache(tmp_path) as cache:
        cache.put_node(Node(id=1))
        cache.put_node(Node(id=-1, tags={"a": "b"}))
        with pytest.raises(NotFoundError):
            cache.get_node(1)
        with pytest.raises(NotFoundError):
            cache.get_node(-1)


def test_put_nodes_counts_stored(tmp_path):
    with NodesCache(tmp_path) as cache:
        n = cache.put_nodes(
            [
                Node(id=1, tags={"a": "b"}, long=8.5, lat=53.0),
                Node(id=2),
                Node(id=-1, tags={"a": "b"}),
                Node(id=3, tags={"name": "x"}),
            ]
        )
        assert n == 2
        node = cache.get_node(1)
        assert node.long == pytest.approx(8.5, abs=1e-7)
        assert node.lat == pytest.approx(53.0, abs=1e-7)


def test_iter_and_delete(tmp_path):
    with NodesCache(tmp_path) as cache:
        cache.put_nodes([Node(id=i, tags={"k": str(i)}) for i in (3, 1, 2)])
        cache.delete_node(2)
        assert [(n.id, n.tags["k"]) for n in cache.iter()] == [(1, "1"), (3, "3")]