import pytest

from imposm.cache.relations import RelationsCache
from imposm.cache.store import NotFoundError
from imposm.element import Member, MemberType, Relation


def _relation(id_, tags=None):
    return Relation(
        id=id_,
        tags=tags if tags is not None else {"type": "multipolygon", "name": "park"},
        members=[
            Member(id=123, type=MemberType.WAY, role="outer"),
            Member(id=124, type=MemberType.WAY, role="inner"),
            Member(id=5, type=MemberType.NODE, role="label"),
        ],
    )


def test_relation_round_trip_after_reopen(tmp_path):
    original = _relation(12345)
    with RelationsCache(tmp_path) as cache:
        cache.put_relation(original)
    with RelationsCache(tmp_path) as cache:
        rel = cache.get_relation(12345)
    assert rel == original


def test_missing_relation(tmp_path):
    with RelationsCache(tmp_path) as cache:
        with pytest.raises(NotFoundError):
            cache.get_relation(42)


def test_skip_id_not_stored(tmp_path):
    with RelationsCache(tmp_path) as cache:
        cache.put_relation(_relation(-1))
        with pytest.raises(NotFoundError):
            cache.get_relation(-1)


def test_put_relations_skips_untagged(tmp_path):
    with RelationsCache(tmp_path) as cache:
        cache.put_relations([_relation(1), _relation(2, tags={}), _relation(-1), _relation(3)])
        assert [r.id for r in cache.iter()] == [1, 3]
        with pytest.raises(NotFoundError):
            cache.get_relation(2)


def test_put_relation_keeps_untagged(tmp_path):
    with RelationsCache(tmp_path) as cache:
        cache.put_relation(_relation(8, tags={}))
        assert cache.get_relation(8).members == _relation(8).members


def test_delete_relation(tmp_path):
    with RelationsCache(tmp_path) as cache:
        cache.put_relation(_relation(9))
        cache.delete_relation(9)
        with pytest.raises(NotFoundError):
            cache.get_relation(9)
        assert list(cache.iter()) == []