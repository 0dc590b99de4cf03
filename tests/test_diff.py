import pytest

from imposm.cache.diff import (
    CoordsRefIndex,
    CoordsRelRefIndex,
    DiffCache,
    IDRefBunch,
    IDRefBunches,
    RefIndex,
    WaysRefIndex,
    merge_bunch,
)
from imposm.element import IDRefs, Member, MemberType, Node, Way


def _way(way_id, node_ids):
    return Way(id=way_id, nodes=[Node(id=n) for n in node_ids])


def test_diff_cache(tmp_path):
    cache = CoordsRefIndex(tmp_path)
    try:
        w1 = _way(100, [1000, 1001, 1002])
        cache.add_from_way(w1)
        cache.add_from_way(_way(200, [1002, 1003, 1004]))
        cache.delete_from_way(w1)
        assert cache.get(1000) == []
        assert len(cache.get(1002)) == 1
        assert cache.get(1002) == [200]
    finally:
        cache.close()


def test_write_diff(tmp_path):
    cache = RefIndex(tmp_path)
    try:
        cache.set_linear_import(True)
        for w in range(5):
            for n in range(200):
                cache.add(n, w)
        cache.set_linear_import(False)
        for n in range(200):
            assert len(cache.get(n)) == 5
    finally:
        cache.close()


def test_linear_import_buffers_until_disabled(tmp_path):
    cache = CoordsRefIndex(tmp_path)
    try:
        cache.set_linear_import(True)
        cache.add_from_way(_way(100, [1, 2, 300]))
        cache.add_from_way(_way(50, [2]))
        with pytest.raises(RuntimeError):
            cache.get(1)
        with pytest.raises(RuntimeError):
            cache.delete(1)
        with pytest.raises(RuntimeError):
            cache.delete_from_way(_way(100, [1]))
        cache.flush()
        cache.set_linear_import(False)
        assert cache.get(1) == [100]
        assert cache.get(2) == [50, 100]
        assert cache.get(300) == [100]
    finally:
        cache.close()


def test_delete_removes_all_refs(tmp_path):
    cache = RefIndex(tmp_path)
    try:
        cache.add(10, 1)
        cache.add(10, 2)
        cache.add(11, 3)
        cache.delete(10)
        assert cache.get(10) == []
        assert cache.get(11) == [3]
    finally:
        cache.close()


def test_add_from_members(tmp_path):
    coords_rel = CoordsRelRefIndex(tmp_path / "c")
    ways = WaysRefIndex(tmp_path / "w")
    members = [Member(id=1, type=MemberType.NODE), Member(id=2, type=MemberType.WAY)]
    try:
        coords_rel.add_from_members(99, members)
        ways.add_from_members(99, members)
        assert coords_rel.get(1) == [99]
        assert coords_rel.get(2) == []
        assert ways.get(2) == [99]
        assert ways.get(1) == []
    finally:
        coords_rel.close()
        ways.close()


def test_merge_idrefs():
    bunch = []
    bunch = merge_bunch(bunch, [IDRefs(50, [1])])
    assert bunch[0].id == 50 and bunch[0].refs[0] == 1

    bunch = merge_bunch(bunch, [IDRefs(40, [3])])
    assert bunch[0].id == 40 and bunch[0].refs[0] == 3

    bunch = merge_bunch(bunch, [IDRefs(70, [4])])
    assert bunch[2].id == 70 and bunch[2].refs[0] == 4

    bunch = merge_bunch(bunch, [IDRefs(60, [5])])
    assert bunch[2].id == 60 and bunch[2].refs[0] == 5

    bunch = merge_bunch(bunch, [IDRefs(50, [0, 5])])
    assert bunch[1].id == 50 and bunch[1].refs == [0, 1, 5]
    assert len(bunch) == 4

    bunch = merge_bunch(bunch, [IDRefs(40, []), IDRefs(60, [])])
    assert [b.id for b in bunch] == [50, 70]

    bunch = merge_bunch(bunch, [IDRefs(40, [1]), IDRefs(60, [1]), IDRefs(80, [1])])
    assert len(bunch) == 5
    assert bunch[0].id == 40 and bunch[2].id == 60 and bunch[4].id == 80


def test_idref_bunches():
    bunches = IDRefBunches()
    bunches.add(1, 100, 999)
    r = bunches[1].id_refs[0]
    assert r.id == 100 and r.refs[0] == 999

    bunches.add(1, 99, 888)
    r = bunches[1].id_refs[0]
    assert r.id == 99 and r.refs[0] == 888

    bunches.add(1, 102, 777)
    r = bunches[1].id_refs[2]
    assert r.id == 102 and r.refs[0] == 777

    bunches.add(1, 101, 666)
    r = bunches[1].id_refs[2]
    assert r.id == 101 and r.refs[0] == 666

    bunches.add(1, 100, 998)
    r = bunches[1].id_refs[1]
    assert r.id == 100 and r.refs[0] == 998 and r.refs[1] == 999

    bunches.add(1, 100, 998)
    r = bunches[1].id_refs[1]
    assert r.id == 100 and r.refs == [998, 999]

    assert len(bunches) == 1
    assert bunches[1].id == 1
    assert len(bunches[1].id_refs) == 4


def test_idref_bunch_get():
    bunch = IDRefBunch(1)
    bunch.get_create(70).add(5)
    assert bunch.get(70).refs == [5]
    assert bunch.get(71) is None


def test_diff_cache_lifecycle(tmp_path):
    diff = DiffCache(tmp_path)
    assert diff.exists() is False
    diff.open()
    assert diff.exists() is True
    diff.coords.add(1, 10)
    diff.ways.add(10, 20)
    diff.close()

    diff = DiffCache(tmp_path)
    diff.open()
    assert diff.coords.get(1) == [10]
    assert diff.ways.get(10) == [20]
    diff.remove()
    assert diff.exists() is False