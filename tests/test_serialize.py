import pytest

from imposm.binary.serialize import (
    coord_to_int,
    delta_pack,
    delta_unpack,
    int_to_coord,
    marshal_node,
    marshal_relation,
    marshal_way,
    unmarshal_node,
    unmarshal_relation,
    unmarshal_way,
)
from imposm.element import Member, MemberType, Node, Relation, Way


def test_marshal_node():
    node = Node(id=12345, tags={"name": "test", "place": "city"}, long=8.3, lat=53.26)
    result = unmarshal_node(marshal_node(node))
    assert result.tags == {"name": "test", "place": "city"}
    assert result.long == pytest.approx(8.3, abs=1e-7)
    assert result.lat == pytest.approx(53.26, abs=1e-7)


def test_marshal_way():
    way = Way(id=12345, tags={"name": "test", "highway": "trunk"}, refs=[1, 2, 3, 4])
    result = unmarshal_way(marshal_way(way))
    assert result.tags == {"name": "test", "highway": "trunk"}
    assert result.refs == [1, 2, 3, 4]
    assert way.refs == [1, 2, 3, 4]


def test_marshal_way_large_refs():
    way = Way(id=1234, tags={"foo": "bar"}, refs=[942374923, 23948234])
    result = unmarshal_way(marshal_way(way))
    assert result.refs == [942374923, 23948234]
    assert result.tags == {"foo": "bar"}


def test_marshal_relation():
    rel = Relation(
        id=12345,
        tags={"name": "test", "landusage": "forest"},
        members=[
            Member(id=123, type=MemberType.WAY, role="outer"),
            Member(id=124, type=MemberType.WAY, role="inner"),
        ],
    )
    result = unmarshal_relation(marshal_relation(rel))
    assert result.tags == {"name": "test", "landusage": "forest"}
    assert len(result.members) == 2
    assert (result.members[0].id, result.members[0].type, result.members[0].role) == (
        123,
        MemberType.WAY,
        "outer",
    )
    assert (result.members[1].id, result.members[1].type, result.members[1].role) == (
        124,
        MemberType.WAY,
        "inner",
    )


def test_delta_pack():
    assert delta_pack([1000, 999, 1001, -8, 1234]) == [1000, -1, 2, -1009, 1242]


def test_delta_unpack():
    assert delta_unpack([1000, -1, 2, -1009, 1242]) == [1000, 999, 1001, -8, 1234]


def test_delta_pack_short_inputs():
    assert delta_pack([]) == []
    assert delta_pack([7]) == [7]
    assert delta_unpack([7]) == [7]


@pytest.mark.parametrize("coord", [-180.0, -90.0, 0.0, 8.3, 53.26, 179.9999])
def test_coord_round_trip(coord):
    assert int_to_coord(coord_to_int(coord)) == pytest.approx(coord, abs=1e-7)


def test_coord_to_int_origin():
    assert coord_to_int(-180.0) == 0


def test_unmarshal_truncated_way_raises():
    data = marshal_way(Way(refs=[1, 2, 3], tags={"foo": "bar"}))
    with pytest.raises(ValueError):
        unmarshal_way(data[:-2])


def test_unmarshal_trailing_data_raises():
    data = marshal_node(Node(tags={"foo": "bar"}))
    with pytest.raises(ValueError):
        unmarshal_node(data + b"\x00")