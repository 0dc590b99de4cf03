"""Compact tag serialization.

Tags become a flat list of strings. Common key/value pairs are encoded as a
single private-use character (U+E000 to U+F8FF), common keys with variable
values as a single ASCII control character prefixed to the value. Keys that
would be mistaken for either are escaped with U+FFFD.
"""

from __future__ import annotations

from typing import Iterator, Mapping, Optional, Sequence

ESCAPE_CHAR = "\ufffd"
MIN_CODE_POINT = 0xE000
MAX_CODE_POINT = 0xF8FF
MAX_KEY_CODE_POINT = 31

# The order of these entries defines the stored format; never change it.
_COMMON_KEYS = (
    "name",
    "addr:street",
    "addr:place",
    "addr:city",
    "addr:postcode",
    "addr:housenumber",
)

_COMMON_TAGS = (
    # ways
    ("building", "yes"),
    ("highway", "residential"),
    ("highway", "service"),
    ("wall", "no"),
    ("highway", "unclassified"),
    ("waterway", "stream"),
    ("highway", "track"),
    ("natural", "water"),
    ("oneway", "yes"),
    ("highway", "footway"),
    ("highway", "tertiary"),
    ("access", "private"),
    ("highway", "path"),
    ("highway", "secondary"),
    ("landuse", "forest"),
    ("building", "house"),
    ("bridge", "yes"),
    ("surface", "asphalt"),
    ("natural", "wood"),
    ("foot", "yes"),
    ("landuse", "residential"),
    ("surface", "paved"),
    ("highway", "primary"),
    ("surface", "unpaved"),
    ("landuse", "grass"),
    ("building", "residential"),
    ("service", "parking_aisle"),
    ("oneway", "no"),
    ("railway", "rail"),
    ("bicycle", "yes"),
    ("service", "driveway"),
    ("amenity", "parking"),
    ("area", "yes"),
    ("barrier", "fence"),
    ("tracktype", "grade2"),
    ("natural", "coastline"),
    ("tracktype", "grade3"),
    ("intermittent", "yes"),
    ("landuse", "farmland"),
    ("building", "hut"),
    ("boundary", "administrative"),
    ("lit", "yes"),
    ("highway", "cycleway"),
    ("landuse", "meadow"),
    ("waterway", "river"),
    ("natural", "wetland"),
    ("highway", "trunk"),
    ("surface", "gravel"),
    ("tracktype", "grade1"),
    ("barrier", "wall"),
    ("building", "garage"),
    ("highway", "living_street"),
    ("highway", "motorway"),
    ("tracktype", "grade4"),
    ("landuse", "farm"),
    ("leisure", "pitch"),
    ("surface", "ground"),
    ("tunnel", "yes"),
    ("highway", "motorway_link"),
    ("bicycle", "no"),
    ("highway", "road"),
    ("natural", "scrub"),
    ("highway", "steps"),
    ("foot", "designated"),
    ("waterway", "ditch"),
    ("admin_level", "8"),
    ("tracktype", "grade5"),
    ("access", "yes"),
    ("building", "apartments"),
    ("leisure", "swimming_pool"),
    ("junction", "roundabout"),
    ("highway", "pedestrian"),
    ("barrier", "hedge"),
    ("bicycle", "designated"),
    ("leisure", "park"),
    ("service", "alley"),
    ("landuse", "farmyard"),
    ("building", "industrial"),
    ("waterway", "riverbank"),
    ("building", "roof"),
    ("surface", "dirt"),
    ("waterway", "drain"),
    ("surface", "grass"),
    ("amenity", "school"),
    ("power", "line"),
    ("landuse", "industrial"),
    ("landuse", "reservoir"),
    ("water", "intermittent"),
    ("highway", "trunk_link"),
    ("segregated", "no"),
    ("horse", "no"),
    ("wood", "deciduous"),
    ("highway", "primary_link"),
    ("foot", "no"),
    ("lit", "no"),
    ("surface", "concrete"),
    ("building", "garages"),
    ("amenity", "place_of_worship"),
    ("religion", "christian"),
    ("waterway", "canal"),
    ("landuse", "orchard"),
    ("surface", "paving_stones"),
    ("leisure", "garden"),
    ("service", "spur"),
    ("living_street", "yes"),
    ("access", "permissive"),
    ("sport", "soccer"),
    ("frequency", "0"),
    ("landuse", "cemetery"),
    ("wood", "mixed"),
    ("motorcar", "no"),
    ("access", "no"),
    ("man_made", "pier"),
    ("oneway", "-1"),
    ("sport", "tennis"),
    ("noexit", "yes"),
    ("service", "yard"),
    ("wood", "coniferous"),
    ("natural", "cliff"),
    ("leisure", "playground"),
    ("cycleway", "lane"),
    ("surface", "cobblestone"),
    ("landuse", "vineyard"),
    ("frequency", "16.7"),
    # nodes
    ("power", "tower"),
    ("natural", "tree"),
    ("highway", "bus_stop"),
    ("power", "pole"),
    ("place", "locality"),
    ("highway", "turning_circle"),
    ("highway", "crossing"),
    ("place", "village"),
    ("place", "hamlet"),
    ("highway", "traffic_signals"),
    ("barrier", "gate"),
    ("amenity", "bench"),
    ("man_made", "survey_point"),
    ("amenity", "restaurant"),
    ("natural", "peak"),
    ("railway", "level_crossing"),
    ("type", "broad_leaved"),
    ("highway", "street_lamp"),
    ("tourism", "information"),
    ("wheelchair", "yes"),
    ("building", "entrance"),
    ("public_transport", "stop_position"),
    ("amenity", "fuel"),
    ("barrier", "bollard"),
    ("amenity", "post_box"),
    ("natural", "rock"),
    ("shelter", "yes"),
    ("emergency", "fire_hydrant"),
    ("public_transport", "platform"),
    ("amenity", "grave_yard"),
    ("shop", "convenience"),
    ("power", "generator"),
    ("shop", "supermarket"),
    ("amenity", "bank"),
    ("amenity", "fast_food"),
    ("amenity", "cafe"),
    # relations
    ("type", "multipolygon"),
    ("type", "route"),
    ("type", "restriction"),
    ("type", "boundary"),
    ("type", "site"),
    ("type", "associatedStreet"),
)


def _build_key_tables() -> tuple[dict[str, int], dict[int, str]]:
    if len(_COMMON_KEYS) > MAX_KEY_CODE_POINT:
        raise RuntimeError("all key code points used")
    key_to_cp = {key: cp for cp, key in enumerate(_COMMON_KEYS, start=1)}
    return key_to_cp, {cp: key for key, cp in key_to_cp.items()}


def _build_tag_tables() -> tuple[dict[tuple[str, str], int], dict[int, tuple[str, str]]]:
    tag_to_cp: dict[tuple[str, str], int] = {}
    for cp, tag in enumerate(_COMMON_TAGS, start=MIN_CODE_POINT):
        if cp > MAX_CODE_POINT:
            raise RuntimeError("all tag code points used")
        if tag in tag_to_cp:
            raise RuntimeError(f"duplicate entry for tag code points: {tag[0]} {tag[1]}")
        tag_to_cp[tag] = cp
    return tag_to_cp, {cp: tag for tag, cp in tag_to_cp.items()}


_KEY_TO_CP, _CP_TO_KEY = _build_key_tables()
_TAG_TO_CP, _CP_TO_TAG = _build_tag_tables()
_NEXT_CODE_POINT = MIN_CODE_POINT + len(_TAG_TO_CP)


def tag_code_point(key: str, value: str) -> Optional[int]:
    """Return the code point assigned to the tag, or None if it has none."""
    return _TAG_TO_CP.get((key, value))


def _needs_escape(key: str) -> bool:
    if not key:
        return False
    first = ord(key[0])
    return first < 32 or MIN_CODE_POINT <= first <= MAX_CODE_POINT or key[0] == ESCAPE_CHAR


def _encode_tag(key: str, value: str) -> tuple[str, ...]:
    cp = _TAG_TO_CP.get((key, value))
    if cp is not None:
        return (chr(cp),)
    key_cp = _KEY_TO_CP.get(key)
    if key_cp is not None:
        return (chr(key_cp) + value,)
    if _needs_escape(key):
        key = ESCAPE_CHAR + key
    return (key, value)


def append_tag(arr: Sequence[str], key: str, value: str) -> list[str]:
    """Return ``arr`` extended by the encoding of one tag."""
    return [*arr, *_encode_tag(key, value)]


def tags_as_array(tags: Mapping[str, str]) -> list[str]:
    """Encode a tag mapping into a flat list of strings."""
    return [part for key, value in tags.items() for part in _encode_tag(key, value)]


def _next_value(items: Iterator[str]) -> str:
    value = next(items, None)
    if value is None:
        raise ValueError("internal cache corrupt: tag key without value")
    return value


def tags_from_array(arr: Sequence[str]) -> dict[str, str]:
    """Decode a flat list of strings produced by :func:`tags_as_array`."""
    result: dict[str, str] = {}
    items = iter(arr)
    for item in items:
        if item:
            first = ord(item[0])
            if item[0] == ESCAPE_CHAR:
                result[item[1:]] = _next_value(items)
                continue
            if MIN_CODE_POINT <= first < _NEXT_CODE_POINT:
                key, value = _CP_TO_TAG[first]
                result[key] = value
                continue
            if first < 32:
                result[_CP_TO_KEY.get(first, "")] = item[1:]
                continue
        result[item] = _next_value(items)
    return result