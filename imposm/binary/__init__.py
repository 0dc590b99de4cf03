"""Compact binary encodings for cached OSM data: varints, tags, elements, coords and ID refs."""