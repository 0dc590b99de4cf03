"""OpenStreetMap element types, on-disk caches, binary encodings and import configuration."""

__version__ = "0.1.0"