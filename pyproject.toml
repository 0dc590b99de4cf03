[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "imposm"
version = "0.1.0"
description = "OpenStreetMap element caches, compact binary encodings and import configuration helpers"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "openstreetmap",
    "osm",
    "gis",
    "cache",
    "varint",
    "postgresql",
    "import",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: GIS",
    "Topic :: Database",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
imposm-query-cache = "imposm.cache.query:main"

[tool.hatch.build.targets.wheel]
packages = ["imposm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
