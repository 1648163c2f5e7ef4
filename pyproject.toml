[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "respkv"
version = "0.1.0"
description = "Building blocks for a RESP key-value server: RESP framing, commands, streams, sorted sets, RDB loading and replication"
requires-python = ">=3.10"
dependencies = []
keywords = ["resp", "key-value", "database", "stream", "sorted-set", "rdb", "replication", "radix-tree"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database :: Database Engines/Servers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["respkv"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
