[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pcastcore"
version = "0.1.0"
description = "Building blocks for a peer-to-peer streaming node: binary streams, atom packets, typed strings, IDs, a log ring, XML and TCP sockets"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "streaming",
    "peer-to-peer",
    "atom",
    "binary-stream",
    "broadcast",
    "xml",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["pcastcore"]

[tool.pytest.ini_options]
addopts = "-ra"
