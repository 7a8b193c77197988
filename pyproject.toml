[build-system]
requires = ["setuptools>=68", "wheel"]
build-backend = "setuptools.build_meta"

[project]
name = "kidneyx"
version = "0.1.0"
description = "Integer programming models for kidney exchange with cycles, chains and a budget on non-matching transplants"
requires-python = ">=3.10"
dependencies = [
    "numpy",
    "scipy",
]
keywords = [
    "kidney exchange",
    "integer programming",
    "cycle formulation",
    "edge formulation",
    "operations research",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Mathematics",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
kidneyx = "kidneyx.cli:main"

[tool.setuptools.packages.find]
include = ["kidneyx*"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
