[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "respkit"
version = "0.1.0"
description = "Binary-safe dynamic strings, argument splitting and an incremental RESP reply parser"
requires-python = ">=3.10"
dependencies = []
keywords = ["resp", "redis-protocol", "parser", "dynamic-string", "protocol"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = [
    "pytest",
    "hypothesis",
]

[tool.hatch.build.targets.wheel]
packages = ["respkit"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
