[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "msgbus"
version = "0.8.1"
description = "Message bus building blocks: label-based routing, typed payloads, a compact wire codec and reusable memory regions"
requires-python = ">=3.10"
dependencies = []
keywords = ["ipc", "message-bus", "routing", "serialization"]
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
    "Topic :: System :: Distributed Computing",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["msgbus"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
