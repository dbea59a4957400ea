[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "iotdrive"
version = "0.1.0"
description = "A distributed network block device: a master spreads block I/O over minion storage nodes via UDP, built on a small reactor, thread-pool and scheduler framework."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "nbd",
    "block-device",
    "distributed-storage",
    "reactor",
    "thread-pool",
    "scheduler",
    "udp",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Distributed Computing",
    "Topic :: System :: Filesystems",
    "Topic :: System :: Networking",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["iotdrive"]

[tool.hatch.build.targets.sdist]
include = ["iotdrive", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"
testpaths = ["tests"]

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
