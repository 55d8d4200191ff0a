[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "rexkit"
version = "0.1.0"
description = "Client-side building blocks for remote execution: file metadata caching, upload entries, output streams, flag helpers, retries, port picking and zstd-compressing file readers."
requires-python = ">=3.10"
keywords = ["remote-execution", "cas", "retry", "zstd", "file-metadata", "flags", "portpicker"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Software Development :: Libraries :: Python Modules",
    "Typing :: Typed",
]
dependencies = [
    "zstandard",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["rexkit"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
