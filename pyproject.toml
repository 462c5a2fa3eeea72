[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "imtools"
version = "0.1.0"
description = "Service toolkit: rotating log files, structured logging, request context, an in-memory task queue and middleware helpers"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "logging",
    "log-rotation",
    "structured-logging",
    "context",
    "task-queue",
    "middleware",
]
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
    "Topic :: System :: Logging",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["imtools"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
