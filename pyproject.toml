[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "svcplug"
version = "0.1.0"
description = "Server-side plugins and shared helpers for RPC services: aliasing, IP filtering, rate limiting, metrics, key-value service registration and utilities."
requires-python = ">=3.10"
dependencies = ["psutil"]
keywords = ["rpc", "plugins", "service registry", "rate limiting", "metrics", "token bucket", "gzip"]
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
packages = ["svcplug"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
