[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "jrpc_core"
version = "0.1.0"
description = "Building blocks for JSON-RPC 2.0 servers: errors, parameters, responses, method registries, resource limits and host filtering."
requires-python = ">=3.10"
dependencies = []
keywords = ["json-rpc", "rpc", "jsonrpc", "subscriptions", "server"]
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
    "Framework :: AsyncIO",
    "Topic :: Software Development :: Libraries",
]

[project.optional-dependencies]
test = ["pytest", "pytest-asyncio"]

[tool.hatch.build.targets.wheel]
packages = ["jrpc_core"]

[tool.hatch.build.targets.sdist]
include = ["jrpc_core", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
