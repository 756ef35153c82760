[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "apiserverlib"
version = "0.1.0"
description = "Helpers for API servers: name validation, audit flags, label selectors, token scopes and security context constraint strategies"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "apiserver",
    "authorization",
    "scopes",
    "label-selector",
    "security-context-constraints",
    "audit",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration :: Authentication/Directory",
    "Topic :: Software Development :: Libraries :: Python Modules",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["apiserverlib"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.mypy]
python_version = "3.10"
