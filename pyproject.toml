[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "longhornctl"
version = "0.1.0"
description = "Node-local preflight checks, dependency installation and replica inspection for Longhorn storage nodes."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "longhorn",
    "kubernetes",
    "storage",
    "preflight",
    "package-manager",
    "replica",
    "spdk",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Systems Administration",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["longhornctl"]

[tool.hatch.build.targets.sdist]
include = ["longhornctl", "tests", "README.md", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
