[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "zkit"
version = "0.1.0"
description = "Cooperative request contexts, a timeout middleware and small operational HTTP handlers."
requires-python = ">=3.10"
dependencies = []
keywords = [
    "healthz",
    "readyz",
    "readiness",
    "operations",
    "monitoring",
    "log-level",
    "snapshot",
    "context",
    "deadline",
    "timeout",
    "middleware",
]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
    "Topic :: Internet :: WWW/HTTP",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["zkit"]

[tool.hatch.build.targets.sdist]
include = ["zkit", "tests", "README.md"]

[tool.pytest.ini_options]
addopts = "-ra"
