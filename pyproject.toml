[build-system]
requires = ["hatchling>=1.18"]
build-backend = "hatchling.build"

[project]
name = "sysmetrics"
version = "0.1.0"
description = "Collect Linux system metrics from /proc and /sys and expose them as Prometheus gauges over HTTP"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "prometheus",
    "metrics",
    "monitoring",
    "procfs",
    "exporter",
    "linux",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Environment :: No Input/Output (Daemon)",
    "Intended Audience :: System Administrators",
    "Intended Audience :: Developers",
    "Operating System :: POSIX :: Linux",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest>=7"]

[project.scripts]
sysmetrics = "sysmetrics.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["sysmetrics"]

[tool.hatch.build.targets.sdist]
include = ["sysmetrics", "tests", "pyproject.toml"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
