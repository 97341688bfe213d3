[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mysqlmon"
version = "0.1.0"
description = "Scrapers that turn MySQL and MariaDB server status into Prometheus-style metrics"
requires-python = ">=3.10"
dependencies = []
keywords = ["mysql", "mariadb", "prometheus", "metrics", "monitoring", "exporter"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Database",
    "Topic :: System :: Monitoring",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["mysqlmon"]

[tool.pytest.ini_options]
addopts = "-ra"
