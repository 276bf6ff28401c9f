[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "skybooking"
version = "0.1.0"
description = "An example-based SQL mapper over SQLite: declarative entity tables, query criteria, a fluent SQL builder and a thread-safe connection pool."
requires-python = ">=3.10"
dependencies = []
keywords = ["orm", "sql-builder", "query-by-example", "sqlite", "connection-pool"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Internet :: WWW/HTTP :: HTTP Servers",
    "Topic :: Database :: Front-Ends",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["skybooking"]

[tool.pytest.ini_options]
addopts = "-ra"
