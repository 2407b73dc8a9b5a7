[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "fabriclog"
version = "0.1.0"
description = "Parse fabric diagnostic archives into nodes and ports, store them in SQLite and serve them over a small JSON HTTP API."
requires-python = ">=3.10"
dependencies = []
keywords = ["fabric", "topology", "diagnostics", "log-parser", "nodes", "ports", "http-api", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Intended Audience :: System Administrators",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Networking :: Monitoring",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
fabriclog = "fabriclog.app:main"

[tool.hatch.build.targets.wheel]
packages = ["fabriclog"]

[tool.hatch.build.targets.sdist]
include = ["fabriclog", "tests"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "W", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
