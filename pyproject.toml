[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "mpcwire"
version = "0.3.0"
description = "HTTP transport for two-party secure computation: a WSGI contributor server and an evaluator client"
requires-python = ">=3.10"
keywords = [
    "crypto",
    "secure-computation",
    "garbled-circuits",
    "mpc",
    "two-party-computation",
    "wsgi",
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
    "Topic :: Security :: Cryptography",
    "Topic :: Internet :: WWW/HTTP :: WSGI :: Application",
]
dependencies = [
    "requests>=2.28",
    "werkzeug>=2.2",
]

[project.optional-dependencies]
test = [
    "pytest>=7",
    "responses>=0.23",
]

[tool.hatch.build.targets.wheel]
packages = ["mpcwire"]

[tool.hatch.build.targets.sdist]
include = ["mpcwire", "tests", "README.md"]

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
warn_unused_ignores = true
warn_redundant_casts = true
