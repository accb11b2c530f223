[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "castrec"
version = "0.1.0"
description = "Record, replay, concatenate, convert and upload terminal sessions in the asciicast format"
requires-python = ">=3.11"
keywords = ["terminal", "recording", "asciicast", "pty", "replay"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Terminals :: Terminal Emulators/X Terminals",
    "Topic :: System :: Shells",
]
dependencies = [
    "requests",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[project.scripts]
castrec = "castrec.main:main"

[tool.hatch.build.targets.wheel]
packages = ["castrec"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
