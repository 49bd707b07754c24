[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "histkit"
version = "0.1.0"
description = "SQLite index of shell history, sanitization rule definitions, command snippets and an fzf-based picker"
requires-python = ">=3.11"
keywords = ["shell", "history", "bash", "zsh", "snippets", "fzf", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: System Administrators",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Shells",
    "Topic :: Utilities",
]
dependencies = [
    "tomli-w",
]

[project.optional-dependencies]
test = [
    "pytest",
]

[tool.hatch.build.targets.wheel]
packages = ["histkit"]

[tool.pytest.ini_options]
addopts = "-ra"
