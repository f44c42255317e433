[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "pluginframe"
version = "1.0.0"
description = "A plugin framework core: plugin discovery, selection, cloning, ordered execution and a binary configuration store."
requires-python = ">=3.10"
dependencies = []
keywords = ["plugins", "framework", "plugin-loader", "configuration", "command-line"]
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
    "Topic :: Software Development :: Libraries :: Application Frameworks",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
pluginframe = "pluginframe.console:main"

[tool.hatch.build.targets.wheel]
packages = ["pluginframe"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
