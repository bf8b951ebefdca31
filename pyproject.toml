[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "tracecov"
version = "0.1.0"
description = "Coverage trace bookkeeping and a test-run state machine for collecting code coverage"
requires-python = ">=3.10"
dependencies = []
keywords = ["coverage", "testing", "traces", "state-machine", "profraw"]
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
    "Topic :: Software Development :: Testing",
    "Typing :: Typed",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["tracecov"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
