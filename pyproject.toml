[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "hfconnector"
version = "0.5.0"
description = "Spool-directory connector that moves messages over ARDOP and VARA HF modems"
requires-python = ">=3.10"
dependencies = []
keywords = ["ham radio", "hf", "ardop", "vara", "tnc", "modem", "spool"]
classifiers = [
    "Development Status :: 4 - Beta",
    "Environment :: Console",
    "Intended Audience :: Telecommunications Industry",
    "Operating System :: POSIX",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Communications :: Ham Radio",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
hfconnector = "hfconnector.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["hfconnector"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
