[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "yk6502"
version = "0.1.0"
description = "A small 6502 assembler and emulator for .yk assembly programs"
requires-python = ">=3.10"
dependencies = []
keywords = ["6502", "emulator", "assembler", "cpu", "retro"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Developers",
    "Intended Audience :: Education",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: System :: Emulators",
    "Topic :: Software Development :: Assemblers",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
yk6502 = "yk6502.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["yk6502"]

[tool.pytest.ini_options]
addopts = "-ra"
