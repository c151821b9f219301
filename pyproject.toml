[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "nachos"
version = "0.1.0"
description = "MIPS COFF/NOFF object tools, a disassembler, a small MIPS interpreter and teaching data structures"
requires-python = ">=3.10"
dependencies = []
keywords = [
    "mips",
    "coff",
    "noff",
    "disassembler",
    "interpreter",
    "emulator",
    "operating-systems",
    "teaching",
]
classifiers = [
    "Development Status :: 4 - Beta",
    "Intended Audience :: Education",
    "Intended Audience :: Developers",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Education",
    "Topic :: Software Development :: Disassemblers",
    "Topic :: System :: Emulators",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
coff2noff = "nachos.coff2noff:main"
coff2flat = "nachos.coff2flat:main"
nachos-disasm = "nachos.disasm:main"
nachos-run = "nachos.interpreter:main"
nachos-stack-demo = "nachos.stack:main"

[tool.hatch.build.targets.wheel]
packages = ["nachos"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 88
target-version = "py310"

[tool.ruff.lint]
select = ["E", "F", "I", "B", "UP"]

[tool.mypy]
python_version = "3.10"
warn_unused_ignores = true
warn_redundant_casts = true
