[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "bitasm"
version = "0.1.0"
description = "Building blocks for a bit-level assembler: tokenizer, expression language, sized integers and binary output formats"
requires-python = ">=3.10"
dependencies = []
keywords = ["assembler", "bitvector", "expressions", "intelhex", "mif", "logisim", "hexdump"]
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
    "Topic :: Software Development :: Assemblers",
]

[project.optional-dependencies]
test = ["pytest"]

[tool.hatch.build.targets.wheel]
packages = ["bitasm"]

[tool.pytest.ini_options]
testpaths = ["tests"]
addopts = "-ra"
