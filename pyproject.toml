[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "visiogen"
version = "0.0.1"
description = "A k-mer based probe design tool for genes in annotated genomes and pangenome graphs"
requires-python = ">=3.10"
dependencies = []
keywords = ["kmer", "probe design", "bioinformatics", "gff", "gfa", "fasta"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Console",
    "Intended Audience :: Science/Research",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.10",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Scientific/Engineering :: Bio-Informatics",
]

[project.optional-dependencies]
test = ["pytest"]

[project.scripts]
visiogen = "visiogen.cli:main"

[tool.hatch.build.targets.wheel]
packages = ["visiogen"]

[tool.pytest.ini_options]
addopts = "-ra"
