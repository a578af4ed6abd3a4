"""K-mer based probe design for annotated genes and pangenome graphs."""

__version__ = "0.0.1"