"""Scanner package: document discovery and link extraction."""

from deadlinks.scanner.extractor import extract_links, tokenize
from deadlinks.scanner.walker import ensure_root, read_documents, walk_documents

__all__ = [
    "ensure_root",
    "walk_documents",
    "read_documents",
    "tokenize",
    "extract_links",
]
