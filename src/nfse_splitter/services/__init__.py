"""
Service layer for nfse-splitter.

- ArchiveExtractor: ZIP expansion into InputFile members
- CategoryStore: in-memory partitioned store with export helpers
"""

from nfse_splitter.services.archive_extractor import ArchiveExtractor
from nfse_splitter.services.category_store import CategoryStore

__all__ = [
    'ArchiveExtractor',
    'CategoryStore',
]
