"""
In-memory store for classified notes, partitioned by category.

The store is replaced wholesale per pipeline run and cleared all at once;
there is no API to add or remove single records. Views are stable filters
that preserve run order.

Export helpers serialize notes as application/xml payloads, one file per
note or bundled into a new ZIP archive.
"""

import io
import logging
import threading
import zipfile
from pathlib import Path
from typing import Dict, Iterable, List, Tuple, Union

from nfse_splitter.models import XML_MEDIA_TYPE, Category, ClassifiedRecord

logger = logging.getLogger(__name__)


class CategoryStore:
    """
    Holds the latest ClassifiedRecord sequence.

    Usage:
        >>> store = CategoryStore()
        >>> store.replace(result.records)
        >>> [r.display_name for r in store.tomador]
        ['lote_nfse_1.xml', 'lote_nfse_4.xml']
        >>> store.build_archive(Category.PRESTADOR)   # ZIP bytes
        >>> store.clear()
    """

    media_type = XML_MEDIA_TYPE

    def __init__(self, records: Iterable[ClassifiedRecord] = ()):
        self._lock = threading.Lock()
        self._records: Tuple[ClassifiedRecord, ...] = tuple(records)

    # === Mutation (wholesale only) ===

    def replace(self, records: Iterable[ClassifiedRecord]) -> None:
        """Atomically swap in a new record sequence."""
        new_records = tuple(records)
        with self._lock:
            self._records = new_records
        logger.debug(f"CategoryStore replaced with {len(new_records)} record(s)")

    def clear(self) -> None:
        """Atomically discard every record."""
        with self._lock:
            self._records = ()
        logger.info("CategoryStore cleared")

    # === Views ===

    @property
    def records(self) -> Tuple[ClassifiedRecord, ...]:
        """All records in run order."""
        return self._records

    def by_category(self, category: Union[Category, str]) -> Tuple[ClassifiedRecord, ...]:
        """
        Stable filtered view for one category.

        Args:
            category: Category or its string value ('tomador', ...)

        Raises:
            ValueError: If category is not one of the three labels
        """
        category = Category(category)
        # Single read of the tuple reference; never sees a half-replaced store
        snapshot = self._records
        return tuple(r for r in snapshot if r.category == category)

    @property
    def tomador(self) -> Tuple[ClassifiedRecord, ...]:
        return self.by_category(Category.TOMADOR)

    @property
    def prestador(self) -> Tuple[ClassifiedRecord, ...]:
        return self.by_category(Category.PRESTADOR)

    @property
    def sem_categoria(self) -> Tuple[ClassifiedRecord, ...]:
        return self.by_category(Category.SEM_CATEGORIA)

    def counts(self) -> Dict[Category, int]:
        """Record count per category; every category is present."""
        snapshot = self._records
        counts = {category: 0 for category in Category}
        for record in snapshot:
            counts[record.category] += 1
        return counts

    @property
    def is_empty(self) -> bool:
        return not self._records

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self):
        return iter(self._records)

    # === Export ===

    def export_payloads(self, category: Union[Category, str]) -> List[Tuple[str, bytes]]:
        """
        (display_name, payload) pairs for one category, in run order.

        Payloads are served as application/xml.
        """
        return [(r.display_name, r.to_payload()) for r in self.by_category(category)]

    def write_category(self, category: Union[Category, str], directory: Union[str, Path]) -> List[Path]:
        """
        Save each note of a category as its own file.

        Args:
            category: Category to export
            directory: Target directory (created if missing)

        Returns:
            Paths written, in run order
        """
        directory = Path(directory)
        directory.mkdir(parents=True, exist_ok=True)

        written = []
        for name, payload in self.export_payloads(category):
            path = directory / name
            path.write_bytes(payload)
            written.append(path)

        logger.info(
            f"Wrote {len(written)} {Category(category).value} note(s) to {directory}"
        )
        return written

    def build_archive(self, category: Union[Category, str]) -> bytes:
        """
        Bundle a category's notes into a new deflate ZIP.

        Returns:
            ZIP file bytes (an empty archive if the category is empty)
        """
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, 'w', compression=zipfile.ZIP_DEFLATED) as zip_ref:
            for name, payload in self.export_payloads(category):
                zip_ref.writestr(name, payload)
        return buffer.getvalue()

    def write_archive(self, category: Union[Category, str], path: Union[str, Path]) -> Path:
        """Save build_archive() output to path."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(self.build_archive(category))
        logger.info(f"Wrote {Category(category).value} archive to {path}")
        return path
