"""
Parallel Pipeline for NFS-e batches

Fans per-file work (decode, split, classify) out to a thread pool.

Key Features:
- No shared mutable state between workers (each returns its own FileOutcome)
- Deterministic output: outcomes merged in input-file order, never
  completion order, so results equal the sequential pipeline's
- Same state guard and all-or-nothing commit as IngestionPipeline
- Real-time progress logging

Usage:
    pipeline = ParallelIngestionPipeline(max_workers=8)
    result = pipeline.run(load_inputs(["lotes/"]))
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
import logging
from typing import Callable, Dict, List, Optional

from nfse_splitter.api.pipeline import (
    FileOutcome,
    IngestionPipeline,
    WorkUnit,
    process_file,
)
from nfse_splitter.config import ClassificationConfig, get_app_config, get_classification_config
from nfse_splitter.models import IngestionIssue
from nfse_splitter.parsers.classifier import TagClassifier
from nfse_splitter.parsers.tag_lookup import TagLookup
from nfse_splitter.services.archive_extractor import ArchiveExtractor
from nfse_splitter.services.category_store import CategoryStore
from nfse_splitter.validators import validate_max_workers

logger = logging.getLogger(__name__)


class ParallelIngestionPipeline(IngestionPipeline):
    """
    Parallel version of IngestionPipeline.

    Archive expansion stays sequential (it decides the input order); file
    processing runs on up to max_workers threads.

    Example:
        pipeline = ParallelIngestionPipeline(max_workers=4)
        result = pipeline.run(files)
        assert [r.display_name for r in result.records] == \\
            [r.display_name for r in IngestionPipeline().run(files).records]
    """

    def __init__(
        self,
        store: Optional[CategoryStore] = None,
        extractor: Optional[ArchiveExtractor] = None,
        lookup: Optional[TagLookup] = None,
        config_provider: Callable[[], ClassificationConfig] = get_classification_config,
        max_workers: Optional[int] = None
    ):
        """
        Initialize parallel pipeline.

        Args:
            max_workers: Worker threads (default: AppConfig.max_workers)

        Raises:
            ValueError: If max_workers is outside 1-64
        """
        super().__init__(
            store=store,
            extractor=extractor,
            lookup=lookup,
            config_provider=config_provider
        )
        if max_workers is None:
            max_workers = get_app_config().max_workers
        self.max_workers = validate_max_workers(max_workers)

    def _process_units(self, units: List[WorkUnit], classifier: TagClassifier) -> List[FileOutcome]:
        """
        Process content files concurrently; return outcomes in input order.
        """
        outcomes: List[Optional[FileOutcome]] = [None] * len(units)
        total_files = sum(1 for unit in units if not isinstance(unit, IngestionIssue))

        for index, unit in enumerate(units):
            if isinstance(unit, IngestionIssue):
                outcomes[index] = FileOutcome(file_name=unit.file_name, issue=unit, processed=False)

        if total_files == 0:
            return outcomes

        logger.info(f"Processing {total_files} file(s) with {self.max_workers} worker(s)")

        with ThreadPoolExecutor(max_workers=self.max_workers) as executor:
            future_to_index: Dict = {
                executor.submit(process_file, unit, classifier): index
                for index, unit in enumerate(units)
                if not isinstance(unit, IngestionIssue)
            }

            # Collect as they complete (for progress), store by input position
            processed = 0
            failed = 0
            for future in as_completed(future_to_index):
                index = future_to_index[future]
                outcome = future.result()
                outcomes[index] = outcome

                processed += 1
                if not outcome.success:
                    failed += 1
                if processed % 10 == 0 or processed == total_files:
                    logger.info(
                        f"Progress: {processed}/{total_files} "
                        f"({processed - failed} with notes, {failed} skipped)"
                    )

        return outcomes
