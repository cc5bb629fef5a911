"""
nfse-splitter: split NFS-e XML batches into individual notes and classify
them by ISS withholding (tomador / prestador / sem_categoria).

Main package exports for user-facing API.
"""

from nfse_splitter.api import (
    IngestionPipeline,
    ParallelIngestionPipeline,
    PipelineState,
    load_inputs,
)
from nfse_splitter.config import (
    ClassificationConfig,
    get_classification_config,
    set_classification_config,
    update_classification_config,
)
from nfse_splitter.exceptions import (
    ArchiveReadError,
    ConfigurationError,
    FileReadError,
    NoRecordsWarning,
    PipelineBusyError,
)
from nfse_splitter.models import Category, ClassifiedRecord, IngestionResult, InputFile
from nfse_splitter.services import ArchiveExtractor, CategoryStore

__all__ = [
    'IngestionPipeline',
    'ParallelIngestionPipeline',
    'PipelineState',
    'load_inputs',
    'split_batch',
    'ClassificationConfig',
    'get_classification_config',
    'set_classification_config',
    'update_classification_config',
    'ArchiveReadError',
    'ConfigurationError',
    'FileReadError',
    'NoRecordsWarning',
    'PipelineBusyError',
    'Category',
    'ClassifiedRecord',
    'IngestionResult',
    'InputFile',
    'ArchiveExtractor',
    'CategoryStore',
]


def split_batch(paths, config=None) -> IngestionResult:
    """
    One-shot convenience: load paths, run the pipeline, return the result.

    Args:
        paths: Files or directories (XML and ZIP)
        config: Optional ClassificationConfig (default: process-wide config)

    Returns:
        IngestionResult

    Example:
        >>> from nfse_splitter import split_batch
        >>> result = split_batch(["lotes/janeiro.zip"])
        >>> print(result.summary())
        120 note(s) from 4 file(s): 80 tomador, 38 prestador, 2 sem_categoria; 0 issue(s)
    """
    pipeline = IngestionPipeline()
    return pipeline.run(load_inputs(paths), config=config)
