"""
User-facing pipeline interfaces for nfse-splitter.
"""

from nfse_splitter.api.pipeline import (
    IngestionPipeline,
    PipelineState,
    decode_document,
    expand_inputs,
    load_inputs,
    save_issues_csv,
)
from nfse_splitter.api.pipeline_parallel import ParallelIngestionPipeline

__all__ = [
    'IngestionPipeline',
    'ParallelIngestionPipeline',
    'PipelineState',
    'decode_document',
    'expand_inputs',
    'load_inputs',
    'save_issues_csv',
]
