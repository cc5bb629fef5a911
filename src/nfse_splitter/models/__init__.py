"""
Pydantic models for files, note fragments, classified notes and batch results.
"""

from nfse_splitter.models.records import (
    ARCHIVE_EXTENSION,
    XML_MEDIA_TYPE,
    Category,
    ClassifiedRecord,
    InputFile,
    RecordFragment,
)
from nfse_splitter.models.result import ISSUE_COLUMNS, IngestionIssue, IngestionResult

__all__ = [
    'ARCHIVE_EXTENSION',
    'XML_MEDIA_TYPE',
    'Category',
    'ClassifiedRecord',
    'InputFile',
    'RecordFragment',
    'ISSUE_COLUMNS',
    'IngestionIssue',
    'IngestionResult',
]
