"""
Batch result models.

A run never raises for per-file problems; it returns an IngestionResult that
carries both the classified notes and the structured list of issues.
"""

from typing import Dict, List, Literal

import pandas as pd
from pydantic import BaseModel, ConfigDict, Field

from .records import Category, ClassifiedRecord


ISSUE_COLUMNS = ['file_name', 'kind', 'severity', 'message']


class IngestionIssue(BaseModel):
    """
    One per-file problem reported at the end of a batch.

    Attributes:
        file_name: Input file (or archive) the issue refers to
        kind: Error class name (ArchiveReadError, FileReadError, NoRecordsWarning)
        message: Human-readable cause
        severity: 'error' for unreadable inputs, 'warning' for empty ones
    """

    file_name: str
    kind: str
    message: str
    severity: Literal['error', 'warning'] = 'error'

    model_config = ConfigDict(frozen=True)

    @classmethod
    def from_exception(cls, file_name: str, exc: BaseException) -> 'IngestionIssue':
        """Build an issue from a caught IngestionError or NoRecordsWarning."""
        severity = 'warning' if isinstance(exc, Warning) else 'error'
        reason = getattr(exc, 'reason', None) or str(exc)
        return cls(
            file_name=file_name,
            kind=type(exc).__name__,
            message=reason,
            severity=severity
        )


class IngestionResult(BaseModel):
    """
    Outcome of one pipeline run.

    Example:
        >>> result = pipeline.run(files)
        >>> result.total_records
        42
        >>> result.summary()
        '42 note(s) from 3 file(s): 30 tomador, 10 prestador, 2 sem_categoria; 1 issue(s)'
    """

    records: List[ClassifiedRecord] = Field(default_factory=list)
    issues: List[IngestionIssue] = Field(default_factory=list)
    files_processed: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @property
    def total_records(self) -> int:
        return len(self.records)

    @property
    def errors(self) -> List[IngestionIssue]:
        return [i for i in self.issues if i.severity == 'error']

    @property
    def warnings(self) -> List[IngestionIssue]:
        return [i for i in self.issues if i.severity == 'warning']

    def counts_by_category(self) -> Dict[Category, int]:
        """Record count per category; every category is present."""
        counts = {category: 0 for category in Category}
        for record in self.records:
            counts[record.category] += 1
        return counts

    def summary(self) -> str:
        """One-line summary, always produced even for empty runs."""
        counts = self.counts_by_category()
        breakdown = ', '.join(f"{counts[c]} {c.value}" for c in Category)
        return (
            f"{self.total_records} note(s) from {self.files_processed} file(s): "
            f"{breakdown}; {len(self.issues)} issue(s)"
        )

    def issues_frame(self) -> pd.DataFrame:
        """Issues as a DataFrame (columns fixed even when there are none)."""
        return pd.DataFrame(
            [issue.model_dump() for issue in self.issues],
            columns=ISSUE_COLUMNS
        )
