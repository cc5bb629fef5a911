"""
Error taxonomy for nfse-splitter.

Per-file errors (IngestionError subclasses) are caught by the pipelines and
reported as IngestionIssue entries. Only ConfigurationError and
PipelineBusyError ever escape a batch run.
"""

from typing import Optional


class NfseSplitterError(Exception):
    """Base exception for all nfse-splitter errors."""


class ConfigurationError(NfseSplitterError, ValueError):
    """Raised when the classification config cannot be used (e.g. empty tag name)."""


class PipelineBusyError(NfseSplitterError, RuntimeError):
    """Raised when a batch run is requested while another is still processing."""


class IngestionError(NfseSplitterError):
    """
    Base class for errors isolated to a single input file.

    Attributes:
        file_name: Name of the input file (or archive) that failed
        reason: Human-readable cause
    """

    def __init__(self, file_name: str, reason: str):
        self.file_name = file_name
        self.reason = reason
        super().__init__(f"{file_name}: {reason}")


class ArchiveReadError(IngestionError):
    """Raised when a ZIP container is malformed, corrupt or unreadable."""


class FileReadError(IngestionError):
    """Raised when raw bytes cannot be decoded as text."""


class NoRecordsWarning(UserWarning):
    """
    Emitted (as an issue, never raised) when a file holds zero <Nfse> envelopes.

    The file is excluded from results; the batch continues.
    """

    def __init__(self, file_name: str, reason: Optional[str] = None):
        self.file_name = file_name
        self.reason = reason or "no <Nfse> envelopes found"
        super().__init__(f"{file_name}: {self.reason}")
