"""
Pydantic models for input files, note fragments and classified notes.

Lifecycle:
- InputFile: created from uploads, paths or archive members; immutable
- RecordFragment: one <Nfse> envelope cut from an InputFile's text;
  ephemeral, consumed immediately by classification
- ClassifiedRecord: fragment + category; held by CategoryStore until cleared
"""

from enum import Enum
from pathlib import Path
from typing import Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


ARCHIVE_EXTENSION = '.zip'
ARCHIVE_MEDIA_TYPES = frozenset({'application/zip', 'application/x-zip-compressed'})
XML_MEDIA_TYPE = 'application/xml'


class Category(str, Enum):
    """The three buckets a note can fall into."""

    TOMADOR = 'tomador'
    PRESTADOR = 'prestador'
    SEM_CATEGORIA = 'sem_categoria'


class InputFile(BaseModel):
    """
    Named byte blob handed to the pipeline.

    The core is agnostic to how the bytes were obtained (upload, file picker,
    archive member, local path).

    Example:
        >>> f = InputFile(name='lote.xml', data=b'<Nfse>...</Nfse>')
        >>> f.is_archive
        False
    """

    name: str = Field(
        ...,
        min_length=1,
        description="File name (archive members keep their path inside the archive)",
        examples=["lote_2024_01.xml", "notas/nfse_123.xml"]
    )
    data: bytes = Field(
        ...,
        description="Raw file content, never modified"
    )
    media_type: Optional[str] = Field(
        default=None,
        description="Declared media type, if the caller knows it",
        examples=["application/xml", "application/zip"]
    )

    model_config = ConfigDict(frozen=True)

    @property
    def is_archive(self) -> bool:
        """True when the file should be expanded as a ZIP container."""
        if self.name.lower().endswith(ARCHIVE_EXTENSION):
            return True
        return (self.media_type or '').lower() in ARCHIVE_MEDIA_TYPES

    @property
    def size(self) -> int:
        return len(self.data)

    @classmethod
    def from_path(cls, path: Union[str, Path], media_type: Optional[str] = None) -> 'InputFile':
        """
        Read a local file into an InputFile.

        Args:
            path: File path
            media_type: Optional declared media type

        Returns:
            InputFile named after the file's base name
        """
        path = Path(path)
        return cls(name=path.name, data=path.read_bytes(), media_type=media_type)


class RecordFragment(BaseModel):
    """
    One <Nfse>...</Nfse> envelope cut from a source document.

    raw_text is exactly text[start:end] of the decoded source document.

    Attributes:
        ordinal_index: 0-based position among the file's envelopes
        raw_text: The envelope text, untouched
        source_file_name: Name of the InputFile it came from
        identifier: First <Numero> value, or the 1-based position as fallback
        start: Offset of the envelope in the source text
        end: Offset one past the envelope's last character
    """

    ordinal_index: int = Field(..., ge=0)
    raw_text: str = Field(..., min_length=1)
    source_file_name: str
    identifier: str = Field(..., min_length=1)
    start: int = Field(default=0, ge=0)
    end: int = Field(default=0, ge=0)

    model_config = ConfigDict(frozen=True)

    @field_validator('raw_text')
    @classmethod
    def validate_envelope(cls, v: str) -> str:
        """Fragment must be one complete <Nfse> envelope."""
        if not v.startswith('<Nfse') or not v.endswith('</Nfse>'):
            raise ValueError(
                f"Fragment must be a complete <Nfse>...</Nfse> envelope, "
                f"got: {v[:40]!r}..."
            )
        return v

    @model_validator(mode='after')
    def validate_span(self) -> 'RecordFragment':
        if self.end and self.end - self.start != len(self.raw_text):
            raise ValueError(
                f"Span [{self.start}:{self.end}] does not match fragment length {len(self.raw_text)}"
            )
        return self

    @property
    def position(self) -> int:
        """1-based position within the source file."""
        return self.ordinal_index + 1


class ClassifiedRecord(BaseModel):
    """
    A note with its category, ready for retrieval and export.

    content is byte-identical to the matched envelope: no mutation,
    reformatting or re-encoding happens at any stage.

    Example:
        >>> record.display_name
        'lote_nfse_12345.xml'
        >>> record.category
        <Category.TOMADOR: 'tomador'>
    """

    display_name: str = Field(
        ...,
        min_length=1,
        description="File name used when exporting the note",
        examples=["lote_nfse_12345.xml"]
    )
    content: str = Field(
        ...,
        description="Raw <Nfse> envelope text"
    )
    category: Category
    source_file_name: str = Field(default='')
    identifier: str = Field(default='')

    model_config = ConfigDict(frozen=True)

    def to_payload(self) -> bytes:
        """Content encoded for export (served as application/xml)."""
        return self.content.encode('utf-8')
