"""
Archive Extractor Service

Expands ZIP containers into InputFile members:
- Only members whose name ends in a content extension (case-insensitive)
- Directory entries skipped
- Member bytes reproduced exactly, decompressed lazily on iteration
- Any container or member failure raised as ArchiveReadError

Failures are isolated per container; the pipeline records them as issues and
continues with the rest of the batch.
"""

import io
import logging
import lzma
import zipfile
import zlib
from typing import Iterator, List, Optional, Sequence

from nfse_splitter.config import get_app_config
from nfse_splitter.exceptions import ArchiveReadError
from nfse_splitter.models import InputFile
from nfse_splitter.validators import validate_extensions

logger = logging.getLogger(__name__)


class ArchiveExtractor:
    """
    Service for expanding ZIP archives held in memory.

    Usage:
        extractor = ArchiveExtractor()
        for member in extractor.iter_members(archive):
            ...
    """

    def __init__(self, content_extensions: Optional[Sequence[str]] = None):
        """
        Initialize extractor.

        Args:
            content_extensions: Recognized member extensions. Defaults to
                AppConfig.content_extensions (['.xml']).

        Raises:
            ValueError: If the extension list is empty or invalid
        """
        if content_extensions is None:
            content_extensions = get_app_config().content_extensions
        self.content_extensions = tuple(validate_extensions(content_extensions))

    def is_content_name(self, name: str) -> bool:
        """True if name ends in a recognized content extension."""
        return name.lower().endswith(self.content_extensions)

    def iter_members(self, archive: InputFile) -> Iterator[InputFile]:
        """
        Open an archive and lazily yield its content members.

        The container is opened and its directory read immediately, so a
        malformed archive fails here rather than on first iteration. Member
        bytes are only decompressed when the iterator reaches them. The
        iterator is finite and can be consumed once.

        Args:
            archive: InputFile holding ZIP bytes

        Returns:
            Iterator of InputFile members, in archive order

        Raises:
            ArchiveReadError: If the container cannot be opened (raised
                immediately) or a member cannot be read (raised during
                iteration)
        """
        try:
            zip_ref = zipfile.ZipFile(io.BytesIO(archive.data), 'r')
        except (zipfile.BadZipFile, zipfile.LargeZipFile, ValueError, OSError) as e:
            logger.error(f"Cannot open archive {archive.name}: {e}")
            raise ArchiveReadError(archive.name, f"not a readable ZIP archive ({e})") from e

        all_members = zip_ref.infolist()
        content_members = [
            info for info in all_members
            if not info.is_dir() and self.is_content_name(info.filename)
        ]

        logger.debug(
            f"Found {len(content_members)} content member(s) in {archive.name} "
            f"({len(all_members)} total entries)"
        )

        return self._read_members(zip_ref, archive.name, content_members)

    def _read_members(
        self,
        zip_ref: zipfile.ZipFile,
        archive_name: str,
        members: List[zipfile.ZipInfo]
    ) -> Iterator[InputFile]:
        with zip_ref:
            for info in members:
                try:
                    data = zip_ref.read(info)
                except (zipfile.BadZipFile, zlib.error, lzma.LZMAError, NotImplementedError,
                        RuntimeError, OSError, EOFError) as e:
                    # Bad CRC, corrupt compressed stream, unsupported compression,
                    # encrypted member, truncated data
                    logger.error(f"Cannot read member {info.filename} of {archive_name}: {e}")
                    raise ArchiveReadError(
                        archive_name,
                        f"member '{info.filename}' unreadable ({e})"
                    ) from e
                yield InputFile(name=info.filename, data=data)

    def extract(self, archive: InputFile) -> List[InputFile]:
        """
        Eagerly extract all content members.

        All-or-nothing per container: if any member is unreadable the whole
        archive is reported as failed.

        Raises:
            ArchiveReadError: If the container or any member is unreadable
        """
        members = list(self.iter_members(archive))
        logger.info(f"Extracted {len(members)} file(s) from {archive.name}")
        return members
