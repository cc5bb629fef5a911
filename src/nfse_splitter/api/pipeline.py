"""
High-level pipeline orchestrator for NFS-e batches.

IngestionPipeline coordinates the complete workflow:
- Expand ZIP archives (via ArchiveExtractor)
- Decode each file and split it into <Nfse> envelopes
- Classify each envelope with the tag/value rule
- Commit the full result set to CategoryStore in one step

Design Philosophy:
- Best-effort across inputs: a bad file never stops its siblings
- Fail-fast only on configuration: an unusable tag name aborts the run
  before any file is touched
- Results, not exceptions: per-file problems come back as IngestionIssue
- All-or-nothing commit: the store never shows a partial or merged run
"""

import codecs
import logging
import re
import threading
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path, PurePosixPath
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from nfse_splitter.config import ClassificationConfig, get_app_config, get_classification_config
from nfse_splitter.exceptions import (
    ArchiveReadError,
    FileReadError,
    NoRecordsWarning,
    PipelineBusyError,
)
from nfse_splitter.models import (
    ARCHIVE_EXTENSION,
    Category,
    ClassifiedRecord,
    IngestionIssue,
    IngestionResult,
    InputFile,
    RecordFragment,
)
from nfse_splitter.parsers.classifier import TagClassifier
from nfse_splitter.parsers.record_splitter import split_records
from nfse_splitter.parsers.tag_lookup import TagLookup
from nfse_splitter.services.archive_extractor import ArchiveExtractor
from nfse_splitter.services.category_store import CategoryStore

logger = logging.getLogger(__name__)


# <?xml version="1.0" encoding="ISO-8859-1"?>
_DECLARED_ENCODING = re.compile(
    rb'^\s*<\?xml[^>]*?\bencoding\s*=\s*["\']([A-Za-z0-9._:-]+)["\']'
)

# Brazilian municipal systems frequently emit Windows-1252 without declaring it
FALLBACK_ENCODING = 'cp1252'

# UTF-32 first: its little-endian BOM starts with the UTF-16 one
_BYTE_ORDER_MARKS = (
    (codecs.BOM_UTF32_LE, 'utf-32'),
    (codecs.BOM_UTF32_BE, 'utf-32'),
    (codecs.BOM_UTF16_LE, 'utf-16'),
    (codecs.BOM_UTF16_BE, 'utf-16'),
)

_UNSAFE_NAME_CHARS = re.compile(r'[^\w.-]+')


class PipelineState(str, Enum):
    """Lifecycle of a pipeline: IDLE -> PROCESSING -> COMPLETED."""

    IDLE = 'idle'
    PROCESSING = 'processing'
    COMPLETED = 'completed'


# A unit of work is either a file to process or an issue already known
# before processing (e.g. an unreadable archive)
WorkUnit = Union[InputFile, IngestionIssue]


@dataclass
class FileOutcome:
    """Result of processing a single content file."""
    file_name: str
    classified: List[Tuple[RecordFragment, Category]] = field(default_factory=list)
    issue: Optional[IngestionIssue] = None
    processed: bool = True

    @property
    def success(self) -> bool:
        return self.issue is None


def decode_document(data: bytes, file_name: str) -> str:
    """
    Decode raw bytes into document text.

    A UTF-32 or UTF-16 byte order mark decides the encoding outright.
    Otherwise tries, in order: UTF-8 (BOM-aware), the encoding declared in
    the XML prolog, then Windows-1252. The decoded text is used as-is
    afterwards.

    Args:
        data: Raw file bytes
        file_name: Name used in error messages

    Returns:
        Decoded text

    Raises:
        FileReadError: If no candidate encoding decodes the bytes cleanly
    """
    bom_encoding = next(
        (encoding for bom, encoding in _BYTE_ORDER_MARKS if data.startswith(bom)), None
    )
    if bom_encoding:
        candidates = [bom_encoding]
    else:
        candidates = ['utf-8-sig']
        declared = _DECLARED_ENCODING.match(data)
        if declared:
            declared_name = declared.group(1).decode('ascii').lower()
            try:
                canonical = codecs.lookup(declared_name).name
            except LookupError:
                logger.debug(f"Unknown declared encoding {declared_name!r} in {file_name}")
            else:
                if canonical not in ('utf-8', 'utf-8-sig'):
                    candidates.append(canonical)
        if FALLBACK_ENCODING not in candidates:
            candidates.append(FALLBACK_ENCODING)

    last_error: Optional[UnicodeDecodeError] = None
    for encoding in candidates:
        try:
            return data.decode(encoding)
        except UnicodeDecodeError as e:
            last_error = e
            continue

    raise FileReadError(
        file_name,
        f"cannot decode bytes as text (tried {', '.join(candidates)}): {last_error}"
    )


def build_display_name(fragment: RecordFragment) -> str:
    """
    Export file name for a note: {source stem}_nfse_{identifier}.xml

    Example:
        >>> build_display_name(fragment)  # from notas/lote.xml, Numero 123
        'lote_nfse_123.xml'
    """
    stem = PurePosixPath(fragment.source_file_name.replace('\\', '/')).stem or 'nfse'
    stem = _UNSAFE_NAME_CHARS.sub('_', stem)
    identifier = _UNSAFE_NAME_CHARS.sub('_', fragment.identifier).strip('_') or str(fragment.position)
    return f"{stem}_nfse_{identifier}.xml"


def expand_inputs(files: Iterable[InputFile], extractor: ArchiveExtractor) -> List[WorkUnit]:
    """
    Expand archives into their members, keeping input order.

    Plain files pass through. Archive members take the archive's position,
    in archive order. An unreadable archive, or one without content members,
    becomes an issue unit in its input position; the rest of the batch is
    unaffected.

    Args:
        files: Batch inputs
        extractor: ArchiveExtractor deciding which members count as content

    Returns:
        Ordered list of InputFile (to process) and IngestionIssue (already failed)
    """
    units: List[WorkUnit] = []

    for input_file in files:
        if not input_file.is_archive:
            units.append(input_file)
            continue

        try:
            members = extractor.extract(input_file)
        except ArchiveReadError as e:
            logger.error(f"Archive {input_file.name} skipped: {e.reason}", exc_info=True)
            units.append(IngestionIssue.from_exception(input_file.name, e))
            continue

        if not members:
            warning = NoRecordsWarning(input_file.name, "archive holds no content files")
            logger.debug(f"{input_file.name}: {warning.reason}")
            units.append(IngestionIssue.from_exception(input_file.name, warning))
            continue

        units.extend(members)

    return units


def process_file(input_file: InputFile, classifier: TagClassifier) -> FileOutcome:
    """
    Decode, split and classify one content file.

    Per-file problems (undecodable bytes, zero envelopes) are returned in
    the outcome, never raised. No shared state is touched, so this is safe
    to run from worker threads.

    Args:
        input_file: Content file (already expanded from any archive)
        classifier: Classifier bound to the run's config

    Returns:
        FileOutcome with classified fragments or an issue
    """
    try:
        text = decode_document(input_file.data, input_file.name)
    except FileReadError as e:
        logger.debug(f"Skipping {input_file.name}: {e.reason}")
        return FileOutcome(
            file_name=input_file.name,
            issue=IngestionIssue.from_exception(input_file.name, e)
        )

    fragments = split_records(text, input_file.name)

    if not fragments:
        warning = NoRecordsWarning(input_file.name)
        logger.debug(f"No <Nfse> envelopes in {input_file.name}; file skipped")
        return FileOutcome(
            file_name=input_file.name,
            issue=IngestionIssue.from_exception(input_file.name, warning)
        )

    classified = [(fragment, classifier.classify(fragment.raw_text)) for fragment in fragments]

    logger.info(f"Split {len(classified)} note(s) from {input_file.name}")

    return FileOutcome(file_name=input_file.name, classified=classified)


def assemble_result(outcomes: Sequence[FileOutcome]) -> IngestionResult:
    """
    Merge per-file outcomes into one result, in the given (input) order.

    Display names that repeat within the batch get a _2, _3, ... suffix so
    exports never overwrite each other.
    """
    records: List[ClassifiedRecord] = []
    issues: List[IngestionIssue] = []
    used_names: Dict[str, int] = {}
    files_processed = 0

    for outcome in outcomes:
        if outcome.issue is not None:
            issues.append(outcome.issue)
        if outcome.processed:
            files_processed += 1

        for fragment, category in outcome.classified:
            display_name = _unique_name(build_display_name(fragment), used_names)
            records.append(ClassifiedRecord(
                display_name=display_name,
                content=fragment.raw_text,
                category=category,
                source_file_name=fragment.source_file_name,
                identifier=fragment.identifier
            ))

    return IngestionResult(records=records, issues=issues, files_processed=files_processed)


def _unique_name(name: str, used_names: Dict[str, int]) -> str:
    if name not in used_names:
        used_names[name] = 1
        return name

    stem, suffix = name.rsplit('.', 1)
    count = used_names[name]
    while True:
        count += 1
        candidate = f"{stem}_{count}.{suffix}"
        if candidate not in used_names:
            used_names[name] = count
            used_names[candidate] = 1
            return candidate


def load_inputs(
    paths: Iterable[Union[str, Path]],
    content_extensions: Optional[Sequence[str]] = None
) -> List[InputFile]:
    """
    Read local files (and directories, non-recursively sorted) into InputFiles.

    Directories contribute files ending in a content extension or .zip.
    Explicit file paths are always included.

    Raises:
        FileNotFoundError: If a path does not exist
    """
    extensions = tuple(
        ext.lower() for ext in (content_extensions or get_app_config().content_extensions)
    ) + (ARCHIVE_EXTENSION,)

    files: List[InputFile] = []
    for raw_path in paths:
        path = Path(raw_path)
        if not path.exists():
            raise FileNotFoundError(f"Input path not found: {path}")

        if path.is_dir():
            for child in sorted(path.iterdir()):
                if child.is_file() and child.name.lower().endswith(extensions):
                    files.append(InputFile.from_path(child))
        else:
            files.append(InputFile.from_path(path))

    return files


def save_issues_csv(result: IngestionResult, base_dir: Optional[Union[str, Path]] = None) -> Optional[Path]:
    """
    Save a run's issues to a timestamped CSV file.

    Args:
        result: Completed IngestionResult
        base_dir: Target directory (default: AppConfig.issues_dir)

    Returns:
        Path of the CSV file, or None if the run had no issues
    """
    if not result.issues:
        return None

    issues_dir = Path(base_dir or get_app_config().issues_dir)
    issues_dir.mkdir(parents=True, exist_ok=True)

    df = result.issues_frame()
    csv_path = issues_dir / f"issues_{datetime.now():%Y%m%d_%H%M%S}.csv"
    df.to_csv(csv_path, index=False, encoding='utf-8')

    logger.info(f"Saved {len(result.issues)} issue(s) to {csv_path}")
    return csv_path


class IngestionPipeline:
    """
    Orchestrator for one batch of NFS-e inputs at a time.

    State machine: IDLE -> PROCESSING -> COMPLETED. A run requested while
    PROCESSING is rejected with PipelineBusyError. A run after COMPLETED
    replaces the previous result set atomically.

    Design Principles:
    - Explicit config: the classification rule is passed in (or read once
      from get_classification_config() at run start)
    - Resilient: per-file failures become issues
    - Observable: returns IngestionResult with counts and issues
    - Testable: store, extractor and lookup are injectable

    Example:
        pipeline = IngestionPipeline()
        result = pipeline.run(load_inputs(["lotes/"]))
        print(result.summary())
        for record in pipeline.store.tomador:
            print(record.display_name)
    """

    def __init__(
        self,
        store: Optional[CategoryStore] = None,
        extractor: Optional[ArchiveExtractor] = None,
        lookup: Optional[TagLookup] = None,
        config_provider: Callable[[], ClassificationConfig] = get_classification_config
    ):
        """
        Initialize pipeline.

        Args:
            store: CategoryStore to commit results to (new one if omitted)
            extractor: ArchiveExtractor (default built from AppConfig on first use)
            lookup: Tag lookup strategy (default: regex)
            config_provider: Source of the config when run() gets none
        """
        self.store = store if store is not None else CategoryStore()
        self._extractor = extractor
        self._lookup = lookup
        self._config_provider = config_provider
        self._state = PipelineState.IDLE
        self._state_lock = threading.Lock()
        self.last_result: Optional[IngestionResult] = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def extractor(self) -> ArchiveExtractor:
        if self._extractor is None:
            self._extractor = ArchiveExtractor()
        return self._extractor

    def run(
        self,
        files: Iterable[InputFile],
        config: Optional[ClassificationConfig] = None
    ) -> IngestionResult:
        """
        Process a batch: expand -> decode -> split -> classify -> commit.

        Args:
            files: Input files; archives are expanded in place
            config: Classification rule for this run (default: current
                process-wide config, read once here)

        Returns:
            IngestionResult with records in input order and all issues

        Raises:
            ConfigurationError: If the tag name is unusable (nothing touched)
            PipelineBusyError: If another run is in progress
        """
        if config is None:
            config = self._config_provider()

        # Validates config up front; raises before any file is read
        classifier = TagClassifier(config, self._lookup)

        files = list(files)
        previous_state = self._begin()

        logger.info(
            f"Starting batch: {len(files)} input(s), "
            f"tag=<{config.tag_name}> tomador={config.tomador_value!r} "
            f"prestador={config.prestador_value!r}"
        )

        try:
            units = self._expand(files)
            outcomes = self._process_units(units, classifier)
            result = assemble_result(outcomes)
        except BaseException:
            # Nothing committed; store keeps the previous run
            self._set_state(previous_state)
            raise

        self.store.replace(result.records)
        self.last_result = result
        self._set_state(PipelineState.COMPLETED)

        if result.issues:
            for issue in result.issues:
                logger.warning(f"{issue.kind} - {issue.file_name}: {issue.message}")

        logger.info(f"Batch complete: {result.summary()}")

        return result

    def clear(self) -> None:
        """Discard all stored records (the last result is dropped too)."""
        with self._state_lock:
            if self._state is PipelineState.PROCESSING:
                raise PipelineBusyError("Cannot clear while a batch is processing")
            self.store.clear()
            self.last_result = None

    def _begin(self) -> PipelineState:
        with self._state_lock:
            if self._state is PipelineState.PROCESSING:
                raise PipelineBusyError("A batch is already processing; wait for it to complete")
            previous = self._state
            self._state = PipelineState.PROCESSING
        return previous

    def _set_state(self, state: PipelineState) -> None:
        with self._state_lock:
            self._state = state

    def _expand(self, files: List[InputFile]) -> List[WorkUnit]:
        return expand_inputs(files, self.extractor)

    def _process_units(self, units: List[WorkUnit], classifier: TagClassifier) -> List[FileOutcome]:
        """Process units sequentially, in order."""
        outcomes = []
        for unit in units:
            if isinstance(unit, IngestionIssue):
                outcomes.append(FileOutcome(file_name=unit.file_name, issue=unit, processed=False))
            else:
                outcomes.append(process_file(unit, classifier))
        return outcomes
