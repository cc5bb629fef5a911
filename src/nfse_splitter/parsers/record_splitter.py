"""
Record splitting for multi-note NFS-e payloads.

Municipal web services and ERP exports bundle many notes in one XML file
(e.g. ConsultarNfseResposta/ListaNfse/CompNfse/Nfse). Each <Nfse>...</Nfse>
envelope is one note.

Matching is lexical on purpose: real-world payloads are often malformed
(truncated batches, stray encodings, broken namespaces) and a strict parser
would reject files the scanner handles.
- Case-sensitive on the literal tag pair
- Non-greedy: each envelope ends at the first </Nfse>
- Unterminated envelopes are never emitted
"""

import logging
import re
from typing import Iterator, List

from nfse_splitter.models import RecordFragment

logger = logging.getLogger(__name__)


# <Nfse> or <Nfse versao="1.00">, never <NfseX> nor self-closing <Nfse/>
NFSE_ENVELOPE_PATTERN = re.compile(r'<Nfse(?:\s[^>]*?)?(?<!/)>.*?</Nfse>', re.DOTALL)

NUMERO_PATTERN = re.compile(r'<Numero>(.*?)</Numero>', re.DOTALL)


def extract_identifier(fragment_text: str, position: int) -> str:
    """
    Human-readable identifier for a note.

    Uses the first <Numero> value inside the envelope. Falls back to the
    envelope's 1-based position in its source file. Never raises.

    Args:
        fragment_text: One <Nfse> envelope
        position: 1-based position of the envelope in its source file

    Returns:
        Identifier string (e.g., '12345' or '3')

    Example:
        >>> extract_identifier('<Nfse><Numero> 42 </Numero></Nfse>', 1)
        '42'
        >>> extract_identifier('<Nfse></Nfse>', 3)
        '3'
    """
    match = NUMERO_PATTERN.search(fragment_text)
    if match:
        numero = match.group(1).strip()
        if numero:
            return numero
    return str(position)


def iter_records(text: str, source_file_name: str) -> Iterator[RecordFragment]:
    """
    Lazily yield every complete <Nfse> envelope in first-occurrence order.

    Args:
        text: Full decoded document text
        source_file_name: Name of the file the text came from

    Yields:
        RecordFragment objects; raw_text == text[start:end]
    """
    for index, match in enumerate(NFSE_ENVELOPE_PATTERN.finditer(text)):
        raw_text = match.group(0)
        yield RecordFragment(
            ordinal_index=index,
            raw_text=raw_text,
            source_file_name=source_file_name,
            identifier=extract_identifier(raw_text, index + 1),
            start=match.start(),
            end=match.end()
        )


def split_records(text: str, source_file_name: str) -> List[RecordFragment]:
    """
    Split a document into its <Nfse> envelopes.

    An empty result is not an error here; the pipeline reports it as a
    NoRecordsWarning for the file.

    Args:
        text: Full decoded document text
        source_file_name: Name of the file the text came from

    Returns:
        Ordered list of RecordFragment (empty if no complete envelope)

    Example:
        >>> fragments = split_records(
        ...     '<Lista><Nfse><Numero>1</Numero></Nfse><Nfse></Nfse></Lista>',
        ...     'lote.xml'
        ... )
        >>> [f.identifier for f in fragments]
        ['1', '2']
    """
    fragments = list(iter_records(text, source_file_name))

    logger.debug(f"Split {len(fragments)} <Nfse> envelope(s) from {source_file_name}")

    return fragments


def count_envelopes(text: str) -> int:
    """Number of complete <Nfse> envelopes in text."""
    return sum(1 for _ in NFSE_ENVELOPE_PATTERN.finditer(text))
