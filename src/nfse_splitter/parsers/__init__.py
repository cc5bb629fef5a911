"""
Lexical parsing modules for NFS-e payloads.

- Record splitting: <Nfse>...</Nfse> envelopes, non-greedy, case-sensitive
- Tag lookup: pluggable strategies (regex default, lxml alternative)
- Classification: tag value -> tomador / prestador / sem_categoria
"""

from .record_splitter import (
    count_envelopes,
    extract_identifier,
    iter_records,
    split_records,
)
from .tag_lookup import (
    DEFAULT_TAG_LOOKUP,
    RegexTagLookup,
    TagLookup,
    XmlTagLookup,
    build_tag_pattern,
    create_default_lookup,
)
from .classifier import TagClassifier, classify, match_value

__all__ = [
    # Record splitting
    'count_envelopes',
    'extract_identifier',
    'iter_records',
    'split_records',
    # Lookup strategies
    'DEFAULT_TAG_LOOKUP',
    'RegexTagLookup',
    'TagLookup',
    'XmlTagLookup',
    'build_tag_pattern',
    'create_default_lookup',
    # Classification
    'TagClassifier',
    'classify',
    'match_value',
]
