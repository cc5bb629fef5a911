"""
Tag-based note classification.

classify() is a pure function of (fragment text, ClassificationConfig):
- tag absent                    -> sem_categoria
- trimmed value == tomador      -> tomador
- trimmed value == prestador    -> prestador
- anything else                 -> sem_categoria

Values are compared as exact strings: '01' does not match '1'. Real data
depends on this, so it must not be loosened to numeric comparison.
"""

import logging
from typing import Optional

from nfse_splitter.config import ClassificationConfig
from nfse_splitter.models import Category
from nfse_splitter.parsers.tag_lookup import DEFAULT_TAG_LOOKUP, TagLookup, create_default_lookup

logger = logging.getLogger(__name__)


def match_value(value: Optional[str], config: ClassificationConfig) -> Category:
    """
    Map a looked-up tag value to a category.

    Only the matched value is trimmed; configured values are used as given.
    """
    if value is None:
        return Category.SEM_CATEGORIA

    value = value.strip()

    if value == config.tomador_value:
        return Category.TOMADOR
    if value == config.prestador_value:
        return Category.PRESTADOR
    return Category.SEM_CATEGORIA


def classify(
    fragment_text: str,
    config: ClassificationConfig,
    lookup: TagLookup = DEFAULT_TAG_LOOKUP
) -> Category:
    """
    Classify one note fragment.

    Args:
        fragment_text: One <Nfse> envelope
        config: Classification rule, read at call time
        lookup: Tag lookup strategy (default: lexical regex scan)

    Returns:
        Category for the fragment

    Raises:
        ConfigurationError: If config.tag_name is empty or malformed

    Example:
        >>> classify('<Nfse><IssRetido>1</IssRetido></Nfse>', ClassificationConfig())
        <Category.TOMADOR: 'tomador'>
    """
    config.ensure_valid()
    value = lookup.find_first(fragment_text, config.tag_name)
    return match_value(value, config)


class TagClassifier:
    """
    Classifier bound to one config and lookup strategy.

    The pipeline builds one per run from the config it resolved at run start,
    so later config edits never leak into a run in progress.

    Example:
        >>> classifier = TagClassifier(ClassificationConfig())
        >>> classifier.classify('<Nfse><IssRetido>2</IssRetido></Nfse>')
        <Category.PRESTADOR: 'prestador'>
    """

    def __init__(self, config: ClassificationConfig, lookup: Optional[TagLookup] = None):
        """
        Initialize classifier.

        Raises:
            ConfigurationError: If config.tag_name is empty or malformed
        """
        self.config = config.ensure_valid()
        self.lookup = lookup or create_default_lookup()

    def classify(self, fragment_text: str) -> Category:
        """Classify one fragment with the bound config."""
        value = self.lookup.find_first(fragment_text, self.config.tag_name)
        category = match_value(value, self.config)
        logger.debug(
            f"<{self.config.tag_name}> value {value!r} -> {category.value}"
        )
        return category
