"""
Tag Value Lookup Strategies

Provides pluggable strategies for finding the first value of a tag inside a
note fragment. The classifier only depends on the TagLookup interface, so
the lexical scanner can be swapped for a structural parser without touching
classification or pipeline code.

Design:
- Strategy Pattern: lookups are interchangeable
- RegexTagLookup (default): lexical scan, tolerant of malformed XML
- XmlTagLookup: lxml parse in recover mode, namespace-agnostic
"""

from abc import ABC, abstractmethod
from functools import lru_cache
import re
from typing import Optional, Pattern

from lxml import etree


class TagLookup(ABC):
    """
    Abstract base class for tag value lookup strategies.

    Tag names are matched case-insensitively. Only the first occurrence is
    considered.
    """

    @abstractmethod
    def find_first(self, text: str, tag_name: str) -> Optional[str]:
        """
        Find the value of the first occurrence of tag_name.

        Args:
            text: Fragment text to search
            tag_name: Tag name to look for (e.g., 'IssRetido')

        Returns:
            Raw (untrimmed) value if the tag is found, None otherwise
        """
        pass


@lru_cache(maxsize=64)
def build_tag_pattern(tag_name: str) -> Pattern[str]:
    """
    Compile the case-insensitive pattern for a tag.

    Accepts attributes on the open tag; a self-closing tag never opens a
    match. The tag name is escaped, so it is always matched literally.

    Example:
        >>> build_tag_pattern('IssRetido').search('<issretido>1</ISSRETIDO>').group(1)
        '1'
    """
    escaped = re.escape(tag_name)
    return re.compile(
        rf'<{escaped}(?:\s[^>]*?)?(?<!/)>(.*?)</{escaped}\s*>',
        re.IGNORECASE | re.DOTALL
    )


class RegexTagLookup(TagLookup):
    """
    Lexical lookup via regular expression scanning.

    Fast and tolerant of irregular XML. Use as default.
    """

    def find_first(self, text: str, tag_name: str) -> Optional[str]:
        """Return the inner text of the first <tag_name>...</tag_name>."""
        match = build_tag_pattern(tag_name).search(text)
        if match is None:
            return None
        return match.group(1)


class XmlTagLookup(TagLookup):
    """
    Structural lookup using lxml in recover mode.

    Matches element local names case-insensitively, ignoring namespaces.
    Returns the element's own text (child markup excluded). Fragments lxml
    cannot recover at all yield None.
    """

    def __init__(self):
        self._parser = etree.XMLParser(recover=True, resolve_entities=False, no_network=True)

    def find_first(self, text: str, tag_name: str) -> Optional[str]:
        """Return the text of the first element whose local name matches."""
        try:
            root = etree.fromstring(text.encode('utf-8'), self._parser)
        except etree.XMLSyntaxError:
            return None

        if root is None:
            return None

        target = tag_name.lower()
        for element in root.iter():
            # Comments and processing instructions have non-string tags
            if not isinstance(element.tag, str):
                continue
            if etree.QName(element).localname.lower() == target:
                return element.text or ''

        return None


DEFAULT_TAG_LOOKUP: TagLookup = RegexTagLookup()


def create_default_lookup() -> TagLookup:
    """
    Create default lookup strategy.

    Returns:
        RegexTagLookup (lexical scanning)
    """
    return RegexTagLookup()
