"""
Reusable field validators for Pydantic models.

These validators can be used with Pydantic @field_validator decorator for
automatic input validation, or called directly.
"""

import re
from typing import List, Sequence


# XML tag names: no markup characters, no whitespace
_INVALID_TAG_CHARS = re.compile(r'[<>/\s]')


def validate_tag_name(tag_name: str) -> str:
    """
    Validate an XML tag name used for classification.

    The tag is matched lexically, so it must be non-empty and free of markup
    characters and whitespace. Surrounding whitespace is not stripped: a tag
    name like ' IssRetido' is rejected rather than silently repaired.

    Args:
        tag_name: Tag name to validate (e.g., 'IssRetido')

    Returns:
        The validated tag name (unchanged if valid)

    Raises:
        ValueError: If tag name is empty or contains invalid characters

    Example:
        >>> validate_tag_name('IssRetido')
        'IssRetido'
        >>> validate_tag_name('')  # Raises ValueError
    """
    if not tag_name or not tag_name.strip():
        raise ValueError(
            "Tag name must not be empty.\n"
            "Example: 'IssRetido' (ABRASF) or 'tipoRecolhimento'"
        )

    if _INVALID_TAG_CHARS.search(tag_name):
        raise ValueError(
            f"Tag name must not contain '<', '>', '/' or whitespace, got: '{tag_name}'"
        )

    return tag_name


def validate_extensions(extensions: Sequence[str]) -> List[str]:
    """
    Normalize and validate a list of file extensions.

    Each extension is lowercased and given a leading dot if missing.

    Args:
        extensions: Extensions such as ['.xml'] or ['XML', 'txt']

    Returns:
        Normalized list (e.g., ['.xml', '.txt'])

    Raises:
        ValueError: If the list is empty or holds a blank extension

    Example:
        >>> validate_extensions(['XML'])
        ['.xml']
    """
    if not extensions:
        raise ValueError("At least one content extension is required")

    normalized = []
    for ext in extensions:
        ext = ext.strip().lower()
        if not ext or ext == '.':
            raise ValueError(f"Invalid extension: '{ext}'")
        if not ext.startswith('.'):
            ext = f".{ext}"
        normalized.append(ext)

    return normalized


def validate_max_workers(value: int) -> int:
    """Validate parallel worker count (1-64)."""
    if value < 1 or value > 64:
        raise ValueError(f"max_workers must be between 1 and 64, got {value}")
    return value
