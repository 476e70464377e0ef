"""
Tag string parsing and formatting
"""
from typing import Iterable, List, Optional, Union

from taggable.config.config import DEFAULT_SEPARATOR

TagInput = Optional[Union[str, Iterable[str]]]


def parse_tags(raw: Optional[str], separator: str = DEFAULT_SEPARATOR) -> List[str]:
    """Split a delimited string into trimmed, non-empty tags"""
    if not raw:
        return []
    return [piece.strip() for piece in raw.split(separator) if piece.strip()]


def format_tags(tags: Optional[Iterable[str]], separator: str = DEFAULT_SEPARATOR) -> str:
    """Join tags back into a delimited string"""
    return separator.join(tags or [])


def normalize_tags(value: TagInput, separator: str = DEFAULT_SEPARATOR) -> List[str]:
    """Normalize a string, a list of strings or None into a list of tags.

    List elements are trimmed and blank ones dropped; an element that
    contains the separator is split into several tags, so
    ``['favorite', 'blue, green']`` becomes ``['favorite', 'blue', 'green']``.
    """
    if value is None:
        return []
    if isinstance(value, str):
        return parse_tags(value, separator)

    tags = []
    for item in value:
        if item is None:
            continue
        tags.extend(parse_tags(str(item), separator))
    return tags
