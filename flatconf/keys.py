# flatconf/keys.py
"""
flatconf.keys
-------------

Conversion between dotted flat keys ("database.host") and key paths
(``["database", "host"]``).

There is no escape syntax: a segment may not contain the joiner, and empty
segments are rejected, so ``join`` and ``split`` are exact inverses.
"""

from typing import Iterable, List, Optional

from .exceptions import KeyPathError

JOINER = "."


def join(segments: Iterable[str]) -> str:
    """Join key path segments into a flat key.

    Raises:
        KeyPathError: If the path is empty, or a segment is empty, not a
            string, or contains the joiner.
    """
    parts = list(segments)
    if not parts:
        raise KeyPathError("Key path must contain at least one segment")
    for part in parts:
        if not isinstance(part, str):
            raise KeyPathError(f"Key segment {part!r} is not a string (path {parts!r})")
        if not part:
            raise KeyPathError(f"Empty key segment in path {parts!r}")
        if JOINER in part:
            raise KeyPathError(f"Key segment {part!r} contains the joiner {JOINER!r}")
    return JOINER.join(parts)


def split(key: str) -> List[str]:
    """Split a flat key into its segments.

    Examples:
        >>> split("database.host")
        ['database', 'host']

    Raises:
        KeyPathError: If the key is empty or has an empty segment ("a..b", ".a").
    """
    if not isinstance(key, str) or not key:
        raise KeyPathError(f"Invalid key {key!r}: keys must be non-empty strings")
    parts = key.split(JOINER)
    if "" in parts:
        raise KeyPathError(f"Invalid key {key!r}: empty segment")
    return parts


def strip_prefix(key: str, prefix: str) -> Optional[str]:
    """Return ``key`` relative to ``prefix``, or None if it is not under it.

    ``prefix`` itself is not "under" the prefix: ``strip_prefix("a", "a")``
    is None.
    """
    head = prefix + JOINER
    if key.startswith(head):
        return key[len(head):]
    return None
