# flatconf/tree.py
"""
flatconf.tree
-------------

Flattening of nested configuration trees into flat maps keyed by dotted key
paths, and the inverse reconstruction.

A tree node is one of three kinds (see ``NodeKind``): a mapping, which is
descended into; a sequence, which is an opaque leaf and is never merged or
flattened element by element; or a scalar leaf.
"""

import enum
import logging
from collections.abc import Mapping
from typing import Any, Dict, Iterable, List

from .exceptions import KeyConflictError
from .keys import join, split

log = logging.getLogger(__name__)


class NodeKind(enum.Enum):
    MAPPING = "mapping"
    SEQUENCE = "sequence"
    SCALAR = "scalar"


def node_kind(value: Any) -> NodeKind:
    """Classify a generic tree value."""
    if isinstance(value, Mapping):
        return NodeKind.MAPPING
    if isinstance(value, (list, tuple)):
        return NodeKind.SEQUENCE
    return NodeKind.SCALAR


def flatten(tree: Mapping, prefix: Iterable[str] = ()) -> Dict[str, Any]:
    """
    Flatten a nested mapping into ``{"a.b.c": leaf}`` form.

    Mappings are descended into; every other value (scalars and sequences)
    becomes a leaf. An empty mapping contributes no key at all.

    Args:
        tree: The nested mapping to flatten.
        prefix: Segments prepended to every resulting key path.

    Returns:
        A new flat dictionary. Leaf values are not copied.

    Raises:
        KeyPathError: If a mapping key is not a valid key segment.
    """
    flat: Dict[str, Any] = {}
    _flatten_into(flat, tree, list(prefix))
    return flat


def _flatten_into(flat: Dict[str, Any], node: Mapping, path: List[str]) -> None:
    for key, value in node.items():
        segments = path + [key]
        if node_kind(value) is NodeKind.MAPPING:
            _flatten_into(flat, value, segments)
        else:
            flat[join(segments)] = value


def shadowed_keys(flat: Mapping[str, Any]) -> List[str]:
    """Return the keys that are also a strict path-prefix of another key.

    With ``{"a": 1, "a.b": 2}`` the key ``"a"`` is shadowed: it cannot hold a
    leaf and be the parent of ``b`` in the same tree.
    """
    paths = {key: tuple(split(key)) for key in flat}
    parents = set()
    for segments in paths.values():
        for i in range(1, len(segments)):
            parents.add(segments[:i])
    return [key for key, segments in paths.items() if segments in parents]


def unflatten(flat: Mapping[str, Any], strict: bool = False) -> Dict[str, Any]:
    """
    Rebuild a nested dictionary from a flat map.

    Intermediate dictionaries are created on demand. Keys that are the parent
    of other keys (see ``shadowed_keys``) lose: their leaf value is dropped
    with a warning, so the branch always wins whatever the key order is.

    Args:
        flat: Mapping of dotted keys to leaf values.
        strict: Raise instead of dropping shadowed keys.

    Raises:
        KeyConflictError: If ``strict`` is set and some key is shadowed.
        KeyPathError: If a key is not a valid key path.
    """
    shadowed = set(shadowed_keys(flat))
    if shadowed:
        if strict:
            raise KeyConflictError(sorted(shadowed))
        for key in sorted(shadowed):
            log.warning(f"Dropping value of '{key}': the key is also the parent of other keys.")

    tree: Dict[str, Any] = {}
    for key, value in flat.items():
        if key in shadowed:
            continue
        segments = split(key)
        node = tree
        for segment in segments[:-1]:
            node = node.setdefault(segment, {})
        node[segments[-1]] = value
    return tree
