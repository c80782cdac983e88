# flatconf/formats.py
"""
flatconf.formats
----------------

Parsing of structured text buffers into generic trees.

Format tags are case-insensitive: ``json``/``js``, ``yaml``/``yml`` and
``toml``/``tml``. Every parser yields the same shape: a dict with string keys
whose values are dicts, lists, strings, numbers, booleans or None.

YAML is read with JSON-compatible scalar rules (``true``/``false`` only, no
``yes``/``on``, no timestamps, no octal or sexagesimal numbers) so the same
document means the same thing in either format.
"""

import json
import os
import re
import sys
from typing import Any, Dict, Union

import yaml

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .exceptions import ParseError, UnsupportedFormat

JSON = "json"
YAML = "yaml"
TOML = "toml"

FORMAT_TAGS = {
    "json": JSON,
    "js": JSON,
    "yaml": YAML,
    "yml": YAML,
    "toml": TOML,
    "tml": TOML,
}


def _key_to_str(key: Any) -> str:
    if isinstance(key, bool):
        return "true" if key else "false"
    if key is None:
        return "null"
    return str(key)


class JsonCompatibleLoader(yaml.SafeLoader):
    """SafeLoader whose implicit scalar typing matches JSON.

    Mapping keys are turned into strings as they are constructed, so keys
    that Python would consider equal (``1``, ``true``, ``1.0``) stay distinct.
    """

    def construct_mapping(self, node, deep=False):
        if not isinstance(node, yaml.MappingNode):
            raise yaml.constructor.ConstructorError(
                None, None, f"expected a mapping node, but found {node.id}", node.start_mark
            )
        self.flatten_mapping(node)
        mapping = {}
        for key_node, value_node in node.value:
            key = _key_to_str(self.construct_object(key_node, deep=deep))
            mapping[key] = self.construct_object(value_node, deep=deep)
        return mapping


_BOOL_TAG = "tag:yaml.org,2002:bool"
_INT_TAG = "tag:yaml.org,2002:int"
_FLOAT_TAG = "tag:yaml.org,2002:float"
_TIMESTAMP_TAG = "tag:yaml.org,2002:timestamp"

JsonCompatibleLoader.yaml_implicit_resolvers = {
    first: [
        (tag, regexp)
        for tag, regexp in resolvers
        if tag not in (_BOOL_TAG, _INT_TAG, _FLOAT_TAG, _TIMESTAMP_TAG)
    ]
    for first, resolvers in yaml.SafeLoader.yaml_implicit_resolvers.items()
}
JsonCompatibleLoader.add_implicit_resolver(
    _BOOL_TAG,
    re.compile(r"^(?:true|True|TRUE|false|False|FALSE)$"),
    list("tTfF"),
)
JsonCompatibleLoader.add_implicit_resolver(
    _INT_TAG,
    re.compile(r"^(?:[-+]?(?:0|[1-9][0-9]*)|0x[0-9a-fA-F]+)$"),
    list("-+0123456789"),
)
JsonCompatibleLoader.add_implicit_resolver(
    _FLOAT_TAG,
    re.compile(
        r"^(?:[-+]?(?:\.[0-9]+|(?:0|[1-9][0-9]*)(?:\.[0-9]*)?)(?:[eE][-+]?[0-9]+)?"
        r"|[-+]?\.(?:inf|Inf|INF)|\.(?:nan|NaN|NAN))$"
    ),
    list("-+.0123456789"),
)


def resolve_format(tag: str) -> str:
    """Map a format tag to its canonical name (``json``, ``yaml`` or ``toml``).

    Raises:
        UnsupportedFormat: If the tag is not recognised.
    """
    canonical = FORMAT_TAGS.get((tag or "").strip().lower())
    if canonical is None:
        raise UnsupportedFormat(tag)
    return canonical


def format_from_path(path: str) -> str:
    """Return the format tag implied by a path's extension ("cfg.YML" -> "yml")."""
    return os.path.splitext(path)[1].lower().lstrip(".")


def parse_buffer(buf: Union[bytes, str], tag: str) -> Dict[str, Any]:
    """
    Parse ``buf`` according to ``tag`` into a generic tree.

    A blank buffer parses to an empty dict.

    Raises:
        UnsupportedFormat: If ``tag`` is not recognised.
        ParseError: If the payload is malformed or its root is not a mapping.
    """
    fmt = resolve_format(tag)
    try:
        text = buf.decode("utf-8") if isinstance(buf, (bytes, bytearray)) else buf
    except UnicodeDecodeError as e:
        raise ParseError(f"Cannot parse {fmt} buffer: not valid UTF-8 ({e})", format=fmt) from e
    if not text.strip():
        return {}

    try:
        if fmt == JSON:
            data = json.loads(text)
        elif fmt == YAML:
            data = yaml.load(text, Loader=JsonCompatibleLoader)
        else:
            data = tomllib.loads(text)
    except (ValueError, yaml.YAMLError) as e:
        # json.JSONDecodeError and tomllib.TOMLDecodeError are ValueErrors
        raise ParseError(f"Cannot parse {fmt} buffer: {e}", format=fmt) from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ParseError(
            f"Cannot parse {fmt} buffer: root must be a mapping, got {type(data).__name__}",
            format=fmt,
        )
    return data
