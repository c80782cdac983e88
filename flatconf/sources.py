# flatconf/sources.py
"""
flatconf.sources
----------------

Configuration sources. Each source turns one origin (a text buffer, a file,
the process environment, a ``.env`` file, a typed value or a plain mapping)
into flat ``{"dotted.key": value}`` entries.

``Source.entries()`` parses or scans the origin completely before returning,
so a failing source never contributes a partial set of keys.
``Source.override(flat)`` returns a new flat map with those entries laid over
``flat``; the input map is never modified and keys are never removed.
"""

import json
import logging
import os
from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any, Dict, Iterable, Optional, Union

from dotenv import dotenv_values, find_dotenv

from .binding import encode_value
from .exceptions import EncodeError, FileReadError, KeyPathError, ParseError
from .formats import JSON, format_from_path, parse_buffer
from .keys import JOINER, join, split
from .tree import flatten

log = logging.getLogger(__name__)


def expand_path(path: str) -> str:
    """Expand ``~`` and ``$VAR``/``${VAR}`` references in a path."""
    return os.path.expandvars(os.path.expanduser(path))


def _prefix_segments(prefix: Optional[str]) -> list:
    return split(prefix) if prefix else []


class Source(ABC):
    """
    Base class for configuration sources.

    Subclasses implement ``entries()``. ``Config.add_source`` applies a source
    through ``override()``, which subclasses may replace when their
    contribution depends on the keys already present. ``label`` names the
    source in provenance records and log messages.
    """

    label = "source"

    @abstractmethod
    def entries(self) -> Dict[str, Any]:
        """Return this source's flat key/value contributions."""

    def override(self, flat: Mapping) -> Dict[str, Any]:
        """Return a copy of ``flat`` updated with this source's entries."""
        merged = dict(flat)
        merged.update(self.entries())
        return merged

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.label!r})"


class BufferSource(Source):
    """
    Structured text held in memory.

    Args:
        buf: The payload, as bytes (UTF-8) or str.
        format: Format tag, case-insensitive (``json``, ``js``, ``yaml``,
            ``yml``, ``toml``, ``tml``). Checked when the source is applied.
        prefix: Optional dotted key every entry is placed under.
    """

    def __init__(self, buf: Union[bytes, str], format: str, prefix: Optional[str] = None):
        self.buf = buf
        self.format = (format or "").lower()
        self.prefix = prefix
        self.label = f"buffer:{self.format}"

    def entries(self) -> Dict[str, Any]:
        tree = parse_buffer(self.buf, self.format)
        try:
            return flatten(tree, _prefix_segments(self.prefix))
        except KeyPathError as e:
            raise ParseError(f"Invalid key in {self.format} buffer: {e}", format=self.format) from e


class FileSource(Source):
    """
    A JSON, YAML or TOML file; the format comes from the file extension.

    ``~`` and environment variables in ``path`` are expanded. A missing file
    is a ``FileReadError`` unless ``required`` is False, in which case the
    source contributes nothing.
    """

    def __init__(self, path: str, prefix: Optional[str] = None, required: bool = True):
        self.path = expand_path(path)
        self.prefix = prefix
        self.required = required
        self.label = f"file:{os.path.abspath(self.path)}"

    def entries(self) -> Dict[str, Any]:
        if not self.required and not os.path.exists(self.path):
            log.warning(f"Optional config file not found, skipping: {self.path}")
            return {}
        try:
            with open(self.path, mode="rb") as f:
                buf = f.read()
        except OSError as e:
            raise FileReadError(self.path, e.strerror or e) from e

        fmt = format_from_path(self.path)
        try:
            return BufferSource(buf, fmt, prefix=self.prefix).entries()
        except ParseError as e:
            raise ParseError(f"{self.path}: {e}", format=e.format) from e


def env_entries(items, prefix: Optional[str] = None) -> Dict[str, Any]:
    """
    Map environment-style ``NAME=value`` pairs to flat entries.

    Names are lower-cased and every underscore becomes the key joiner
    (``MY_DB_HOST`` -> ``my.db.host``). With a prefix (matched
    case-insensitively, e.g. ``"my"`` or ``"MY"``) only names under it are
    kept and the prefix is stripped; without one every name is kept. Names
    that do not form a valid key path (``_X``, ``A__B``) are skipped.
    Values stay strings.
    """
    head = ""
    if prefix:
        head = prefix.strip().lower().replace("_", JOINER).rstrip(JOINER) + JOINER

    collected = {}
    for name, value in items:
        if value is None:
            continue
        key = name.lower().replace("_", JOINER)
        if head:
            if not key.startswith(head):
                continue
            key = key[len(head):]
        try:
            key = join(split(key))
        except KeyPathError:
            log.debug(f"Skipping environment variable '{name}': not a valid key path.")
            continue
        collected[key] = value
    return collected


class EnvSource(Source):
    """
    Process environment variables.

    Args:
        prefix: Optional case-insensitive prefix ("my" keeps ``MY_*`` only).
        environ: Mapping to read instead of ``os.environ``.
    """

    def __init__(self, prefix: Optional[str] = None, environ: Optional[Mapping] = None):
        self.prefix = prefix
        self.environ = environ
        self.label = f"env:{prefix.upper().replace(JOINER, '_')}_*" if prefix else "env:*"

    def entries(self) -> Dict[str, Any]:
        environ = os.environ if self.environ is None else self.environ
        collected = env_entries(environ.items(), self.prefix)
        log.debug(f"Collected {len(collected)} of {len(environ)} environment variables (prefix {self.prefix!r})")
        return collected


class DotenvSource(Source):
    """
    Variables from a ``.env`` file, named like environment variables.

    The file is read with python-dotenv and never exported to ``os.environ``.
    Without ``path`` the nearest ``.env`` from the working directory upwards
    is used, and having none is not an error.
    """

    def __init__(self, path: Optional[str] = None, prefix: Optional[str] = None):
        self.path = expand_path(path) if path else None
        self.prefix = prefix
        self.label = f"dotenv:{self.path}" if self.path else "dotenv"

    def entries(self) -> Dict[str, Any]:
        path = self.path
        if path is None:
            path = find_dotenv(usecwd=True)
            if not path:
                log.debug("No .env file found")
                return {}
        elif not os.path.isfile(path):
            raise FileReadError(path, "no such file")
        values = dotenv_values(path)
        log.debug(f"Read {len(values)} variables from {path}")
        return env_entries(values.items(), self.prefix)


class StructSource(Source):
    """
    A typed value (usually a dataclass instance) used as a layer of settings.

    The value is serialised to JSON with ``binding.encode_value`` and read
    back through the JSON parser, so it yields exactly the entries the
    equivalent JSON document would. Fields declared with ``omitempty`` and
    holding empty values contribute nothing.
    """

    label = "struct"

    def __init__(self, value: Any, prefix: Optional[str] = None):
        self.value = value
        self.prefix = prefix

    def entries(self) -> Dict[str, Any]:
        try:
            text = json.dumps(self.value, default=encode_value)
        except (TypeError, ValueError) as e:
            raise EncodeError(f"Cannot encode {type(self.value).__name__}: {e}") from e
        try:
            tree = parse_buffer(text, JSON)
            return flatten(tree, _prefix_segments(self.prefix))
        except (ParseError, KeyPathError) as e:
            raise EncodeError(f"{type(self.value).__name__} does not encode to a settings mapping: {e}") from e


class MapSource(Source):
    """
    An in-memory mapping, typically defaults or explicit overrides.

    Nested mappings are flattened. Top-level keys may be dotted paths
    (``{"db.port": 5432}``), which are split into segments.
    """

    def __init__(self, data: Mapping, prefix: Optional[str] = None, label: str = "overrides"):
        self.data = data
        self.prefix = prefix
        self.label = label

    def entries(self) -> Dict[str, Any]:
        base = _prefix_segments(self.prefix)
        collected = {}
        for key, value in self.data.items():
            segments = base + split(key)
            if isinstance(value, Mapping):
                collected.update(flatten(value, segments))
            else:
                collected[join(segments)] = value
        return collected


def parse_overrides(pairs: Iterable[str]) -> Dict[str, Any]:
    """
    Turn ``KEY=VALUE`` strings into a dict for ``MapSource``.

    VALUE is decoded as JSON when it parses as JSON (``port=8080``,
    ``debug=true``, ``tags=["a"]``) and kept as a plain string otherwise.

    Raises:
        ValueError: If an item has no ``=``.
    """
    overrides = {}
    for pair in pairs:
        if "=" not in pair:
            raise ValueError(f"expected KEY=VALUE, got {pair!r}")
        key, raw = pair.split("=", 1)
        try:
            overrides[key.strip()] = json.loads(raw)
        except ValueError:
            overrides[key.strip()] = raw
    return overrides


__all__ = [
    "Source",
    "BufferSource",
    "FileSource",
    "EnvSource",
    "DotenvSource",
    "StructSource",
    "MapSource",
    "env_entries",
    "expand_path",
    "parse_overrides",
]
