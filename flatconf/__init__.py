# flatconf/__init__.py
"""
flatconf – layered configuration on a flat map of dotted keys.

Sources (buffers, files, environment, ``.env`` files, typed values, plain
mappings) are applied to a ``Config`` in order, later ones overriding
earlier ones key by key. The result is available as a flat map, as nested
dictionaries, or bound onto dataclasses with weak type coercion and
duration parsing.
"""

from .binding import Decoder, FieldSpec, decode, setting
from .exceptions import (
    ConfigError,
    DecodeError,
    EncodeError,
    FileReadError,
    KeyConflictError,
    KeyPathError,
    MissingMandatoryConfig,
    ParseError,
    UnsupportedFormat,
)
from .loader import Config
from .sources import BufferSource, DotenvSource, EnvSource, FileSource, MapSource, Source, StructSource

__version__ = "0.1.0"

__all__ = [
    "Config",
    "Source",
    "BufferSource",
    "FileSource",
    "EnvSource",
    "DotenvSource",
    "StructSource",
    "MapSource",
    "Decoder",
    "FieldSpec",
    "decode",
    "setting",
    "ConfigError",
    "DecodeError",
    "EncodeError",
    "FileReadError",
    "KeyConflictError",
    "KeyPathError",
    "MissingMandatoryConfig",
    "ParseError",
    "UnsupportedFormat",
]
