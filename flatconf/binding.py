# flatconf/binding.py
"""
flatconf.binding
----------------

Binding of hierarchical configuration maps onto dataclasses, and the reverse
encoding used to seed a configuration from a typed value.

Field names:
    A field is matched against the map by its declared name (see ``setting``)
    or, without one, by its attribute name. An exact match is tried first,
    then a case-insensitive one. Keys that match no field are ignored.

Decoding:
    Every value first runs through the decode hooks (by default only
    ``string_to_timedelta``), then is shaped by the target annotation:
    dataclasses, ``Optional``/unions, lists, tuples, sets, dicts and enums are
    handled structurally; scalars are accepted as-is when they already have the
    right type, otherwise the first matching ``CoercionRule`` converts them.
    Weakly typed decoding (the default) adds rules that turn strings into
    booleans and numbers, so environment values can fill typed fields.
"""

from __future__ import annotations

import copy
import dataclasses
import enum
import logging
import types
from collections import abc
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path, PurePath
from typing import Any, Callable, Iterable, Union, get_args, get_origin, get_type_hints

from .durations import format_duration, parse_duration
from .exceptions import DecodeError

log = logging.getLogger(__name__)

METADATA_KEY = "flatconf"


# ---------------------------------------------------------------------------
# Field metadata
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class FieldSpec:
    """Per-field binding metadata.

    Attributes:
        name: Key used in the configuration map, or None for the attribute name.
        omitempty: Leave the field out when encoding if it holds an empty value
            (None, False, 0, "", an empty collection or a zero duration).
    """

    name: str | None = None
    omitempty: bool = False


def setting(name: str | None = None, *, omitempty: bool = False, **kwargs: Any) -> Any:
    """Declare a dataclass field with binding metadata.

    Accepts the same keyword arguments as ``dataclasses.field``.

    Example:
        >>> @dataclass
        ... class Server:
        ...     timeout: timedelta = setting("timeout_after", default=timedelta(seconds=30))
    """
    metadata = dict(kwargs.pop("metadata", None) or {})
    metadata[METADATA_KEY] = FieldSpec(name=name, omitempty=omitempty)
    return field(metadata=metadata, **kwargs)


def field_spec(f: dataclasses.Field) -> FieldSpec:
    return f.metadata.get(METADATA_KEY) or FieldSpec()


def field_key(f: dataclasses.Field) -> str:
    """The configuration key a dataclass field binds to."""
    return field_spec(f).name or f.name


# ---------------------------------------------------------------------------
# Encoding
# ---------------------------------------------------------------------------


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, (bool, int, float, str, bytes, list, tuple, set, frozenset, timedelta)):
        return not value
    if isinstance(value, abc.Mapping):
        return not value
    return False


def encode_value(value: Any) -> Any:
    """``default=`` hook for ``json.dumps`` covering the types flatconf binds.

    Dataclasses become dicts keyed by their field keys (honouring
    ``omitempty``), durations become duration strings, enums their value and
    paths plain strings.

    Raises:
        TypeError: For any other non-JSON type, as ``json.dumps`` expects.
    """
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        encoded = {}
        for f in dataclasses.fields(value):
            item = getattr(value, f.name)
            if field_spec(f).omitempty and _is_empty(item):
                continue
            encoded[field_key(f)] = item
        return encoded
    if isinstance(value, timedelta):
        return format_duration(value)
    if isinstance(value, enum.Enum):
        return value.value
    if isinstance(value, PurePath):
        return str(value)
    if isinstance(value, abc.Mapping):
        return dict(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


# ---------------------------------------------------------------------------
# Coercion rules and hooks
# ---------------------------------------------------------------------------


def value_kind(value: Any) -> str:
    """Name the representation kind of a generic value ("str", "int", ...)."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "float"
    if isinstance(value, str):
        return "str"
    if isinstance(value, abc.Mapping):
        return "mapping"
    if isinstance(value, (list, tuple, set, frozenset)):
        return "sequence"
    return type(value).__name__


@dataclass(frozen=True)
class CoercionRule:
    """Converts values of kind ``source`` into the type ``target``."""

    source: str
    target: Any
    convert: Callable[[Any], Any]


_TRUE_STRINGS = {"1", "t", "true", "y", "yes", "on"}
_FALSE_STRINGS = {"", "0", "f", "false", "n", "no", "off"}


def _str_to_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_STRINGS:
        return True
    if lowered in _FALSE_STRINGS:
        return False
    raise ValueError(f"not a boolean: {value!r}")


def _str_to_int(value: str) -> int:
    stripped = value.strip()
    if not stripped:
        return 0
    try:
        # base 0 accepts 0x.., 0o.. and 0b.. prefixes
        return int(stripped, 0)
    except ValueError:
        # base 0 refuses leading zeros ("010")
        return int(stripped, 10)


def _str_to_float(value: str) -> float:
    stripped = value.strip()
    if not stripped:
        return 0.0
    return float(stripped)


def _float_to_int(value: float) -> int:
    if not value.is_integer():
        raise ValueError(f"{value!r} has a fractional part")
    return int(value)


BASE_RULES = (
    CoercionRule("int", float, float),
    CoercionRule("str", Path, Path),
    CoercionRule("str", PurePath, PurePath),
)

WEAK_RULES = (
    CoercionRule("str", bool, _str_to_bool),
    CoercionRule("int", bool, bool),
    CoercionRule("float", bool, bool),
    CoercionRule("str", int, _str_to_int),
    CoercionRule("float", int, _float_to_int),
    CoercionRule("bool", int, int),
    CoercionRule("str", float, _str_to_float),
    CoercionRule("bool", float, float),
    CoercionRule("bool", str, lambda v: "1" if v else "0"),
    CoercionRule("int", str, str),
    CoercionRule("float", str, str),
    CoercionRule("int", timedelta, lambda v: timedelta(seconds=v)),
    CoercionRule("float", timedelta, lambda v: timedelta(seconds=v)),
)

DecodeHook = Callable[[Any, Any], Any]


def string_to_timedelta(value: Any, target: Any) -> Any:
    """Parse duration strings ("1m", "250ms") bound to ``timedelta`` fields."""
    if isinstance(value, str) and target is timedelta:
        return parse_duration(value)
    return value


DEFAULT_HOOKS = (string_to_timedelta,)


# ---------------------------------------------------------------------------
# Decoder
# ---------------------------------------------------------------------------


def _type_name(tp: Any) -> str:
    return tp.__name__ if isinstance(tp, type) else str(tp)


def _child(path: str, key: Any) -> str:
    return f"{path}.{key}" if path else str(key)


def _accepts_none(tp: Any) -> bool:
    if tp is Any or tp is object or tp is type(None):
        return True
    if get_origin(tp) in (Union, types.UnionType):
        return type(None) in get_args(tp)
    return False


def _is_exact(value: Any, tp: Any) -> bool:
    if get_origin(tp) is not None or not isinstance(tp, type) or not isinstance(value, tp):
        return False
    # bool is an int subclass but only binds to bool without coercion
    return not isinstance(value, bool) or tp is bool


class Decoder:
    """
    Binds generic trees (dicts, lists, scalars) onto typed targets.

    Args:
        hooks: Callables ``hook(value, target_type) -> value`` applied in
            order to every value before it is converted. A hook that does not
            handle a case must return the value unchanged.
        weakly_typed: Enable ``WEAK_RULES`` and single-value-to-list wrapping.
        rules: Replace the coercion rules entirely.
    """

    def __init__(
        self,
        hooks: Iterable[DecodeHook] = DEFAULT_HOOKS,
        weakly_typed: bool = True,
        rules: Iterable[CoercionRule] | None = None,
    ):
        self.hooks = list(hooks)
        self.weakly_typed = weakly_typed
        if rules is None:
            rules = BASE_RULES + WEAK_RULES if weakly_typed else BASE_RULES
        self.rules = list(rules)

    def decode(self, data: Any, target: Any) -> Any:
        """
        Decode ``data`` into ``target``.

        ``target`` is either a type (usually a dataclass; a new value is
        built and returned) or a dataclass instance, which is updated in
        place with the fields present in ``data`` and returned.

        Raises:
            DecodeError: If a value cannot be bound.
            TypeError: If ``target`` is an unsupported instance.
        """
        if isinstance(target, type) or get_origin(target) is not None:
            return self.convert(data, target, "")
        if dataclasses.is_dataclass(target):
            self._fill(target, data, "")
            return target
        raise TypeError(
            f"Cannot decode into a {type(target).__name__} instance; pass a dataclass instance or a type"
        )

    def convert(self, value: Any, tp: Any, path: str = "") -> Any:
        """Convert a single generic value to the annotation ``tp``."""
        for hook in self.hooks:
            try:
                value = hook(value, tp)
            except (ValueError, TypeError) as e:
                raise DecodeError(str(e), path) from e

        if tp is Any or tp is object:
            return copy.deepcopy(value)
        origin = get_origin(tp)
        if origin in (Union, types.UnionType):
            return self._convert_union(value, tp, path)
        if value is None:
            if tp is type(None):
                return None
            raise DecodeError(f"expected {_type_name(tp)}, got null", path)
        if dataclasses.is_dataclass(tp):
            return self._build(tp, value, path)
        if isinstance(tp, type) and issubclass(tp, enum.Enum):
            return self._convert_enum(value, tp, path)
        if origin in (list, tuple, set, frozenset, abc.Sequence, abc.MutableSequence, abc.Set, abc.MutableSet) \
                or tp in (list, tuple, set, frozenset):
            return self._convert_sequence(value, tp, path)
        if origin in (dict, abc.Mapping, abc.MutableMapping) or tp is dict:
            return self._convert_mapping(value, tp, path)
        return self._convert_scalar(value, tp, path)

    # --- structures ---

    def _field_values(self, cls: type, data: Any, path: str) -> dict:
        if not isinstance(data, abc.Mapping):
            raise DecodeError(
                f"expected a mapping for {cls.__name__}, got {type(data).__name__}", path
            )
        hints = get_type_hints(cls)
        folded = {}
        for key in data:
            if isinstance(key, str):
                folded.setdefault(key.lower(), key)

        values = {}
        for f in dataclasses.fields(cls):
            name = field_key(f)
            key = name if name in data else folded.get(name.lower())
            if key is None:
                continue
            raw = data[key]
            tp = hints.get(f.name, Any)
            if raw is None and not _accepts_none(tp):
                # null leaves the field unset
                continue
            values[f.name] = self.convert(raw, tp, _child(path, key))
        return values

    def _build(self, cls: type, data: Any, path: str) -> Any:
        values = self._field_values(cls, data, path)
        kwargs, late = {}, {}
        for f in dataclasses.fields(cls):
            if f.name in values:
                (kwargs if f.init else late)[f.name] = values[f.name]
            elif f.init and f.default is dataclasses.MISSING and f.default_factory is dataclasses.MISSING:
                raise DecodeError(f"missing required setting for {cls.__name__}", _child(path, field_key(f)))
        obj = cls(**kwargs)
        for name, value in late.items():
            object.__setattr__(obj, name, value)
        return obj

    def _fill(self, obj: Any, data: Any, path: str) -> None:
        cls = type(obj)
        if cls.__dataclass_params__.frozen:
            raise TypeError(f"Cannot decode in place into frozen dataclass {cls.__name__}; pass the class")
        for name, value in self._field_values(cls, data, path).items():
            setattr(obj, name, value)

    def _convert_union(self, value: Any, tp: Any, path: str) -> Any:
        args = get_args(tp)
        if value is None:
            if type(None) in args:
                return None
            raise DecodeError(f"expected {tp}, got null", path)
        candidates = [arg for arg in args if arg is not type(None)]
        for arg in candidates:
            if _is_exact(value, arg):
                return self.convert(value, arg, path)
        last_error = None
        for arg in candidates:
            try:
                return self.convert(value, arg, path)
            except DecodeError as e:
                last_error = e
        raise DecodeError(f"cannot decode {value!r} as {tp}", path) from last_error

    def _convert_enum(self, value: Any, tp: type, path: str) -> Any:
        try:
            return tp(value)
        except ValueError:
            pass
        if isinstance(value, str):
            for member in tp:
                if value == member.name or (self.weakly_typed and value == str(member.value)):
                    return member
        raise DecodeError(f"{value!r} is not a valid {tp.__name__}", path)

    def _convert_sequence(self, value: Any, tp: Any, path: str) -> Any:
        origin = get_origin(tp) or tp
        args = get_args(tp)
        if isinstance(value, (list, tuple, set, frozenset)):
            items = list(value)
        elif isinstance(value, abc.Mapping) and not value and self.weakly_typed:
            items = []
        elif self.weakly_typed and not isinstance(value, abc.Mapping):
            items = [value]
        else:
            raise DecodeError(f"expected a sequence, got {type(value).__name__}", path)

        if origin is tuple:
            if len(args) == 2 and args[1] is Ellipsis:
                return tuple(self.convert(item, args[0], f"{path}[{i}]") for i, item in enumerate(items))
            if args:
                if len(args) != len(items):
                    raise DecodeError(f"expected {len(args)} items, got {len(items)}", path)
                return tuple(self.convert(item, arg, f"{path}[{i}]") for i, (item, arg) in enumerate(zip(items, args)))
            return tuple(copy.deepcopy(items))

        item_type = args[0] if args else Any
        converted = [self.convert(item, item_type, f"{path}[{i}]") for i, item in enumerate(items)]
        if origin is frozenset:
            return frozenset(converted)
        if origin in (set, abc.Set, abc.MutableSet):
            return set(converted)
        return converted

    def _convert_mapping(self, value: Any, tp: Any, path: str) -> dict:
        if not isinstance(value, abc.Mapping):
            raise DecodeError(f"expected a mapping, got {type(value).__name__}", path)
        args = get_args(tp)
        key_type, item_type = args if len(args) == 2 else (Any, Any)
        return {
            self.convert(key, key_type, _child(path, key)): self.convert(item, item_type, _child(path, key))
            for key, item in value.items()
        }

    def _convert_scalar(self, value: Any, tp: Any, path: str) -> Any:
        if _is_exact(value, tp):
            return value
        kind = value_kind(value)
        for rule in self.rules:
            if rule.source == kind and rule.target is tp:
                try:
                    return rule.convert(value)
                except (ValueError, TypeError, OverflowError) as e:
                    raise DecodeError(f"cannot convert {value!r} to {_type_name(tp)}: {e}", path) from e
        raise DecodeError(f"expected {_type_name(tp)}, got {kind} {value!r}", path)


def decode(data: Any, target: Any, hooks: Iterable[DecodeHook] = DEFAULT_HOOKS, weakly_typed: bool = True) -> Any:
    """Shortcut for ``Decoder(hooks, weakly_typed).decode(data, target)``."""
    return Decoder(hooks=hooks, weakly_typed=weakly_typed).decode(data, target)
