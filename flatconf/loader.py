# flatconf/loader.py
"""
flatconf.loader
---------------

The configuration store. A ``Config`` owns a single flat map of dotted keys
to leaf values and grows it by applying sources in the order the caller adds
them; for a key set by several sources the most recently added one wins.

Typical layering (lowest to highest priority)::

    cfg = Config(
        StructSource(Settings()),          # programmatic defaults
        FileSource("~/.config/app.yaml"),  # file
        EnvSource(prefix="app"),           # APP_DB_HOST -> db.host
        MapSource({"db.port": 5433}),      # explicit overrides
    )
    settings = cfg.decode(Settings)

Every view (flat map, hierarchical map, decoded object) is a fresh copy, so
callers can never modify the store through them.

A store is meant for one owner: concurrent ``add_source`` calls must be
serialised by the caller. Reads may run concurrently once writes are done.
"""

import copy
import logging
from typing import Any, Dict, Iterable, List, Optional

from .binding import DEFAULT_HOOKS, DecodeHook, Decoder
from .exceptions import KeyPathError, MissingMandatoryConfig
from .keys import JOINER, split, strip_prefix
from .provenance import Origin, ProvenanceLog
from .sources import Source
from .tree import unflatten

log = logging.getLogger(__name__)


class Config:
    """
    Layered configuration built from an ordered list of sources.

    Args:
        *sources: Sources applied immediately, in order.
        track_provenance: Record which source set each key
            (see ``provenance()``).
    """

    def __init__(self, *sources: Source, track_provenance: bool = False):
        self._flat: Dict[str, Any] = {}
        self._provenance: Optional[ProvenanceLog] = ProvenanceLog() if track_provenance else None
        for source in sources:
            self.add_source(source)

    # --- Merging ---

    def add_source(self, source: Source) -> "Config":
        """
        Replace the flat map with ``source.override(current flat map)``.

        The source is handed a copy and its result is committed only once it
        returns: if it raises, the store is left exactly as it was. Provenance
        records the keys the source added or changed.

        Returns:
            The store itself, so calls can be chained.
        """
        previous = self._flat
        merged = dict(source.override(dict(previous)))
        changed = {
            key: value
            for key, value in merged.items()
            if key not in previous or value != previous[key]
        }
        self._flat = merged
        if self._provenance is not None:
            self._provenance.record(source.label, changed)
        log.debug(f"Applied {source.label}: {len(changed)} keys changed ({len(self._flat)} total)")
        return self

    # --- Views ---

    def to_flat_map(self) -> Dict[str, Any]:
        """Return a copy of the flat map."""
        return copy.deepcopy(self._flat)

    def to_hierarchical_map(self, prefix: Optional[str] = None, strict: bool = False) -> Dict[str, Any]:
        """
        Return the configuration as nested dictionaries.

        Args:
            prefix: Only include keys under this dotted key, relative to it.
            strict: Raise ``KeyConflictError`` when a key is both a leaf and
                the parent of other keys, instead of dropping the leaf.
        """
        return unflatten(self._scoped(prefix), strict=strict)

    def decode(
        self,
        target: Any,
        prefix: Optional[str] = None,
        hooks: Iterable[DecodeHook] = DEFAULT_HOOKS,
        weakly_typed: bool = True,
    ) -> Any:
        """
        Bind the configuration onto a dataclass.

        Args:
            target: A dataclass type (a new instance is returned) or a
                dataclass instance (updated in place and returned).
            prefix: Only bind the keys under this dotted key, relative to it,
                e.g. ``prefix="values.v1"`` binds ``values.v1.b`` to field ``b``.
            hooks: Decode hooks; by default duration strings are parsed for
                ``timedelta`` fields.
            weakly_typed: Coerce strings to booleans and numbers as needed.

        Raises:
            DecodeError: If a value cannot be bound to its field.
        """
        tree = unflatten(self._scoped(prefix))
        if prefix:
            log.debug(f"Decoding {len(tree)} top-level keys under '{prefix}'")
        return Decoder(hooks=hooks, weakly_typed=weakly_typed).decode(tree, target)

    def _scoped(self, prefix: Optional[str]) -> Dict[str, Any]:
        if not prefix:
            return copy.deepcopy(self._flat)
        prefix = JOINER.join(split(prefix))
        scoped = {}
        for key, value in self._flat.items():
            relative = strip_prefix(key, prefix)
            if relative is not None:
                scoped[relative] = copy.deepcopy(value)
        return scoped

    # --- Lookup ---

    def get(self, key: str, default: Any = None) -> Any:
        """
        Retrieve a value using dot-notation, returning default if not found.

        A leaf key returns its value; a key that is the parent of other keys
        returns the nested dictionary below it.
        """
        if key in self._flat:
            return copy.deepcopy(self._flat[key])
        try:
            subtree = self.to_hierarchical_map(prefix=key)
        except KeyPathError:
            return default
        return subtree if subtree else default

    def __contains__(self, key: Any) -> bool:
        if not isinstance(key, str) or not key:
            return False
        if key in self._flat:
            return True
        head = key + JOINER
        return any(k.startswith(head) for k in self._flat)

    def __len__(self) -> int:
        return len(self._flat)

    def keys(self) -> List[str]:
        return list(self._flat)

    def require(self, keys: Iterable[str]) -> None:
        """
        Check that every key in ``keys`` is present (as a leaf or a branch).

        Raises:
            MissingMandatoryConfig: Listing every missing key.
        """
        missing = [k for k in keys if k not in self]
        if missing:
            raise MissingMandatoryConfig(missing)

    # --- Provenance ---

    def provenance(self, key: str) -> Optional[Origin]:
        """Which source set the current value of ``key`` (None when not tracked)."""
        if self._provenance is None:
            return None
        return self._provenance.get(key)

    def provenance_history(self, key: str) -> List[Origin]:
        """Every assignment of ``key``, oldest first ([] when not tracked)."""
        if self._provenance is None:
            return []
        return self._provenance.history(key)

    def provenance_dump(self) -> Dict[str, str]:
        """Map each key to the label of the source that set it ({} when not tracked)."""
        if self._provenance is None:
            return {}
        return {key: origin.source for key, origin in self._provenance.current().items()}

    def provenance_summary(self) -> Dict[str, int]:
        if self._provenance is None:
            return {}
        return self._provenance.sources_summary()

    # --- Standard Representation Methods ---

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self._flat!r})"
