# flatconf/provenance.py
"""
flatconf.provenance
-------------------

Optional record of which source set each flat key.

Enabled with ``Config(track_provenance=True)``. Each applied source is
recorded under its label for the keys it added or changed, so the history of
a key lists the sources that set it, oldest first, and the last element is
the source whose value is in effect. A source that repeats the value already
in place leaves no record.
"""

from __future__ import annotations

from collections import Counter, defaultdict
from dataclasses import dataclass, field
from typing import Any, Mapping


@dataclass(frozen=True)
class Origin:
    """One assignment of a flat key by a source.

    Attributes:
        key: Flat dotted key, e.g. ``"db.port"``.
        value: The value the source contributed.
        source: Source label, e.g. ``"defaults"``, ``"file:/etc/app.yaml"``,
            ``"env:APP_*"``.
    """

    key: str
    value: Any
    source: str

    def __str__(self) -> str:
        return f"{self.key} = {self.value!r}  <- {self.source}"


@dataclass
class ProvenanceLog:
    """Assignment history of every flat key, in application order."""

    _history: dict[str, list[Origin]] = field(default_factory=lambda: defaultdict(list))

    def record(self, source: str, entries: Mapping[str, Any]) -> None:
        """Record every entry contributed by the source labelled ``source``."""
        for key, value in entries.items():
            self._history[key].append(Origin(key=key, value=value, source=source))

    def get(self, key: str) -> Origin | None:
        """The assignment currently in effect for ``key``, if any."""
        history = self._history.get(key)
        return history[-1] if history else None

    def history(self, key: str) -> list[Origin]:
        return list(self._history.get(key, ()))

    def current(self) -> dict[str, Origin]:
        """Map every recorded key to the assignment in effect."""
        return {key: history[-1] for key, history in self._history.items() if history}

    def sources_summary(self) -> dict[str, int]:
        """Count keys per source kind (the label up to the first ``:``)."""
        return dict(Counter(origin.source.split(":", 1)[0] for origin in self.current().values()))
