# tests/test_provenance.py
"""
Tests for provenance tracking.
"""

from flatconf import BufferSource, Config, EnvSource, MapSource, Source
from flatconf.provenance import Origin, ProvenanceLog


def _layered():
    return Config(
        MapSource({"db.host": "localhost", "db.port": 5432}, label="defaults"),
        BufferSource(b'{"db": {"port": 6543}}', "json"),
        EnvSource(prefix="app", environ={"APP_DB_HOST": "prod"}),
        track_provenance=True,
    )


def test_current_source():
    cfg = _layered()
    assert cfg.provenance("db.port") == Origin("db.port", 6543, "buffer:json")
    assert cfg.provenance("db.host").source == "env:APP_*"
    assert cfg.provenance("missing") is None


def test_history_oldest_first():
    history = _layered().provenance_history("db.host")
    assert [o.source for o in history] == ["defaults", "env:APP_*"]
    assert [o.value for o in history] == ["localhost", "prod"]


def test_dump_and_summary():
    cfg = _layered()
    assert cfg.provenance_dump() == {"db.host": "env:APP_*", "db.port": "buffer:json"}
    assert cfg.provenance_summary() == {"env": 1, "buffer": 1}


def test_disabled_by_default():
    cfg = Config(MapSource({"a": 1}))
    assert cfg.provenance("a") is None
    assert cfg.provenance_history("a") == []
    assert cfg.provenance_dump() == {}
    assert cfg.provenance_summary() == {}


def test_origin_str():
    assert str(Origin("a.b", 1, "defaults")) == "a.b = 1  <- defaults"


def test_log_records_every_entry():
    log = ProvenanceLog()
    log.record("one", {"a": 1, "b": 2})
    log.record("two", {"a": 1})
    assert log.get("a").source == "two"
    assert len(log.history("a")) == 2
    assert set(log.current()) == {"a", "b"}


def test_repeated_value_leaves_no_record():
    cfg = Config(
        MapSource({"a": 1, "b": 2}, label="defaults"),
        MapSource({"a": 1, "b": 3}, label="overrides"),
        track_provenance=True,
    )
    assert [o.source for o in cfg.provenance_history("a")] == ["defaults"]
    assert [o.source for o in cfg.provenance_history("b")] == ["defaults", "overrides"]


class TotalSource(Source):
    label = "total"

    def entries(self):
        return {}

    def override(self, flat):
        return {**flat, "total": sum(flat.values())}


def test_records_keys_added_by_override():
    cfg = Config(MapSource({"a": 1, "b": 2}), TotalSource(), track_provenance=True)
    assert cfg.provenance("total") == Origin("total", 3, "total")
    assert cfg.provenance("a").source == "overrides"
