# tests/test_sources.py
"""
Tests for the configuration sources.
"""

import json
import os
import logging
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import List, Optional

import pytest

from flatconf.binding import setting
from flatconf.exceptions import EncodeError, FileReadError, KeyPathError, ParseError, UnsupportedFormat
from flatconf.sources import (
    BufferSource,
    DotenvSource,
    EnvSource,
    FileSource,
    MapSource,
    StructSource,
    env_entries,
    parse_overrides,
)


# --- BufferSource ---

class TestBufferSource:

    def test_entries(self):
        src = BufferSource(b'{"a": {"b": 1, "c": [1, 2]}, "d": "x"}', "json")
        assert src.entries() == {"a.b": 1, "a.c": [1, 2], "d": "x"}

    def test_prefix(self):
        src = BufferSource("port: 80\n", "YAML", prefix="server.http")
        assert src.entries() == {"server.http.port": 80}

    def test_override_does_not_mutate_input(self):
        base = {"a.b": 0, "z": 9}
        merged = BufferSource(b'{"a": {"b": 1}}', "json").override(base)
        assert merged == {"a.b": 1, "z": 9}
        assert base == {"a.b": 0, "z": 9}

    def test_override_never_removes_keys(self):
        assert BufferSource(b"", "json").override({"k": 1}) == {"k": 1}

    def test_unsupported_format(self):
        with pytest.raises(UnsupportedFormat):
            BufferSource(b"{}", "xml").entries()

    def test_malformed(self):
        with pytest.raises(ParseError):
            BufferSource(b"{", "json").entries()

    def test_dotted_document_key_rejected(self):
        with pytest.raises(ParseError, match="Invalid key"):
            BufferSource(b'{"a.b": 1}', "json").entries()

    def test_missing_format(self):
        with pytest.raises(UnsupportedFormat):
            BufferSource(b"{}", None).entries()

    def test_label(self):
        assert BufferSource(b"", "YML").label == "buffer:yml"


# --- FileSource ---

class TestFileSource:

    @pytest.mark.parametrize("name, content", [
        ("cfg.json", '{"db": {"host": "localhost", "port": 5432}}'),
        ("cfg.yaml", "db:\n  host: localhost\n  port: 5432\n"),
        ("cfg.YML", "db:\n  host: localhost\n  port: 5432\n"),
        ("cfg.toml", '[db]\nhost = "localhost"\nport = 5432\n'),
    ])
    def test_format_from_extension(self, tmp_path, name, content):
        path = tmp_path / name
        path.write_text(content, encoding="utf-8")
        assert FileSource(str(path)).entries() == {"db.host": "localhost", "db.port": 5432}

    def test_prefix(self, tmp_path):
        path = tmp_path / "db.json"
        path.write_text('{"host": "h"}', encoding="utf-8")
        assert FileSource(str(path), prefix="db").entries() == {"db.host": "h"}

    def test_missing_required(self, tmp_path):
        with pytest.raises(FileReadError):
            FileSource(str(tmp_path / "nope.json")).entries()

    def test_missing_optional(self, tmp_path, caplog):
        with caplog.at_level(logging.WARNING, logger="flatconf.sources"):
            assert FileSource(str(tmp_path / "nope.json"), required=False).entries() == {}
        assert "Optional config file not found" in caplog.text

    def test_unknown_extension(self, tmp_path):
        path = tmp_path / "cfg.ini"
        path.write_text("[a]\nb=1\n", encoding="utf-8")
        with pytest.raises(UnsupportedFormat):
            FileSource(str(path)).entries()

    def test_parse_error_names_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("{oops", encoding="utf-8")
        with pytest.raises(ParseError, match="bad.json"):
            FileSource(str(path)).entries()

    def test_env_var_in_path(self, tmp_path, monkeypatch):
        (tmp_path / "app.json").write_text('{"x": 1}', encoding="utf-8")
        monkeypatch.setenv("FLATCONF_TEST_DIR", str(tmp_path))
        assert FileSource("$FLATCONF_TEST_DIR/app.json").entries() == {"x": 1}

    def test_label_is_absolute(self, tmp_path):
        path = tmp_path / "app.json"
        assert FileSource(str(path)).label == f"file:{path}"


# --- EnvSource ---

class TestEnvSource:

    def test_prefix_strips_and_lowercases(self):
        src = EnvSource(prefix="my", environ={"MY_S_VALUE": "hello", "OTHER_VALUE": "x", "MYSELF": "y"})
        assert src.entries() == {"s.value": "hello"}

    def test_prefix_is_case_insensitive(self):
        environ = {"APP_DB_PORT": "5432"}
        assert EnvSource(prefix="APP", environ=environ).entries() == {"db.port": "5432"}
        assert EnvSource(prefix="app_", environ=environ).entries() == {"db.port": "5432"}

    def test_multi_segment_prefix(self):
        src = EnvSource(prefix="my_app", environ={"MY_APP_LEVEL": "debug", "MY_OTHER": "x"})
        assert src.entries() == {"level": "debug"}

    def test_no_prefix_imports_everything(self):
        src = EnvSource(environ={"HOME": "/root", "DB_HOST": "h"})
        assert src.entries() == {"home": "/root", "db.host": "h"}

    def test_invalid_names_skipped(self):
        src = EnvSource(environ={"_PRIVATE": "1", "A__B": "2", "TRAILING_": "3", "OK": "4"})
        assert src.entries() == {"ok": "4"}

    def test_values_stay_strings(self):
        assert EnvSource(prefix="x", environ={"X_N": "42"}).entries() == {"n": "42"}

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("FLATCONFTEST_DB_HOST", "example")
        assert EnvSource(prefix="flatconftest").entries() == {"db.host": "example"}

    def test_prefix_alone_is_not_a_key(self):
        assert EnvSource(prefix="app", environ={"APP": "x"}).entries() == {}

    def test_labels(self):
        assert EnvSource(prefix="app").label == "env:APP_*"
        assert EnvSource().label == "env:*"

    def test_env_entries_skips_none(self):
        assert env_entries([("A", None), ("B", "1")]) == {"b": "1"}


# --- DotenvSource ---

class TestDotenvSource:

    def test_reads_file(self, tmp_path):
        path = tmp_path / ".env"
        path.write_text("APP_DB_HOST=db.local\nAPP_DEBUG=true\nOTHER=1\n", encoding="utf-8")
        assert DotenvSource(str(path), prefix="app").entries() == {"db.host": "db.local", "debug": "true"}

    def test_does_not_export(self, tmp_path, monkeypatch):
        path = tmp_path / ".env"
        path.write_text("FLATCONF_DOTENV_ONLY=1\n", encoding="utf-8")
        monkeypatch.delenv("FLATCONF_DOTENV_ONLY", raising=False)
        DotenvSource(str(path)).entries()
        assert "FLATCONF_DOTENV_ONLY" not in os.environ

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(FileReadError):
            DotenvSource(str(tmp_path / "missing.env")).entries()

    def test_discovered_from_cwd(self, tmp_path, monkeypatch):
        (tmp_path / ".env").write_text("SVC_PORT=8080\n", encoding="utf-8")
        monkeypatch.chdir(tmp_path)
        assert DotenvSource(prefix="svc").entries() == {"port": "8080"}


# --- StructSource ---

class Level(Enum):
    LOW = "low"
    HIGH = "high"


@dataclass
class Limits:
    max_conns: int = 10
    burst: Optional[int] = setting(omitempty=True, default=None)


@dataclass
class Settings:
    name: str = "svc"
    timeout: timedelta = setting("timeout_after", default=timedelta(seconds=90))
    level: Level = Level.LOW
    tags: List[str] = field(default_factory=lambda: ["a", "b"])
    limits: Limits = field(default_factory=Limits)
    note: str = setting(omitempty=True, default="")


class TestStructSource:

    def test_entries(self):
        assert StructSource(Settings()).entries() == {
            "name": "svc",
            "timeout_after": "1m30s",
            "level": "low",
            "tags": ["a", "b"],
            "limits.max_conns": 10,
        }

    def test_omitempty_keeps_non_empty(self):
        entries = StructSource(Settings(note="hi", limits=Limits(burst=5))).entries()
        assert entries["note"] == "hi"
        assert entries["limits.burst"] == 5

    def test_matches_equivalent_json(self):
        as_json = json.dumps({"name": "svc", "timeout_after": "1m30s", "level": "low",
                              "tags": ["a", "b"], "limits": {"max_conns": 10}})
        assert StructSource(Settings()).entries() == BufferSource(as_json, "json").entries()

    def test_prefix(self):
        assert StructSource(Limits(), prefix="limits").entries() == {"limits.max_conns": 10}

    def test_plain_dict(self):
        assert StructSource({"a": {"b": 1}}).entries() == {"a.b": 1}

    def test_unencodable_value(self):
        with pytest.raises(EncodeError):
            StructSource({"a": object()}).entries()

    def test_non_mapping_value(self):
        with pytest.raises(EncodeError):
            StructSource([1, 2, 3]).entries()

    def test_override_lays_over(self):
        merged = StructSource(Limits()).override({"max_conns": 1, "other": True})
        assert merged == {"max_conns": 10, "other": True}


# --- MapSource ---

class TestMapSource:

    def test_dotted_and_nested_keys(self):
        src = MapSource({"db.port": 5433, "db": {"host": "h"}, "debug": True})
        assert src.entries() == {"db.port": 5433, "db.host": "h", "debug": True}

    def test_prefix(self):
        assert MapSource({"port": 1}, prefix="db").entries() == {"db.port": 1}

    def test_invalid_key(self):
        with pytest.raises(KeyPathError):
            MapSource({"a..b": 1}).entries()

    def test_label(self):
        assert MapSource({}).label == "overrides"
        assert MapSource({}, label="defaults").label == "defaults"


@dataclass
class Sparse:
    a: str = setting(omitempty=True, default="")
    b: int = setting(omitempty=True, default=0)
    c: Optional[List[str]] = setting(omitempty=True, default=None)
    d: timedelta = setting("delay", omitempty=True, default=timedelta(0))


def test_struct_source_only_populated_fields():
    assert StructSource(Sparse(b=3)).entries() == {"b": 3}
    assert StructSource(Sparse(d=timedelta(seconds=2))).entries() == {"delay": "2s"}


# --- parse_overrides ---

def test_parse_overrides():
    assert parse_overrides(["a=1", "b=x", 'c={"d": true}', "e=", " f =[1]"]) == {
        "a": 1, "b": "x", "c": {"d": True}, "e": "", "f": [1],
    }


def test_parse_overrides_requires_equals():
    with pytest.raises(ValueError, match="KEY=VALUE"):
        parse_overrides(["novalue"])
