"""Tests for lockfile serialization and parsing."""

import json
import os

import pytest

from errors import LockfileParseError, LockfileSchemaMismatch
from lockfile import Lockfile, LockfileEntry, dumps, parse, read_lockfile, to_lockfile, write_lockfile
from lockfile.model import utc_timestamp
from resolver import GraphBuilder

STAMP = "2024-05-01T12:00:00.000Z"


def _entry(name, version, deps=None, kind=None):
    return LockfileEntry(
        name=name,
        version=version,
        resolved=f"registry:{name}@{version}",
        integrity="sha256-47DEQpj8HBSa+/TImW+5JCeuQeRkm5NMpJWZG3hSuFU=",
        dependencies=deps or {},
        kind=kind,
    )


class TestDumps:
    """Stable persisted form."""

    def test_key_order_and_sorting(self):
        lock = Lockfile(
            schema_version=1,
            generated_at=STAMP,
            entries={
                "zeta": _entry("zeta", "1.0.0", {"beta": "^1.0.0", "alpha": "*"}),
                "alpha": _entry("alpha", "2.0.0", kind="cursor"),
            },
        )
        text = dumps(lock)
        doc = json.loads(text)

        assert text.endswith("}\n")
        assert list(doc) == ["schemaVersion", "generatedAt", "entries"]
        assert list(doc["entries"]) == ["alpha", "zeta"]
        assert list(doc["entries"]["zeta"]["dependencies"]) == ["alpha", "beta"]
        assert list(doc["entries"]["alpha"]) == ["version", "resolved", "integrity", "dependencies", "kind"]
        assert doc["entries"]["zeta"]["kind"] is None
        assert doc["entries"]["alpha"]["kind"] == "cursor"

    def test_same_graph_same_bytes(self, diamond):
        graph = GraphBuilder(diamond, max_workers=1).resolve("app")

        first = dumps(to_lockfile(graph, generated_at=STAMP))
        second = dumps(to_lockfile(graph, generated_at=STAMP))

        assert first == second
        assert parse(first) == to_lockfile(graph, generated_at=STAMP)

    def test_empty_lockfile(self):
        doc = json.loads(dumps(Lockfile(schema_version=1, generated_at=utc_timestamp())))

        assert doc["schemaVersion"] == 1
        assert doc["entries"] == {}
        assert doc["generatedAt"].endswith("Z")


class TestParse:
    """Rejection of malformed and foreign lockfiles."""

    def test_newer_schema_rejected(self):
        with pytest.raises(LockfileSchemaMismatch) as exc_info:
            parse(json.dumps({"schemaVersion": 2, "generatedAt": STAMP, "entries": {}}))

        assert exc_info.value.found == 2
        assert exc_info.value.supported == 1

    @pytest.mark.parametrize("schema", [None, True, "1", 0])
    def test_other_schema_values_rejected(self, schema):
        doc = {"generatedAt": STAMP, "entries": {}}
        if schema is not None:
            doc["schemaVersion"] = schema

        with pytest.raises(LockfileSchemaMismatch):
            parse(json.dumps(doc))

    def test_schema_mismatch_is_a_parse_error(self):
        with pytest.raises(LockfileParseError):
            parse('{"schemaVersion": 99}')

    @pytest.mark.parametrize("content", [b"\xff\xfe", "{not json", "[]", '"text"'])
    def test_malformed_content(self, content):
        with pytest.raises(LockfileParseError):
            parse(content)

    def test_entry_without_version(self):
        content = json.dumps({"schemaVersion": 1, "generatedAt": STAMP, "entries": {"a": {"resolved": "x"}}})

        with pytest.raises(LockfileParseError, match="version"):
            parse(content)

    def test_entry_dependencies_must_be_object(self):
        content = json.dumps({
            "schemaVersion": 1,
            "generatedAt": STAMP,
            "entries": {"a": {"version": "1.0.0", "dependencies": ["b"]}},
        })

        with pytest.raises(LockfileParseError):
            parse(content)

    def test_optional_fields_default(self):
        lock = parse(json.dumps({
            "schemaVersion": 1,
            "generatedAt": STAMP,
            "entries": {"a": {"version": "1.0.0"}},
        }))

        entry = lock.get("a")
        assert entry.resolved == ""
        assert entry.integrity == ""
        assert entry.dependencies == {}
        assert entry.kind is None


class TestReadWrite:
    """Filesystem helpers."""

    def test_missing_lockfile_reads_as_none(self, tmp_path):
        assert read_lockfile(str(tmp_path)) is None

    def test_write_then_read(self, tmp_path, diamond):
        lock = to_lockfile(GraphBuilder(diamond, max_workers=1).resolve("app"), generated_at=STAMP)

        path = write_lockfile(lock, str(tmp_path))

        assert os.path.basename(path) == "prpm.lock"
        assert os.listdir(tmp_path) == ["prpm.lock"]
        assert read_lockfile(str(tmp_path)) == lock

    def test_corrupt_file_raises(self, tmp_path):
        (tmp_path / "prpm.lock").write_text("{")

        with pytest.raises(LockfileParseError):
            read_lockfile(str(tmp_path))
