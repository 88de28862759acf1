"""Tests for partial-update merging."""

import pytest

from errors import ROOT, UnresolvableDependency, VersionConflict
from lockfile import Lockfile, LockfileEntry, merge, to_lockfile, verify_fresh
from registry.snapshot import SnapshotProvider
from resolver import GraphBuilder

STAMP = "2024-01-01T00:00:00.000Z"


def _ten_packages(latest):
    packages = {}
    for i in range(10):
        versions = {"1.0.0": {}}
        if latest:
            versions["1.1.0"] = {}
        packages[f"pkg{i}"] = versions
    packages["pkg3"] = {
        version: {"helper": "^1.0.0"} for version in packages["pkg3"]
    }
    packages["helper"] = {"1.0.0": {}, "1.1.0": {}} if latest else {"1.0.0": {}}
    return packages


MANIFEST = {f"pkg{i}": "^1.0.0" for i in range(10)}


class TestUpdateIsolation:
    """Only the touched package and its closure change."""

    def test_updating_one_package(self):
        old_graph = GraphBuilder(SnapshotProvider(_ten_packages(False)), max_workers=1).resolve_project(MANIFEST)
        existing = to_lockfile(old_graph, generated_at=STAMP)
        assert len(existing) == 11

        touched = {"pkg3"}
        preferred = {k: v for k, v in existing.versions().items() if k not in touched}
        fresh = GraphBuilder(SnapshotProvider(_ten_packages(True)), max_workers=1).resolve_project(
            MANIFEST, preferred=preferred
        )
        merged = merge(existing, fresh, touched, roots=MANIFEST, generated_at=STAMP)

        changed = {name for name in merged.entries if merged.entries[name] != existing.entries[name]}
        assert changed == {"pkg3"}
        assert merged.get("pkg3").version == "1.1.0"
        assert merged.get("helper").version == "1.0.0"
        assert set(merged.entries) == set(existing.entries)

    def test_untouched_entries_survive_a_different_fresh_choice(self):
        old_graph = GraphBuilder(SnapshotProvider(_ten_packages(False)), max_workers=1).resolve_project(MANIFEST)
        existing = to_lockfile(old_graph, generated_at=STAMP)

        # No preferences: the fresh graph moves every package to 1.1.0
        fresh = GraphBuilder(SnapshotProvider(_ten_packages(True)), max_workers=1).resolve_project(MANIFEST)
        merged = merge(existing, fresh, {"pkg3"}, roots=MANIFEST, generated_at=STAMP)

        assert merged.get("pkg3").version == "1.1.0"
        assert merged.get("helper").version == "1.1.0"
        for i in (0, 1, 2, 4, 5, 6, 7, 8, 9):
            assert merged.get(f"pkg{i}") == existing.get(f"pkg{i}")


class TestMergeFailures:
    """A merge never writes an inconsistent lockfile."""

    def _existing(self):
        return Lockfile(
            schema_version=1,
            generated_at=STAMP,
            entries={
                "app": LockfileEntry("app", "1.0.0", "", "", {"lib": "~1.0.0"}),
                "lib": LockfileEntry("lib", "1.0.0", "", ""),
            },
        )

    def test_kept_range_rejecting_new_version_is_a_conflict(self):
        provider = SnapshotProvider({"lib": {"1.0.0": {}, "1.2.0": {}}})
        fresh = GraphBuilder(provider, max_workers=1).resolve_project({"lib": "^1.0.0"})

        with pytest.raises(VersionConflict) as exc_info:
            merge(self._existing(), fresh, {"lib"}, roots=["app", "lib"])

        err = exc_info.value
        assert err.name == "lib"
        assert err.version == "1.2.0"
        assert err.existing.requester == "app"
        assert err.existing.constraint == "~1.0.0"
        assert err.incoming.requester == ROOT

    def test_kept_entry_with_missing_dependency(self):
        existing = Lockfile(
            schema_version=1,
            generated_at=STAMP,
            entries={"app": LockfileEntry("app", "1.0.0", "", "", {"gone": "^1.0.0"})},
        )
        fresh = GraphBuilder(SnapshotProvider({"x": {"1.0.0": {}}}), max_workers=1).resolve("x")

        with pytest.raises(UnresolvableDependency) as exc_info:
            merge(existing, fresh, {"x"}, roots=["app", "x"])

        assert exc_info.value.name == "gone"
        assert exc_info.value.requested_by == "app"

    def test_new_root_pulls_its_closure_from_the_fresh_graph(self):
        existing = Lockfile(
            schema_version=1,
            generated_at=STAMP,
            entries={
                "app": LockfileEntry("app", "1.0.0", "", "", {"lib": "^1.0.0"}),
                "lib": LockfileEntry("lib", "1.0.0", "", ""),
                "zed": LockfileEntry("zed", "1.0.0", "", ""),
            },
        )
        provider = SnapshotProvider({
            "aaa": {"1.0.0": {"lib": "^1.5.0"}},
            "app": {"1.0.0": {"lib": "^1.0.0"}},
            "lib": {"1.0.0": {}, "1.5.0": {}},
            "zed": {"1.0.0": {}, "1.1.0": {}},
        })
        manifest = {"aaa": "^1.0.0", "app": "^1.0.0", "zed": "^1.0.0"}
        fresh = GraphBuilder(provider, max_workers=1).resolve_project(
            manifest, preferred={"app": "1.0.0", "lib": "1.0.0"}
        )

        merged = merge(existing, fresh, {"zed"}, roots=manifest, generated_at=STAMP)

        assert merged.versions() == {"aaa": "1.0.0", "app": "1.0.0", "lib": "1.5.0", "zed": "1.1.0"}
        assert merged.get("app") == existing.get("app")
        assert verify_fresh(merged, manifest).fresh

    def test_kept_entry_rejecting_a_kept_dependency_is_a_conflict(self):
        existing = Lockfile(
            schema_version=1,
            generated_at=STAMP,
            entries={
                "app": LockfileEntry("app", "1.0.0", "", "", {"lib": "^2.0.0"}),
                "lib": LockfileEntry("lib", "1.0.0", "", ""),
            },
        )
        fresh = GraphBuilder(SnapshotProvider({"x": {"1.0.0": {}}}), max_workers=1).resolve("x")

        with pytest.raises(VersionConflict) as exc_info:
            merge(existing, fresh, {"x"}, roots=["app", "x"])

        assert exc_info.value.name == "lib"
        assert exc_info.value.version == "1.0.0"
        assert exc_info.value.existing.requester == "app"


class TestPruning:
    """Entries no root reaches are dropped."""

    def test_removed_root_and_its_dependencies_are_pruned(self):
        existing = Lockfile(
            schema_version=1,
            generated_at=STAMP,
            entries={
                "old": LockfileEntry("old", "1.0.0", "", "", {"oldlib": "*"}),
                "oldlib": LockfileEntry("oldlib", "1.0.0", "", ""),
                "keep": LockfileEntry("keep", "1.0.0", "", ""),
            },
        )
        fresh = GraphBuilder(SnapshotProvider({"new": {"1.0.0": {}}}), max_workers=1).resolve("new")

        merged = merge(existing, fresh, {"new"}, roots=["keep", "new"], generated_at=STAMP)

        assert sorted(merged.entries) == ["keep", "new"]
        assert merged.generated_at == STAMP

    def test_default_roots_keep_existing_top_level(self):
        existing = Lockfile(
            schema_version=1,
            generated_at=STAMP,
            entries={"keep": LockfileEntry("keep", "1.0.0", "", "")},
        )
        fresh = GraphBuilder(SnapshotProvider({"new": {"1.0.0": {}}}), max_workers=1).resolve("new")

        merged = merge(existing, fresh, {"new"})

        assert sorted(merged.entries) == ["keep", "new"]

    def test_merge_into_no_lockfile(self):
        fresh = GraphBuilder(SnapshotProvider({"new": {"1.0.0": {}}}), max_workers=1).resolve("new")

        merged = merge(None, fresh, {"new"})

        assert merged.versions() == {"new": "1.0.0"}
