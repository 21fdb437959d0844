"""LockfileStore / 锁文件序列化单元测试"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from conftest import SHA_A, SHA_B, sri
from lon.core.exceptions import ConfigError
from lon.core.lockfile import LockfileStore, diff_lockfiles, parse_lockfile, serialize_lockfile
from lon.core.models import ChangeKind, LockEntry, Lockfile, SourceKind


def _lock() -> Lockfile:
    return Lockfile(entries={
        "nixpkgs": LockEntry("nixpkgs", SourceKind.GITHUB, SHA_A, sri("a")),
        "lib": LockEntry("lib", SourceKind.GIT, SHA_B, sri("b"), last_modified=1700000000),
        "blob": LockEntry("blob", SourceKind.TARBALL, "d" * 64, sri("d")),
    })


@pytest.fixture()
def store(tmp_path: Path) -> LockfileStore:
    return LockfileStore(tmp_path / "lon.lock")


class TestSerialize:
    def test_layout(self) -> None:
        data = json.loads(serialize_lockfile(_lock()))
        assert data["version"] == "1"
        assert list(data["sources"]) == ["blob", "lib", "nixpkgs"]
        assert data["sources"]["lib"] == {
            "kind": "git", "revision": SHA_B, "hash": sri("b"),
            "lastModified": 1700000000, "submodules": False,
        }
        assert "lastModified" not in data["sources"]["nixpkgs"]
        assert "submodules" not in data["sources"]["blob"]

    def test_trailing_newline_and_indent(self) -> None:
        text = serialize_lockfile(_lock())
        assert text.endswith("}\n")
        assert text.startswith('{\n  "sources"')

    def test_byte_identical_roundtrip(self) -> None:
        text = serialize_lockfile(_lock())
        assert serialize_lockfile(parse_lockfile(text)) == text

    def test_insertion_order_irrelevant(self) -> None:
        lock = _lock()
        reordered = Lockfile(entries=dict(reversed(list(lock.entries.items()))))
        assert serialize_lockfile(reordered) == serialize_lockfile(lock)


class TestParse:
    def _doc(self, **entry) -> str:
        base = {"kind": "github", "revision": SHA_A, "hash": sri("a")}
        base.update(entry)
        return json.dumps({"version": "1", "sources": {"x": base}})

    def test_unknown_version(self) -> None:
        with pytest.raises(ConfigError, match="不支持的锁文件版本"):
            parse_lockfile('{"version": "2", "sources": {}}')

    def test_invalid_json(self) -> None:
        with pytest.raises(ConfigError, match="不是合法的 JSON"):
            parse_lockfile("{")

    @pytest.mark.parametrize("field, value, message", [
        ("hash", "sha256-short", "SRI"),
        ("hash", "md5-AAAA", "SRI"),
        ("revision", "", "缺少 revision"),
        ("kind", "svn", "不支持的源类型"),
        ("lastModified", "yesterday", "lastModified"),
        ("lastModified", True, "lastModified"),
        ("submodules", "yes", "submodules"),
    ])
    def test_invalid_entry(self, field, value, message) -> None:
        with pytest.raises(ConfigError, match=message):
            parse_lockfile(self._doc(**{field: value}))

    def test_sources_missing_means_empty(self) -> None:
        assert parse_lockfile('{"version": "1"}').entries == {}


class TestStore:
    def test_read_missing(self, store: LockfileStore) -> None:
        with pytest.raises(ConfigError, match="lon init"):
            store.read()

    def test_init_does_not_overwrite(self, store: LockfileStore) -> None:
        assert store.init() is True
        store.write(_lock())
        assert store.init() is False
        assert store.read().names() == ["blob", "lib", "nixpkgs"]

    def test_write_skips_identical_content(self, store: LockfileStore) -> None:
        assert store.write(_lock()) is True
        mtime = store.path.stat().st_mtime_ns
        assert store.write(_lock()) is False
        assert store.path.stat().st_mtime_ns == mtime

    def test_write_then_read(self, store: LockfileStore) -> None:
        store.write(_lock())
        assert store.read() == _lock()


class TestDiff:
    def test_added_removed_updated(self) -> None:
        old = _lock()
        new = old.without("blob").replace([
            LockEntry("lib", SourceKind.GIT, SHA_A, sri("c"), last_modified=1),
            LockEntry("extra", SourceKind.TARBALL, "e" * 64, sri("e")),
        ])
        changes = diff_lockfiles(old, new)
        assert [(c.name, c.change) for c in changes] == [
            ("blob", ChangeKind.REMOVED),
            ("extra", ChangeKind.ADDED),
            ("lib", ChangeKind.UPDATED),
        ]
        lib = changes[2]
        assert (lib.old_revision, lib.new_revision) == (SHA_B, SHA_A)

    def test_identical_is_empty(self) -> None:
        assert LockfileStore.diff(_lock(), _lock()) == []

    def test_symmetric(self) -> None:
        old = _lock()
        new = old.without("nixpkgs")
        forward = {c.name: c.change for c in diff_lockfiles(old, new)}
        backward = {c.name: c.change for c in diff_lockfiles(new, old)}
        assert forward == {"nixpkgs": ChangeKind.REMOVED}
        assert backward == {"nixpkgs": ChangeKind.ADDED}
