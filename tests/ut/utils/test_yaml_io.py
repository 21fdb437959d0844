"""yaml_io.py 单元测试"""

from __future__ import annotations

import os
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml

from lon.utils.yaml_io import atomic_write, dump_yaml, load_yaml, save_yaml


class TestLoadYaml:
    def test_missing_file(self, tmp_path: Path) -> None:
        assert load_yaml(tmp_path / "nope.yml") == {}

    def test_empty_file(self, tmp_path: Path) -> None:
        p = tmp_path / "empty.yml"
        p.write_text("")
        assert load_yaml(p) == {}

    def test_top_level_must_be_mapping(self, tmp_path: Path) -> None:
        p = tmp_path / "list.yml"
        p.write_text("- a\n- b\n")
        with pytest.raises(ValueError, match="顶层不是映射"):
            load_yaml(p)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        p = tmp_path / "bad.yml"
        p.write_text("a: [unclosed\n")
        with pytest.raises(yaml.YAMLError):
            load_yaml(p)


class TestSaveYaml:
    def test_roundtrip_keeps_order_and_unicode(self, tmp_path: Path) -> None:
        p = tmp_path / "out" / "lon.yml"
        data = {"zeta": {"kind": "git"}, "alpha": {"kind": "tarball", "url": "https://例子.test"}}
        save_yaml(p, data)
        assert list(load_yaml(p)) == ["zeta", "alpha"]
        assert "例子" in p.read_text(encoding="utf-8")

    def test_dump_block_style(self) -> None:
        assert dump_yaml({"a": {"b": 1}}) == "a:\n  b: 1\n"


class TestAtomicWrite:
    def test_replaces_content(self, tmp_path: Path) -> None:
        p = tmp_path / "lon.lock"
        p.write_text("old")
        atomic_write(p, "new\n")
        assert p.read_text() == "new\n"
        assert os.listdir(tmp_path) == ["lon.lock"]

    def test_failure_keeps_previous_and_cleans_temp(self, tmp_path: Path) -> None:
        p = tmp_path / "lon.lock"
        p.write_text("old")
        with patch("lon.utils.yaml_io.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                atomic_write(p, "new")
        assert p.read_text() == "old"
        assert os.listdir(tmp_path) == ["lon.lock"]
