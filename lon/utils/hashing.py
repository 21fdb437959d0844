"""内容哈希工具

职责:
- SRI 字符串的生成与校验（sha256-<base64>）
- NAR (Nix ARchive) 序列化的流式 SHA-256，用于 git 检出目录的内容哈希

NAR 规则: 每个字符串写为 8 字节小端长度 + 内容 + 补齐到 8 字节的零填充；
目录项按名称字节序排序；普通文件带可执行标记；符号链接只记录目标。
"""

from __future__ import annotations

import base64
import binascii
import hashlib
import os
import stat
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from lon.core.exceptions import HashComputationError

SRI_DIGEST_SIZES = {"sha256": 32, "sha512": 64}
NAR_MAGIC = "nix-archive-1"
_READ_SIZE = 64 * 1024


# =========================================================================
# SRI
# =========================================================================


def to_sri(digest: bytes, algo: str = "sha256") -> str:
    return f"{algo}-{base64.b64encode(digest).decode('ascii')}"


def is_valid_sri(value: Any) -> bool:
    """校验 <algo>-<base64>，算法须为 sha256/sha512 且摘要长度匹配"""
    if not isinstance(value, str) or "-" not in value:
        return False
    algo, _, encoded = value.partition("-")
    size = SRI_DIGEST_SIZES.get(algo)
    if size is None:
        return False
    try:
        digest = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError):
        return False
    return len(digest) == size


def hash_chunks(chunks: Iterable[bytes]) -> tuple[str, str]:
    """对字节流计算 sha256，返回 (SRI, 十六进制摘要)"""
    h = hashlib.sha256()
    for chunk in chunks:
        h.update(chunk)
    return to_sri(h.digest()), h.hexdigest()


# =========================================================================
# NAR
# =========================================================================


class _NarWriter:
    def __init__(self, sink: Any) -> None:
        self._sink = sink

    def bytes_(self, data: bytes) -> None:
        self._sink.update(len(data).to_bytes(8, "little"))
        self._sink.update(data)
        pad = (8 - len(data) % 8) % 8
        if pad:
            self._sink.update(b"\0" * pad)

    def str_(self, text: str) -> None:
        self.bytes_(text.encode("utf-8"))

    def file_contents(self, path: Path, size: int) -> None:
        self._sink.update(size.to_bytes(8, "little"))
        with open(path, "rb") as f:
            while True:
                chunk = f.read(_READ_SIZE)
                if not chunk:
                    break
                self._sink.update(chunk)
        pad = (8 - size % 8) % 8
        if pad:
            self._sink.update(b"\0" * pad)


def _dump(writer: _NarWriter, path: Path, *, exclude: frozenset[str]) -> None:
    st = path.lstat()
    writer.str_("(")
    writer.str_("type")
    if stat.S_ISLNK(st.st_mode):
        writer.str_("symlink")
        writer.str_("target")
        writer.bytes_(os.fsencode(os.readlink(path)))
    elif stat.S_ISREG(st.st_mode):
        writer.str_("regular")
        if st.st_mode & stat.S_IXUSR:
            writer.str_("executable")
            writer.str_("")
        writer.str_("contents")
        writer.file_contents(path, st.st_size)
    elif stat.S_ISDIR(st.st_mode):
        writer.str_("directory")
        names = sorted(os.fsencode(n) for n in os.listdir(path) if n not in exclude)
        for raw in names:
            writer.str_("entry")
            writer.str_("(")
            writer.str_("name")
            writer.bytes_(raw)
            writer.str_("node")
            _dump(writer, path / os.fsdecode(raw), exclude=exclude)
            writer.str_(")")
    else:
        raise HashComputationError(f"不支持的文件类型: {path}")
    writer.str_(")")


def nar_sri(root: str | Path, *, exclude: Iterable[str] = (".git",)) -> str:
    """计算目录（或单个文件）的 NAR SHA-256，返回 SRI 字符串

    Raises:
        HashComputationError: 路径不可读或包含特殊文件
    """
    h = hashlib.sha256()
    writer = _NarWriter(h)
    try:
        writer.str_(NAR_MAGIC)
        _dump(writer, Path(root), exclude=frozenset(exclude))
    except OSError as e:
        raise HashComputationError(f"计算 NAR 哈希失败: {e}") from e
    return to_sri(h.digest())
