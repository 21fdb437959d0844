"""锁文件（lon.lock）存储

职责:
- read: 读取并校验锁文件（未知版本、格式错误、非法 SRI 哈希均为 ConfigError）
- write: 确定性序列化 + 原子替换，内容未变化时跳过写入
- diff: 两份锁文件按名称排序的差异列表

序列化使用 json.dumps(indent=2, sort_keys=True)，同一 Lockfile 总是得到相同字节。
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from lon.core.exceptions import ConfigError, ValidationError
from lon.core.models import (
    LOCK_VERSION,
    ChangeKind,
    LockChange,
    LockEntry,
    Lockfile,
    SourceKind,
)
from lon.utils.hashing import is_valid_sri
from lon.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

SUPPORTED_VERSIONS = frozenset((LOCK_VERSION,))


class LockfileStore:
    """锁文件读写"""

    def __init__(self, path: Path) -> None:
        self.path = path

    def init(self) -> bool:
        """创建空锁文件，已存在时不覆盖，返回是否创建"""
        if self.path.exists():
            logger.info("锁文件已存在: %s", self.path)
            return False
        self.write(Lockfile())
        logger.info("已创建锁文件: %s", self.path)
        return True

    def read(self) -> Lockfile:
        if not self.path.exists():
            raise ConfigError(f"锁文件不存在: {self.path}，请先执行 lon init")
        text = self.path.read_text(encoding="utf-8")
        return parse_lockfile(text, source=str(self.path))

    def write(self, lock: Lockfile) -> bool:
        """原子写入，序列化结果与现有文件相同时跳过，返回是否发生写入"""
        content = serialize_lockfile(lock)
        if self.path.exists() and self.path.read_text(encoding="utf-8") == content:
            logger.debug("锁文件无变化，跳过写入: %s", self.path)
            return False
        atomic_write(self.path, content)
        logger.info("锁文件已写入: %s", self.path)
        return True

    @staticmethod
    def diff(old: Lockfile, new: Lockfile) -> list[LockChange]:
        return diff_lockfiles(old, new)


# =========================================================================
# 序列化
# =========================================================================


def serialize_lockfile(lock: Lockfile) -> str:
    payload = {
        "version": lock.version,
        "sources": {name: lock.entries[name].to_dict() for name in lock.names()},
    }
    return json.dumps(payload, indent=2, sort_keys=True, ensure_ascii=False) + "\n"


def parse_lockfile(text: str, *, source: str = "<lock>") -> Lockfile:
    """解析锁文件文本

    Raises:
        ConfigError: JSON 无效、版本不支持或条目字段非法
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ConfigError(f"{source}: 不是合法的 JSON: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{source}: 顶层必须是对象")

    version = data.get("version")
    if version not in SUPPORTED_VERSIONS:
        raise ConfigError(f"{source}: 不支持的锁文件版本: {version!r}")

    raw = data.get("sources", {})
    if not isinstance(raw, dict):
        raise ConfigError(f"{source}: sources 必须是对象")

    entries = {name: _parse_entry(name, info, source) for name, info in raw.items()}
    return Lockfile(entries=entries, version=version)


def _parse_entry(name: str, info: Any, source: str) -> LockEntry:
    if not isinstance(info, dict):
        raise ConfigError(f"{source}: 条目 {name} 必须是对象")
    try:
        kind = SourceKind.parse(str(info.get("kind", "")))
    except ValidationError as e:
        raise ConfigError(f"{source}: 条目 {name}: {e}") from e

    revision = info.get("revision")
    if not isinstance(revision, str) or not revision:
        raise ConfigError(f"{source}: 条目 {name} 缺少 revision")

    hash_ = info.get("hash")
    if not is_valid_sri(hash_):
        raise ConfigError(f"{source}: 条目 {name} 的 hash 不是合法的 SRI: {hash_!r}")

    last_modified = info.get("lastModified")
    if last_modified is not None and (
        isinstance(last_modified, bool) or not isinstance(last_modified, int)
    ):
        raise ConfigError(f"{source}: 条目 {name} 的 lastModified 必须是整数")

    submodules = info.get("submodules", False)
    if not isinstance(submodules, bool):
        raise ConfigError(f"{source}: 条目 {name} 的 submodules 必须是布尔值")

    return LockEntry(
        name=name,
        kind=kind,
        revision=revision,
        hash=hash_,
        last_modified=last_modified,
        submodules=submodules,
    )


# =========================================================================
# 差异
# =========================================================================


def diff_lockfiles(old: Lockfile, new: Lockfile) -> list[LockChange]:
    """按名称排序的差异；revision 与 hash 都相同的条目不出现"""
    changes: list[LockChange] = []
    for name in sorted(set(old.entries) | set(new.entries)):
        before = old.get(name)
        after = new.get(name)
        if before is None and after is not None:
            changes.append(LockChange(
                name=name, change=ChangeKind.ADDED,
                new_revision=after.revision, new_hash=after.hash,
            ))
        elif after is None and before is not None:
            changes.append(LockChange(
                name=name, change=ChangeKind.REMOVED,
                old_revision=before.revision, old_hash=before.hash,
            ))
        elif before is not None and after is not None and not before.same_content(after):
            changes.append(LockChange(
                name=name, change=ChangeKind.UPDATED,
                old_revision=before.revision, new_revision=after.revision,
                old_hash=before.hash, new_hash=after.hash,
            ))
    return changes
