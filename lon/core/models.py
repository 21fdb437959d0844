"""核心数据模型

所有核心数据类集中定义，各层统一从此处导入：
- SourceSpec: 用户声明的源（lon.yml）
- LockEntry / Lockfile: 锁定结果（lon.lock）
- UpdateResult: 单个源的更新结果
- LockChange: 两份锁文件之间的差异
- Commit / BotChange: bot 提交信息所需的元数据
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from lon.core.exceptions import ValidationError

GITHUB_URL = "https://github.com"
LOCK_VERSION = "1"


class SourceKind(str, Enum):
    """源类型，决定使用哪种拉取策略"""

    GIT = "git"
    GITHUB = "github"
    TARBALL = "tarball"

    @classmethod
    def parse(cls, value: str) -> SourceKind:
        try:
            return cls(value.lower())
        except ValueError:
            raise ValidationError(
                f"不支持的源类型: {value}，可选: {', '.join(k.value for k in cls)}"
            ) from None


# =========================================================================
# 声明
# =========================================================================


@dataclass
class SourceSpec:
    """单个源的声明（只通过 add/modify/freeze/unfreeze/remove 修改）"""

    name: str
    kind: SourceKind
    ref: str = ""             # 跟踪的分支或标签，tarball 为空
    url: str = ""             # git 仓库地址或 tarball 地址
    owner: str = ""           # github
    repo: str = ""            # github
    submodules: bool = False
    frozen: bool = False

    @property
    def location(self) -> str:
        if self.kind == SourceKind.GITHUB:
            return f"{self.owner}/{self.repo}"
        return self.url

    @property
    def git_url(self) -> str:
        """可供 git 访问的仓库地址（tarball 无）"""
        if self.kind == SourceKind.GITHUB:
            return f"{GITHUB_URL}/{self.owner}/{self.repo}.git"
        if self.kind == SourceKind.GIT:
            return self.url
        return ""

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"kind": self.kind.value}
        if self.kind == SourceKind.GITHUB:
            data["owner"] = self.owner
            data["repo"] = self.repo
        else:
            data["url"] = self.url
        if self.kind != SourceKind.TARBALL:
            data["ref"] = self.ref
        if self.kind == SourceKind.GIT:
            data["submodules"] = self.submodules
        if self.frozen:
            data["frozen"] = True
        return data

    @classmethod
    def from_dict(cls, name: str, data: dict[str, Any]) -> SourceSpec:
        return cls(
            name=name,
            kind=SourceKind.parse(str(data.get("kind", ""))),
            ref=str(data.get("ref", "")),
            url=str(data.get("url", "")),
            owner=str(data.get("owner", "")),
            repo=str(data.get("repo", "")),
            submodules=_flag(data, "submodules"),
            frozen=_flag(data, "frozen"),
        )


def _flag(data: dict[str, Any], key: str) -> bool:
    value = data.get(key)
    if value is None:
        return False
    if not isinstance(value, bool):
        raise ValidationError(f"{key} 必须是布尔值 (true / false)，实际为 {value!r}")
    return value


# =========================================================================
# 锁定结果
# =========================================================================


@dataclass
class LockEntry:
    """源的锁定结果：不可变修订 + 内容哈希"""

    name: str
    kind: SourceKind
    revision: str
    hash: str                         # SRI: sha256-<base64>
    last_modified: int | None = None  # 仅 git
    submodules: bool = False

    def same_content(self, other: LockEntry | None) -> bool:
        return (
            other is not None
            and self.revision == other.revision
            and self.hash == other.hash
        )

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "kind": self.kind.value,
            "revision": self.revision,
            "hash": self.hash,
        }
        if self.kind == SourceKind.GIT:
            if self.last_modified is not None:
                data["lastModified"] = self.last_modified
            data["submodules"] = self.submodules
        return data


@dataclass
class Lockfile:
    """锁文件文档：按名称排序的条目集合 + 版本号"""

    entries: dict[str, LockEntry] = field(default_factory=dict)
    version: str = LOCK_VERSION

    def get(self, name: str) -> LockEntry | None:
        return self.entries.get(name)

    def names(self) -> list[str]:
        return sorted(self.entries)

    def replace(self, updates: list[LockEntry]) -> Lockfile:
        """返回应用了 updates 的新锁文件，原对象不变"""
        entries = dict(self.entries)
        for entry in updates:
            entries[entry.name] = entry
        return Lockfile(entries=entries, version=self.version)

    def without(self, name: str) -> Lockfile:
        entries = {k: v for k, v in self.entries.items() if k != name}
        return Lockfile(entries=entries, version=self.version)


# =========================================================================
# 更新结果
# =========================================================================


class UpdateStatus(str, Enum):
    UNCHANGED = "unchanged"
    UPDATED = "updated"
    SKIPPED = "skipped"
    FAILED = "failed"


SKIP_FROZEN = "frozen"
SKIP_OVERRIDE = "override"


@dataclass
class UpdateResult:
    """单个源的更新结果

    status=SKIPPED 时 reason 为 frozen / override；
    status=FAILED 时 reason 为错误信息。
    """

    name: str
    status: UpdateStatus
    before: LockEntry | None = None
    after: LockEntry | None = None
    reason: str = ""
    local_path: str = ""   # override 生效时的本地路径

    @property
    def updated(self) -> bool:
        return self.status == UpdateStatus.UPDATED

    @property
    def failed(self) -> bool:
        return self.status == UpdateStatus.FAILED


def summarize_results(results: list[UpdateResult]) -> dict[str, int]:
    """统计更新结果分布"""
    return {
        "total": len(results),
        "updated": sum(1 for r in results if r.status == UpdateStatus.UPDATED),
        "unchanged": sum(1 for r in results if r.status == UpdateStatus.UNCHANGED),
        "skipped": sum(1 for r in results if r.status == UpdateStatus.SKIPPED),
        "failed": sum(1 for r in results if r.status == UpdateStatus.FAILED),
    }


# =========================================================================
# 差异
# =========================================================================


class ChangeKind(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    UPDATED = "updated"


@dataclass
class LockChange:
    """两份锁文件之间单个源的差异"""

    name: str
    change: ChangeKind
    old_revision: str = ""
    new_revision: str = ""
    old_hash: str = ""
    new_hash: str = ""


# =========================================================================
# bot 元数据
# =========================================================================


@dataclass
class Commit:
    """上游提交：修订 + 提交信息"""

    revision: str
    message: str

    @property
    def short(self) -> str:
        return self.revision[:7]

    @property
    def summary(self) -> str:
        lines = self.message.splitlines()
        return lines[0] if lines else ""


@dataclass
class BotChange:
    """bot 发布的单个源变更"""

    name: str
    old_revision: str
    new_revision: str
    commits: list[Commit] = field(default_factory=list)
    list_commits: bool = False   # 是否配置了提交列表

    @classmethod
    def from_result(cls, result: UpdateResult) -> BotChange:
        if result.before is None or result.after is None:
            raise ValidationError(f"更新结果缺少前后锁定信息: {result.name}")
        return cls(
            name=result.name,
            old_revision=result.before.revision,
            new_revision=result.after.revision,
        )
