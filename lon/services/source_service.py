"""源管理服务 - 面向用户的操作

职责:
- init: 创建空的声明 / 锁文件，可从 niv 导入
- add / modify / remove / freeze / unfreeze: 修改声明（及对应锁条目）
- update: 批量更新并写回锁文件，可选创建本地提交
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field

from lon.core.engine import UpdateEngine, apply_results
from lon.core.exceptions import FetchError, LonError, ValidationError
from lon.core.fetch import Fetcher
from lon.core.lockfile import LockfileStore
from lon.core.manifest import SourceRegistry
from lon.core.models import (
    BotChange,
    LockEntry,
    Lockfile,
    SourceKind,
    SourceSpec,
    UpdateResult,
    UpdateStatus,
)
from lon.core.niv import load_niv
from lon.services.bot.commit_message import render_commit_message
from lon.utils.net import validate_url_scheme
from lon.utils.shell import CommandExecutor, get_executor, run_cmd
from lon.utils.yaml_io import atomic_write

logger = logging.getLogger(__name__)

_SAFE_REF_RE = re.compile(r"^[a-zA-Z0-9_./@+\-]+$")
_GITHUB_ID_RE = re.compile(r"^[A-Za-z0-9_.\-]+/[A-Za-z0-9_.\-]+$")


@dataclass
class UpdateOutcome:
    """lon update 的结果"""

    results: list[UpdateResult] = field(default_factory=list)
    written: bool = False
    commit: str = ""

    @property
    def updated(self) -> list[UpdateResult]:
        return [r for r in self.results if r.updated]

    @property
    def failed(self) -> list[UpdateResult]:
        return [r for r in self.results if r.failed]


def parse_github_identifier(identifier: str) -> tuple[str, str]:
    """owner/repo → (owner, repo)"""
    if not _GITHUB_ID_RE.match(identifier):
        raise ValidationError(f"无效的 GitHub 仓库标识 (应为 owner/repo): {identifier}")
    owner, repo = identifier.split("/", 1)
    return owner, repo.removesuffix(".git")


def validate_spec(spec: SourceSpec) -> None:
    """新增 / 修改声明时的输入校验

    Raises:
        ValidationError: 名称为空、引用含非法字符或地址协议不允许
    """
    if not spec.name:
        raise ValidationError("源名称不能为空")
    if spec.kind != SourceKind.TARBALL and not _SAFE_REF_RE.match(spec.ref):
        raise ValidationError(f"ref 包含非法字符: {spec.ref!r}")
    if spec.kind == SourceKind.TARBALL:
        validate_url_scheme(spec.url, context=spec.name)
    if spec.kind == SourceKind.GIT and not spec.url:
        raise ValidationError(f"源 {spec.name} 缺少仓库地址")


class SourceService:
    """源声明与锁文件的统一操作入口"""

    def __init__(
        self,
        registry: SourceRegistry,
        store: LockfileStore,
        fetcher: Fetcher,
        engine: UpdateEngine,
        *,
        executor: CommandExecutor | None = None,
    ) -> None:
        self.registry = registry
        self.store = store
        self.fetcher = fetcher
        self.engine = engine
        self.executor = executor or get_executor()

    # ---- 内部 ----

    def _load(self) -> tuple[dict[str, SourceSpec], Lockfile]:
        return self.engine.load()

    @staticmethod
    def _require(specs: dict[str, SourceSpec], name: str) -> SourceSpec:
        spec = specs.get(name)
        if spec is None:
            raise ValidationError(f"源 '{name}' 不存在。可用: {sorted(specs)}")
        return spec

    def _save(self, specs: dict[str, SourceSpec], lock: Lockfile) -> None:
        """先写锁文件再写声明文件，声明文件写入失败时恢复锁文件"""
        path = self.store.path
        previous = path.read_text(encoding="utf-8") if path.is_file() else None
        self.store.write(lock)
        try:
            self.registry.save(specs)
        except BaseException:
            logger.error("声明文件写入失败，恢复锁文件: %s", path)
            if previous is None:
                path.unlink(missing_ok=True)
            else:
                atomic_write(path, previous)
            raise

    # ---- 初始化 ----

    def init(self, from_niv: str | None = None) -> list[str]:
        """创建空的声明 / 锁文件；指定 niv 文件时导入其中的源，返回导入的名称"""
        self.registry.init()
        self.store.init()
        if not from_niv:
            return []

        imports = load_niv(from_niv)
        specs, lock = self._load()
        clash = [i.spec.name for i in imports if i.spec.name in specs]
        if clash:
            raise ValidationError(f"源已存在: {', '.join(clash)}", details=clash)

        entries: list[LockEntry] = []
        for item in imports:
            validate_spec(item.spec)
            entries.append(self.fetcher.resolve(item.spec, item.revision))
            specs[item.spec.name] = item.spec
        self._save(specs, lock.replace(entries))
        logger.info("已从 niv 导入 %d 个源", len(imports))
        return [i.spec.name for i in imports]

    # ---- 声明修改 ----

    def add(self, spec: SourceSpec, revision: str | None = None) -> LockEntry:
        """新增源并立即锁定（revision 给定时锁定该修订）"""
        validate_spec(spec)
        specs, lock = self._load()
        if spec.name in specs:
            raise ValidationError(f"源 '{spec.name}' 已存在")

        logger.info("添加 %s (%s %s)", spec.name, spec.kind.value, spec.location)
        entry = self.fetcher.resolve(spec, revision)
        specs[spec.name] = spec
        self._save(specs, lock.replace([entry]))
        logger.info("已锁定 %s@%s", spec.name, entry.revision)
        return entry

    def modify(
        self, name: str, *, ref: str | None = None, revision: str | None = None,
    ) -> UpdateResult:
        """修改引用或锁定的修订

        只改 ref 时重新解析该引用的最新修订；给定 revision 时锁定该修订。
        """
        specs, lock = self._load()
        spec = self._require(specs, name)
        before = lock.get(name)

        if spec.kind == SourceKind.TARBALL and (ref or revision):
            raise ValidationError(f"tarball 源 {name} 不支持修改 ref / revision")

        ref_changed = ref is not None and ref != spec.ref
        rev_changed = revision is not None and (before is None or revision != before.revision)
        if ref is not None and not ref_changed:
            logger.info("%s 的 ref 已是 %s，无需修改", name, ref)
        if revision is not None and not rev_changed:
            logger.info("%s 已锁定在 %s，无需修改", name, revision)
        if not ref_changed and not rev_changed:
            return UpdateResult(name=name, status=UpdateStatus.UNCHANGED, before=before, after=before)

        if ref_changed:
            spec.ref = ref or ""
            validate_spec(spec)
        entry = self.fetcher.resolve(spec, revision if rev_changed else None)
        self._save(specs, lock.replace([entry]))

        status = UpdateStatus.UNCHANGED if entry.same_content(before) else UpdateStatus.UPDATED
        logger.info("%s: %s → %s", name, before.revision if before else "(无)", entry.revision)
        return UpdateResult(name=name, status=status, before=before, after=entry)

    def remove(self, name: str) -> None:
        specs, lock = self._load()
        self._require(specs, name)
        del specs[name]
        self._save(specs, lock.without(name))
        logger.info("已移除 %s", name)

    def set_frozen(self, name: str, frozen: bool) -> bool:
        """冻结 / 解冻只修改声明，不触碰锁条目，返回是否有变化"""
        specs = self.registry.load()
        spec = self._require(specs, name)
        if spec.frozen == frozen:
            logger.info("%s 已%s", name, "冻结" if frozen else "解冻")
            return False
        spec.frozen = frozen
        self.registry.save(specs)
        logger.info("%s %s", "已冻结" if frozen else "已解冻", name)
        return True

    def freeze(self, name: str) -> bool:
        return self.set_frozen(name, True)

    def unfreeze(self, name: str) -> bool:
        return self.set_frozen(name, False)

    # ---- 更新 ----

    def update(
        self,
        names: list[str] | None = None,
        *,
        force: bool = False,
        commit: bool = False,
    ) -> UpdateOutcome:
        """更新所选源并写回锁文件

        单个源的更新失败直接抛出；批量更新时失败记录在结果中，其余源照常写回。
        """
        specs, lock = self._load()
        selected = self.engine.select(specs, names or None)
        results = self.engine.run(selected, lock, force=force)
        outcome = UpdateOutcome(results=results)

        if names and len(selected) == 1 and results[0].failed:
            raise FetchError(results[0].reason, name=results[0].name)

        if not outcome.updated:
            logger.info("没有可用的更新")
            return outcome

        outcome.written = self.store.write(apply_results(lock, results))
        if commit and outcome.written:
            changes = [BotChange.from_result(r) for r in outcome.updated]
            outcome.commit = self.commit_lock(render_commit_message(changes))
        return outcome

    def commit_lock(self, message: str) -> str:
        """只提交锁文件，返回提交 SHA"""
        directory = str(self.store.path.parent)
        lock_name = self.store.path.name
        run_cmd(["git", "add", "--", lock_name], executor=self.executor, cwd=directory,
                label="git add", error=LonError)
        run_cmd(["git", "commit", "-q", "-F", "-", "--", lock_name], executor=self.executor,
                cwd=directory, input=message, label="git commit", error=LonError)
        r = run_cmd(["git", "rev-parse", "HEAD"], executor=self.executor, cwd=directory,
                    label="git rev-parse", error=LonError)
        sha = r.stdout.strip()
        logger.info("已提交锁文件: %s", sha[:7])
        return sha
