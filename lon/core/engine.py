"""更新引擎 - 对整个源集合做拉取与比对

通过注入 Fetcher / OverrideResolver 解耦具体拉取实现。
每个源独立处理，可在有上限的线程池中并行；单个源失败不影响其他源。
引擎只读不写，是否持久化由调用方决定。
"""

from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Iterable

from lon.core.exceptions import FetchError, ValidationError
from lon.core.fetch import Fetcher
from lon.core.lockfile import LockfileStore
from lon.core.manifest import SourceRegistry, check_consistency
from lon.core.models import (
    SKIP_FROZEN,
    SKIP_OVERRIDE,
    LockEntry,
    Lockfile,
    SourceSpec,
    UpdateResult,
    UpdateStatus,
    summarize_results,
)
from lon.core.overrides import OverrideResolver

logger = logging.getLogger(__name__)


class UpdateEngine:
    """按名称排序返回每个源的 UpdateResult"""

    def __init__(
        self,
        fetcher: Fetcher,
        registry: SourceRegistry,
        store: LockfileStore,
        overrides: OverrideResolver | None = None,
        *,
        max_workers: int = 4,
    ) -> None:
        self.fetcher = fetcher
        self.registry = registry
        self.store = store
        self.overrides = overrides or OverrideResolver()
        self.max_workers = max(1, max_workers)

    def load(self) -> tuple[dict[str, SourceSpec], Lockfile]:
        """读取声明与锁文件并校验一致性"""
        specs = self.registry.load()
        lock = self.store.read()
        check_consistency(specs, lock)
        return specs, lock

    def update(
        self, names: Iterable[str] | None = None, force: bool = False,
    ) -> list[UpdateResult]:
        """更新所选源（None 表示全部），冻结的源除非 force 否则跳过

        Raises:
            ConfigError: 声明与锁文件不一致
            ValidationError: 指定了未声明的源
        """
        specs, lock = self.load()
        selected = self.select(specs, names)
        return self.run(selected, lock, force=force)

    def run(
        self, specs: list[SourceSpec], lock: Lockfile, *, force: bool = False,
    ) -> list[UpdateResult]:
        if self.max_workers == 1 or len(specs) <= 1:
            results = [self._update_one(spec, lock.get(spec.name), force) for spec in specs]
        else:
            results = self._run_parallel(specs, lock, force)

        results.sort(key=lambda r: r.name)
        counts = summarize_results(results)
        logger.info(
            "更新完成: 共 %d, 更新 %d, 未变 %d, 跳过 %d, 失败 %d",
            counts["total"], counts["updated"], counts["unchanged"],
            counts["skipped"], counts["failed"],
        )
        return results

    def _run_parallel(
        self, specs: list[SourceSpec], lock: Lockfile, force: bool,
    ) -> list[UpdateResult]:
        pool = ThreadPoolExecutor(max_workers=self.max_workers, thread_name_prefix="lon-fetch")
        try:
            futures = [
                pool.submit(self._update_one, spec, lock.get(spec.name), force)
                for spec in specs
            ]
            results = [f.result() for f in futures]
        except KeyboardInterrupt:
            logger.warning("已中断，取消未完成的拉取")
            pool.shutdown(wait=False, cancel_futures=True)
            raise
        pool.shutdown(wait=True)
        return results

    @staticmethod
    def select(
        specs: dict[str, SourceSpec], names: Iterable[str] | None,
    ) -> list[SourceSpec]:
        if names is None:
            return [specs[n] for n in sorted(specs)]
        wanted = sorted(set(names))
        unknown = [n for n in wanted if n not in specs]
        if unknown:
            raise ValidationError(f"未声明的源: {', '.join(unknown)}", details=unknown)
        return [specs[n] for n in wanted]

    def _update_one(
        self, spec: SourceSpec, before: LockEntry | None, force: bool,
    ) -> UpdateResult:
        if spec.frozen and not force:
            logger.info("跳过已冻结的源: %s", spec.name)
            return UpdateResult(
                name=spec.name, status=UpdateStatus.SKIPPED,
                before=before, after=before, reason=SKIP_FROZEN,
            )

        local_path = self.overrides.lookup(spec.name)
        if local_path is not None:
            logger.info("源 %s 被本地路径覆盖: %s", spec.name, local_path)
            return UpdateResult(
                name=spec.name, status=UpdateStatus.SKIPPED,
                before=before, after=before, reason=SKIP_OVERRIDE,
                local_path=local_path,
            )

        logger.info("更新 %s ...", spec.name)
        try:
            after = self.fetcher.resolve(spec)
        except FetchError as e:
            logger.error("更新 %s 失败: [%s] %s", spec.name, e.code, e)
            return UpdateResult(
                name=spec.name, status=UpdateStatus.FAILED,
                before=before, reason=str(e),
            )

        if after.same_content(before):
            logger.debug("%s 无变化", spec.name)
            return UpdateResult(
                name=spec.name, status=UpdateStatus.UNCHANGED, before=before, after=before,
            )

        logger.info(
            "%s: %s → %s",
            spec.name, before.revision if before else "(无)", after.revision,
        )
        return UpdateResult(
            name=spec.name, status=UpdateStatus.UPDATED, before=before, after=after,
        )


def apply_results(lock: Lockfile, results: list[UpdateResult]) -> Lockfile:
    """把所有 Updated 结果合入锁文件，返回新对象"""
    return lock.replace([r.after for r in results if r.updated and r.after is not None])
