"""服务容器 — 把配置与外部能力装配成各组件

外部能力（子进程执行器、HTTP 客户端、环境变量）在构造时注入，
测试中替换为假实现即可，无需 patch。

依赖关系图（→ 表示依赖）:
  sources → engine → fetcher, registry, store, overrides
  bot     → engine, store, forge

用法:
    container = ServiceContainer(Config.from_file("."))
    container.sources.update(["nixpkgs"])
    container.bot("github").run(plan)
"""

from __future__ import annotations

import logging
import os
import threading
from collections.abc import Mapping
from typing import TYPE_CHECKING

from lon.core.config import BotSettings, Config, ForgeSettings

if TYPE_CHECKING:
    from lon.core.engine import UpdateEngine
    from lon.core.fetch import Fetcher
    from lon.core.lockfile import LockfileStore
    from lon.core.manifest import SourceRegistry
    from lon.core.overrides import OverrideResolver
    from lon.services.bot import BotOrchestrator, BotPlan
    from lon.services.source_service import SourceService
    from lon.utils.http import HttpClient
    from lon.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


class ServiceContainer:
    """懒加载服务容器，同一容器内的组件共享实例"""

    def __init__(
        self,
        config: Config | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        executor: CommandExecutor | None = None,
        http: HttpClient | None = None,
    ) -> None:
        self._config = config or Config()
        self._environ = dict(os.environ if environ is None else environ)
        self._instances: dict[str, object] = {}
        if executor is not None:
            self._instances["executor"] = executor
        if http is not None:
            self._instances["http"] = http

    @property
    def config(self) -> Config:
        return self._config

    @property
    def environ(self) -> Mapping[str, str]:
        return self._environ

    # ---- 外部能力 ----

    @property
    def executor(self) -> CommandExecutor:
        if "executor" not in self._instances:
            from lon.utils.shell import get_executor
            self._instances["executor"] = get_executor()
        return self._instances["executor"]  # type: ignore[return-value]

    @property
    def http(self) -> HttpClient:
        if "http" not in self._instances:
            from lon.utils.http import UrllibClient
            self._instances["http"] = UrllibClient()
        return self._instances["http"]  # type: ignore[return-value]

    # ---- 核心组件 ----

    @property
    def registry(self) -> SourceRegistry:
        if "registry" not in self._instances:
            from lon.core.manifest import SourceRegistry
            self._instances["registry"] = SourceRegistry(self._config.manifest_path)
        return self._instances["registry"]  # type: ignore[return-value]

    @property
    def store(self) -> LockfileStore:
        if "store" not in self._instances:
            from lon.core.lockfile import LockfileStore
            self._instances["store"] = LockfileStore(self._config.lock_path)
        return self._instances["store"]  # type: ignore[return-value]

    @property
    def overrides(self) -> OverrideResolver:
        if "overrides" not in self._instances:
            from lon.core.overrides import OverrideResolver
            self._instances["overrides"] = OverrideResolver.from_env(self._environ)
        return self._instances["overrides"]  # type: ignore[return-value]

    @property
    def fetcher(self) -> Fetcher:
        if "fetcher" not in self._instances:
            from lon.core.fetch import build_fetcher
            self._instances["fetcher"] = build_fetcher(
                self.executor, self.http, timeout=self._config.fetch_timeout,
            )
        return self._instances["fetcher"]  # type: ignore[return-value]

    @property
    def engine(self) -> UpdateEngine:
        if "engine" not in self._instances:
            from lon.core.engine import UpdateEngine
            self._instances["engine"] = UpdateEngine(
                self.fetcher, self.registry, self.store, self.overrides,
                max_workers=self._config.max_workers,
            )
        return self._instances["engine"]  # type: ignore[return-value]

    # ---- 服务层 ----

    @property
    def sources(self) -> SourceService:
        if "sources" not in self._instances:
            from lon.services.source_service import SourceService
            self._instances["sources"] = SourceService(
                self.registry, self.store, self.fetcher, self.engine,
                executor=self.executor,
            )
        return self._instances["sources"]  # type: ignore[return-value]

    def bot_plan(self, forge: str) -> tuple[BotPlan, BotSettings, ForgeSettings]:
        """从环境变量构建 bot 配置（入口处一次性读取）"""
        from lon.services.bot import BotPlan
        bot = BotSettings.from_env(self._environ)
        settings = ForgeSettings.from_env(forge, self._environ, bot)
        plan = BotPlan(forge=forge, labels=bot.labels, list_commits=bot.list_commits)
        return plan, bot, settings

    def bot(self, bot: BotSettings, settings: ForgeSettings) -> BotOrchestrator:
        from lon.services.bot import BotOrchestrator, BotSteps
        from lon.services.forge import make_forge
        forge = make_forge(
            settings, bot,
            executor=self.executor, http=self.http,
            directory=self._config.directory, lock_name=self._config.lock,
            timeout=self._config.fetch_timeout,
        )
        return BotOrchestrator(BotSteps(self.engine, self.store, forge))


# ---- 全局单例 ----

_global: ServiceContainer | None = None
_global_lock = threading.Lock()


def get_container() -> ServiceContainer:
    """获取全局容器（未初始化时使用默认配置）"""
    global _global  # noqa: PLW0603
    if _global is not None:
        return _global
    with _global_lock:
        if _global is None:
            _global = ServiceContainer()
        return _global


def init_container(container: ServiceContainer) -> ServiceContainer:
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = container
    return container


def reset_container() -> None:
    """重置全局容器（仅用于测试）"""
    global _global  # noqa: PLW0603
    with _global_lock:
        _global = None
