"""ServiceContainer 单元测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from lon.core.config import Config
from lon.core.exceptions import ConfigError
from lon.services.bot import BotOrchestrator
from lon.services.container import (
    ServiceContainer,
    get_container,
    init_container,
    reset_container,
)
from lon.services.forge import GitLabForge

ENV = {
    "LON_TOKEN": "t",
    "LON_LABELS": "deps",
    "LON_LIST_COMMITS": "5",
    "LON_PUSH_URL": "https://u:p@gitlab.test/g/r.git",
    "CI_API_V4_URL": "https://gitlab.test/api/v4",
    "CI_PROJECT_ID": "7",
    "CI_DEFAULT_BRANCH": "main",
}


@pytest.fixture(autouse=True)
def _reset():
    reset_container()
    yield
    reset_container()


@pytest.fixture()
def container(tmp_path: Path, executor, http) -> ServiceContainer:
    return ServiceContainer(Config(directory=str(tmp_path)), environ=ENV,
                            executor=executor, http=http)


class TestServiceContainer:
    def test_lazy_loading(self, container: ServiceContainer) -> None:
        assert set(container._instances) == {"executor", "http"}
        _ = container.sources
        assert {"registry", "store", "fetcher", "engine", "sources"} <= set(container._instances)

    def test_shared_instances(self, container: ServiceContainer) -> None:
        assert container.engine is container.engine
        assert container.sources.engine is container.engine
        assert container.engine.store is container.store

    def test_injected_capabilities(self, container: ServiceContainer, executor, http) -> None:
        assert container.executor is executor
        assert container.http is http

    def test_paths_follow_config(self, container: ServiceContainer, tmp_path: Path) -> None:
        assert container.store.path == tmp_path / "lon.lock"
        assert container.registry.path == tmp_path / "lon.yml"

    def test_overrides_from_environ(self, tmp_path: Path) -> None:
        c = ServiceContainer(Config(directory=str(tmp_path)),
                             environ={"LON_OVERRIDE_lib": "/src/lib"})
        assert c.overrides.lookup("lib") == "/src/lib"
        assert c.engine.overrides is c.overrides

    def test_bot_plan(self, container: ServiceContainer) -> None:
        plan, bot, settings = container.bot_plan("gitlab")
        assert plan.branch == "lon/update"
        assert plan.labels == ("deps",)
        assert plan.list_commits == 5
        assert settings.project_id == "7"
        assert bot.push_target == ENV["LON_PUSH_URL"]

    def test_bot_plan_missing_env(self, tmp_path: Path) -> None:
        c = ServiceContainer(Config(directory=str(tmp_path)), environ={})
        with pytest.raises(ConfigError, match="LON_TOKEN"):
            c.bot_plan("github")

    def test_bot(self, container: ServiceContainer) -> None:
        _, bot, settings = container.bot_plan("gitlab")
        orchestrator = container.bot(bot, settings)
        assert isinstance(orchestrator, BotOrchestrator)
        assert isinstance(orchestrator.steps.forge, GitLabForge)
        assert orchestrator.steps.engine is container.engine


class TestGlobalContainer:
    def test_get_creates_default(self) -> None:
        c = get_container()
        assert get_container() is c

    def test_init_and_reset(self, container: ServiceContainer) -> None:
        assert init_container(container) is container
        assert get_container() is container
        reset_container()
        assert get_container() is not container
