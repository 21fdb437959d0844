"""Config / BotSettings / ForgeSettings / OverrideResolver 单元测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from lon.core.config import BotSettings, Config, ForgeSettings
from lon.core.exceptions import ConfigError
from lon.core.overrides import OverrideResolver


class TestConfig:
    def test_defaults_without_file(self, tmp_path: Path) -> None:
        cfg = Config.from_file(str(tmp_path))
        assert cfg.max_workers == 4
        assert cfg.lock_path == tmp_path / "lon.lock"
        assert cfg.manifest_path == tmp_path / "lon.yml"

    def test_known_and_extra_keys(self, tmp_path: Path) -> None:
        (tmp_path / "lon.config.yml").write_text(
            "max_workers: 2\nfetch_timeout: 30\nlock: deps.lock\ncustom: 1\n",
            encoding="utf-8",
        )
        cfg = Config.from_file(str(tmp_path))
        assert (cfg.max_workers, cfg.fetch_timeout, cfg.lock) == (2, 30, "deps.lock")
        assert cfg.extra == {"custom": 1}
        assert cfg.to_dict()["lock"] == "deps.lock"

    def test_invalid_workers(self, tmp_path: Path) -> None:
        (tmp_path / "lon.config.yml").write_text("max_workers: 0\n", encoding="utf-8")
        with pytest.raises(ConfigError, match="max_workers"):
            Config.from_file(str(tmp_path))


class TestBotSettings:
    def test_defaults(self) -> None:
        bot = BotSettings.from_env({"LON_TOKEN": "t0k"})
        assert bot.user_name == "LonBot"
        assert bot.user_email == "lonbot@lonbot"
        assert bot.labels == ()
        assert bot.push_target == "origin"
        assert bot.list_commits is None
        assert "t0k" not in repr(bot)

    def test_full(self) -> None:
        bot = BotSettings.from_env({
            "LON_TOKEN": "t", "LON_USER_NAME": "ci", "LON_USER_EMAIL": "ci@x",
            "LON_LABELS": "deps, automated,,", "LON_PUSH_URL": "https://u:p@h/r.git",
            "LON_LIST_COMMITS": "3",
        })
        assert bot.labels == ("deps", "automated")
        assert bot.push_target == "https://u:p@h/r.git"
        assert bot.list_commits == 3

    def test_missing_token(self) -> None:
        with pytest.raises(ConfigError, match="无法从环境变量读取 LON_TOKEN"):
            BotSettings.from_env({})

    @pytest.mark.parametrize("raw", ["many", "-1", "1.5"])
    def test_bad_list_commits(self, raw: str) -> None:
        with pytest.raises(ConfigError, match="LON_LIST_COMMITS"):
            BotSettings.from_env({"LON_TOKEN": "t", "LON_LIST_COMMITS": raw})


class TestForgeSettings:
    def test_github_default_api(self) -> None:
        s = ForgeSettings.from_env("github", {"GITHUB_REPOSITORY": "o/r"})
        assert s.api_url == "https://api.github.com"
        assert s.repository == "o/r"

    def test_github_missing_repository(self) -> None:
        with pytest.raises(ConfigError, match="GITHUB_REPOSITORY"):
            ForgeSettings.from_env("github", {})

    def test_gitlab(self) -> None:
        env = {"CI_API_V4_URL": "https://gl/api/v4/", "CI_PROJECT_ID": "12",
               "CI_DEFAULT_BRANCH": "main"}
        s = ForgeSettings.from_env("gitlab", env)
        assert (s.api_url, s.project_id, s.default_branch) == ("https://gl/api/v4", "12", "main")

    def test_gitlab_requires_push_url(self) -> None:
        env = {"CI_API_V4_URL": "https://gl/api/v4", "CI_PROJECT_ID": "12",
               "CI_DEFAULT_BRANCH": "main"}
        with pytest.raises(ConfigError, match="LON_PUSH_URL"):
            ForgeSettings.from_env("gitlab", env, BotSettings(token="t"))

    def test_forgejo_requires_api_url(self) -> None:
        with pytest.raises(ConfigError, match="GITHUB_API_URL"):
            ForgeSettings.from_env("forgejo", {"GITHUB_REPOSITORY": "o/r"})

    def test_unknown_forge(self) -> None:
        with pytest.raises(ConfigError, match="不支持的托管平台"):
            ForgeSettings.from_env("bitbucket", {})


class TestOverrides:
    def test_from_env(self) -> None:
        resolver = OverrideResolver.from_env({
            "LON_OVERRIDE_nixpkgs": "/src/nixpkgs",
            "LON_OVERRIDE_": "/ignored",
            "LON_OVERRIDE_empty": "",
            "PATH": "/bin",
        })
        assert resolver.names() == ["nixpkgs"]
        assert resolver.lookup("nixpkgs") == "/src/nixpkgs"
        assert resolver.lookup("other") is None
        assert resolver

    def test_name_case_preserved(self) -> None:
        resolver = OverrideResolver.from_env({"LON_OVERRIDE_My-Lib": "/x"})
        assert resolver.lookup("My-Lib") == "/x"
        assert resolver.lookup("my-lib") is None

    def test_empty(self) -> None:
        assert not OverrideResolver()
