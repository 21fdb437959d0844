"""集中配置管理

- Config: 工作目录下 lon.config.yml 的运行参数（可选文件）
- BotSettings / ForgeSettings: bot 运行时从环境变量一次性构建的显式配置

环境变量只在入口层读取，构建好的配置对象再传给下层组件。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import asdict, dataclass, field
from pathlib import Path

from lon.core.exceptions import ConfigError
from lon.utils.yaml_io import load_yaml

logger = logging.getLogger(__name__)

CONFIG_FILE = "lon.config.yml"
DEFAULT_PUSH_REMOTE = "origin"
DEFAULT_GITHUB_API = "https://api.github.com"

FORGE_GITHUB = "github"
FORGE_GITLAB = "gitlab"
FORGE_FORGEJO = "forgejo"
FORGES = (FORGE_GITHUB, FORGE_GITLAB, FORGE_FORGEJO)


@dataclass
class Config:
    """工作目录级配置"""

    directory: str = "."
    manifest: str = "lon.yml"
    lock: str = "lon.lock"

    # 拉取
    max_workers: int = 4
    fetch_timeout: int = 600

    extra: dict = field(default_factory=dict)

    @property
    def manifest_path(self) -> Path:
        return Path(self.directory) / self.manifest

    @property
    def lock_path(self) -> Path:
        return Path(self.directory) / self.lock

    @classmethod
    def from_file(cls, directory: str = ".") -> Config:
        """从 <directory>/lon.config.yml 加载，不存在则使用默认值"""
        path = Path(directory) / CONFIG_FILE
        try:
            data = load_yaml(path)
        except ValueError as e:
            raise ConfigError(f"配置文件无效: {path}: {e}") from e
        known = {f for f in cls.__dataclass_fields__ if f not in ("directory", "extra")}
        matched = {k: v for k, v in data.items() if k in known}
        cfg = cls(directory=directory, **matched)
        cfg.extra = {k: v for k, v in data.items() if k not in known}
        if cfg.max_workers < 1:
            raise ConfigError(f"max_workers 必须 >= 1: {cfg.max_workers}")
        if data:
            logger.debug("配置已加载: %s", path)
        return cfg

    def to_dict(self) -> dict:
        return asdict(self)


# =========================================================================
# 环境变量
# =========================================================================


def required_env(key: str, environ: Mapping[str, str]) -> str:
    value = environ.get(key, "")
    if not value:
        raise ConfigError(f"无法从环境变量读取 {key}")
    return value


def _parse_labels(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())


def _parse_list_commits(raw: str) -> int | None:
    if not raw.strip():
        return None
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"LON_LIST_COMMITS 不是整数: {raw!r}") from None
    if value < 0:
        raise ConfigError(f"LON_LIST_COMMITS 不能为负数: {value}")
    return value


@dataclass(frozen=True)
class BotSettings:
    """bot 运行配置（凭据、提交身份、标签、推送目标、提交列表上限）"""

    token: str = field(repr=False)
    user_name: str = "LonBot"
    user_email: str = "lonbot@lonbot"
    labels: tuple[str, ...] = ()
    push_url: str | None = field(default=None, repr=False)
    list_commits: int | None = None

    @property
    def push_target(self) -> str:
        return self.push_url or DEFAULT_PUSH_REMOTE

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> BotSettings:
        return cls(
            token=required_env("LON_TOKEN", environ),
            user_name=environ.get("LON_USER_NAME") or "LonBot",
            user_email=environ.get("LON_USER_EMAIL") or "lonbot@lonbot",
            labels=_parse_labels(environ.get("LON_LABELS", "")),
            push_url=environ.get("LON_PUSH_URL") or None,
            list_commits=_parse_list_commits(environ.get("LON_LIST_COMMITS", "")),
        )


@dataclass(frozen=True)
class ForgeSettings:
    """托管平台身份（由 CI 环境提供）

    github / forgejo: repository 为 owner/repo；gitlab: project_id。
    """

    forge: str
    api_url: str
    repository: str = ""
    project_id: str = ""
    default_branch: str = ""

    @classmethod
    def from_env(
        cls, forge: str, environ: Mapping[str, str], bot: BotSettings | None = None,
    ) -> ForgeSettings:
        if forge == FORGE_GITHUB:
            return cls(
                forge=forge,
                api_url=(environ.get("GITHUB_API_URL") or DEFAULT_GITHUB_API).rstrip("/"),
                repository=required_env("GITHUB_REPOSITORY", environ),
            )
        if forge == FORGE_GITLAB:
            if bot is not None and not bot.push_url:
                raise ConfigError("GitLab 需要设置 LON_PUSH_URL（CI 令牌无法推送到 origin）")
            return cls(
                forge=forge,
                api_url=required_env("CI_API_V4_URL", environ).rstrip("/"),
                project_id=required_env("CI_PROJECT_ID", environ),
                default_branch=required_env("CI_DEFAULT_BRANCH", environ),
            )
        if forge == FORGE_FORGEJO:
            return cls(
                forge=forge,
                api_url=required_env("GITHUB_API_URL", environ).rstrip("/"),
                repository=required_env("GITHUB_REPOSITORY", environ),
            )
        raise ConfigError(f"不支持的托管平台: {forge}，可选: {', '.join(FORGES)}")
