"""托管平台模块

- base.py: ForgeClient 协议
- publisher.py: GitPublisher（底层命令提交 + 强制推送）
- commits.py: 上游提交列表
- github.py / gitlab.py / forgejo.py: 各平台 PR/MR 接口
"""

from __future__ import annotations

from lon.core.config import FORGE_FORGEJO, FORGE_GITHUB, FORGE_GITLAB, BotSettings, ForgeSettings
from lon.core.exceptions import ConfigError
from lon.services.forge.base import ForgeClient, GitBackedForge
from lon.services.forge.commits import CommitLister
from lon.services.forge.forgejo import ForgejoForge
from lon.services.forge.github import GitHubForge
from lon.services.forge.gitlab import GitLabForge
from lon.services.forge.publisher import GitPublisher
from lon.utils.http import HttpClient
from lon.utils.shell import CommandExecutor

__all__ = [
    "CommitLister",
    "ForgeClient",
    "ForgejoForge",
    "GitBackedForge",
    "GitHubForge",
    "GitLabForge",
    "GitPublisher",
    "make_forge",
]

_FORGES = {
    FORGE_GITHUB: GitHubForge,
    FORGE_GITLAB: GitLabForge,
    FORGE_FORGEJO: ForgejoForge,
}


def make_forge(
    settings: ForgeSettings,
    bot: BotSettings,
    *,
    executor: CommandExecutor,
    http: HttpClient,
    directory: str,
    lock_name: str,
    timeout: int | None = None,
) -> ForgeClient:
    """按 settings.forge 构建客户端"""
    cls = _FORGES.get(settings.forge)
    if cls is None:
        raise ConfigError(f"不支持的托管平台: {settings.forge}")
    publisher = GitPublisher(executor, directory, lock_name, bot, timeout=timeout)
    # 只有 GitHub 的令牌能用于 GitHub 上游的 compare API
    github_token = bot.token if settings.forge == FORGE_GITHUB else None
    lister = CommitLister(executor, http, github_token=github_token, timeout=timeout)
    return cls(settings, bot.token, http, publisher, lister)
