"""源拉取模块

- fetcher.py: Fetcher 分发入口
- git.py: git 仓库（ls-remote + 浅拉取 + NAR 哈希）
- github.py: GitHub 归档
- tarball.py: 任意 tarball 地址
"""

from __future__ import annotations

from lon.core.fetch.fetcher import Fetcher, FetchStrategy
from lon.core.fetch.git import GitFetcher
from lon.core.fetch.github import GitHubFetcher
from lon.core.fetch.tarball import TarballFetcher
from lon.core.models import SourceKind
from lon.utils.http import HttpClient
from lon.utils.shell import CommandExecutor

__all__ = [
    "Fetcher",
    "FetchStrategy",
    "GitFetcher",
    "GitHubFetcher",
    "TarballFetcher",
    "build_fetcher",
]


def build_fetcher(
    executor: CommandExecutor, http: HttpClient, *, timeout: int = 600,
) -> Fetcher:
    return Fetcher({
        SourceKind.GIT: GitFetcher(executor, timeout=timeout),
        SourceKind.GITHUB: GitHubFetcher(executor, http, timeout=timeout),
        SourceKind.TARBALL: TarballFetcher(http, timeout=timeout),
    })
