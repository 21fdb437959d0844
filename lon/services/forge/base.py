"""托管平台客户端协议

每个平台实现同一组能力，由 forge 名称选择具体实现：
- create_or_update_branch / commit_and_push: 委托给 GitPublisher
- list_commits_between: 委托给 CommitLister（与平台无关，取决于源类型）
- open_or_update_request: 各平台 API 不同，分别实现
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Protocol

from lon.core.models import Commit, SourceSpec
from lon.services.forge.commits import CommitLister
from lon.services.forge.publisher import GitPublisher


class ForgeClient(Protocol):
    name: str

    def create_or_update_branch(self, branch: str) -> None:
        ...

    def commit_and_push(self, message: str, content: str) -> str:
        ...

    def list_commits_between(
        self, spec: SourceSpec, old_rev: str, new_rev: str, limit: int,
    ) -> Iterator[Commit]:
        ...

    def open_or_update_request(self, title: str, body: str, labels: tuple[str, ...]) -> str:
        """创建或更新当前分支的 PR/MR，返回网页地址"""
        ...


class GitBackedForge:
    """分支与提交走 git，提交列表走 CommitLister 的公共部分"""

    name = ""

    def __init__(self, publisher: GitPublisher, lister: CommitLister) -> None:
        self.publisher = publisher
        self.lister = lister

    @property
    def branch(self) -> str:
        return self.publisher.branch

    def create_or_update_branch(self, branch: str) -> None:
        self.publisher.create_or_update_branch(branch)

    def commit_and_push(self, message: str, content: str) -> str:
        return self.publisher.commit_and_push(message, content)

    def list_commits_between(
        self, spec: SourceSpec, old_rev: str, new_rev: str, limit: int,
    ) -> Iterator[Commit]:
        return self.lister.list(spec, old_rev, new_rev, limit)
