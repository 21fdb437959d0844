"""GitHub 源拉取 - git ls-remote 解析引用，下载归档并哈希"""

from __future__ import annotations

import logging

from lon.core.models import GITHUB_URL, LockEntry, SourceSpec
from lon.core.fetch.git import resolve_ref
from lon.core.fetch.tarball import download_hash
from lon.utils.http import HttpClient
from lon.utils.shell import CommandExecutor

logger = logging.getLogger(__name__)


def archive_url(owner: str, repo: str, rev: str) -> str:
    return f"{GITHUB_URL}/{owner}/{repo}/archive/{rev}.tar.gz"


class GitHubFetcher:
    def __init__(
        self, executor: CommandExecutor, http: HttpClient, *, timeout: int = 600,
    ) -> None:
        self.executor = executor
        self.http = http
        self.timeout = timeout

    def resolve(self, spec: SourceSpec, revision: str | None = None) -> LockEntry:
        rev = revision or resolve_ref(self.executor, spec.git_url, spec.ref, timeout=self.timeout)
        url = archive_url(spec.owner, spec.repo, rev)
        logger.debug("下载 %s 归档: %s", spec.name, url)
        sri, _ = download_hash(self.http, url, timeout=self.timeout)
        return LockEntry(name=spec.name, kind=spec.kind, revision=rev, hash=sri)
