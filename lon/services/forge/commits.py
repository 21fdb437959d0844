"""上游提交列表

按源类型列出 old..new 之间的提交（最新在前，最多 limit 个）:
- git: 临时裸仓库浅拉取两端后 rev-list
- github: compare API
- tarball: 无提交历史
结果以一次性迭代器返回。
"""

from __future__ import annotations

import logging
import tempfile
from collections.abc import Iterator

from lon.core.exceptions import ApiError
from lon.core.models import Commit, SourceKind, SourceSpec
from lon.utils.http import HttpClient, send_json
from lon.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"


def parse_rev_list(output: str) -> list[Commit]:
    """解析 `git rev-list --format=%s` 输出（commit <sha> 行后跟标题行）"""
    commits: list[Commit] = []
    revision = ""
    for line in output.splitlines():
        if line.startswith("commit ") and not revision:
            revision = line[len("commit "):].strip()
        elif revision:
            commits.append(Commit(revision=revision, message=line))
            revision = ""
    if revision:
        commits.append(Commit(revision=revision, message=""))
    return commits


class CommitLister:
    def __init__(
        self,
        executor: CommandExecutor,
        http: HttpClient,
        *,
        github_token: str | None = None,
        timeout: int | None = None,
    ) -> None:
        self.executor = executor
        self.http = http
        self.github_token = github_token
        self.timeout = timeout

    def list(self, spec: SourceSpec, old_rev: str, new_rev: str, limit: int) -> Iterator[Commit]:
        if limit <= 0 or old_rev == new_rev:
            return iter(())
        if spec.kind == SourceKind.GIT:
            commits = self._from_git(spec.git_url, old_rev, new_rev, limit)
        elif spec.kind == SourceKind.GITHUB:
            commits = self._from_github(spec.owner, spec.repo, old_rev, new_rev, limit)
        else:
            commits = []
        logger.debug("%s: %d 个提交", spec.name, len(commits))
        return iter(commits[:limit])

    def _from_git(self, url: str, old_rev: str, new_rev: str, limit: int) -> list[Commit]:
        with tempfile.TemporaryDirectory(prefix="lon-revlist-") as tmp:
            def git(*args: str) -> str:
                r = run_cmd(
                    ["git", "--git-dir", tmp, *args], executor=self.executor,
                    timeout=self.timeout, label=f"git {args[0]}", error=ApiError,
                )
                return r.stdout

            git("init", "-q", "--bare")
            git("remote", "add", "origin", url)
            git("fetch", "-q", "--depth=1", "--no-show-forced-updates", "origin", old_rev)
            git(
                "fetch", "-q", "--no-show-forced-updates", "--negotiation-tip", old_rev,
                f"--depth={limit}", "origin", new_rev,
            )
            output = git("rev-list", "--format=%s", f"--max-count={limit}", f"{old_rev}..{new_rev}")
        return parse_rev_list(output)

    def _from_github(
        self, owner: str, repo: str, old_rev: str, new_rev: str, limit: int,
    ) -> list[Commit]:
        headers = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if self.github_token:
            headers["Authorization"] = f"Bearer {self.github_token}"
        url = f"{GITHUB_API}/repos/{owner}/{repo}/compare/{old_rev}...{new_rev}"
        data = send_json(self.http, "GET", url, headers=headers, context="比较提交")
        raw = data.get("commits", []) if isinstance(data, dict) else []
        # API 按时间正序返回
        commits = [
            Commit(revision=c["sha"], message=c.get("commit", {}).get("message", ""))
            for c in reversed(raw)
        ]
        return commits[:limit]
