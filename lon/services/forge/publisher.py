"""Git 发布器 - 不触碰工作区与索引的提交与推送

提交通过底层命令构造: 临时 GIT_INDEX_FILE → read-tree 基线 → 写入锁文件 blob
→ write-tree → commit-tree。推送成功后才移动本地分支引用，
推送失败时本地仓库除了不可达对象外没有任何变化。
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

from lon.core.config import BotSettings
from lon.core.exceptions import ApiError
from lon.utils.net import redact_url
from lon.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)


class GitPublisher:
    """在 directory 所在的 git 仓库中为锁文件创建提交并强制推送到分支"""

    def __init__(
        self,
        executor: CommandExecutor,
        directory: str,
        lock_name: str,
        bot: BotSettings,
        *,
        timeout: int | None = None,
    ) -> None:
        self.executor = executor
        self.directory = directory
        self.lock_name = lock_name
        self.bot = bot
        self.timeout = timeout
        self.branch = ""
        self.base = ""
        self._lock_path = ""

    def _git(
        self, args: list[str], *, env: dict[str, str] | None = None, input: str | None = None,
    ) -> str:
        r = run_cmd(
            ["git", *args], executor=self.executor, cwd=self.directory, env=env,
            input=input, timeout=self.timeout, label=f"git {args[0]}", error=ApiError,
        )
        return r.stdout.strip()

    def create_or_update_branch(self, branch: str) -> None:
        """以当前 HEAD 为基线准备分支；远端同名分支会在推送时被覆盖"""
        self.base = self._git(["rev-parse", "HEAD"])
        prefix = self._git(["rev-parse", "--show-prefix"])
        self._lock_path = str(Path(prefix) / self.lock_name) if prefix else self.lock_name
        self.branch = branch
        logger.info("分支 %s 基于 %s", branch, self.base[:7])

    def commit_and_push(self, message: str, content: str) -> str:
        """提交锁文件内容并推送，返回提交 SHA"""
        if not self.branch:
            raise ApiError("尚未准备分支，请先调用 create_or_update_branch")

        identity = {
            "GIT_AUTHOR_NAME": self.bot.user_name,
            "GIT_AUTHOR_EMAIL": self.bot.user_email,
            "GIT_COMMITTER_NAME": self.bot.user_name,
            "GIT_COMMITTER_EMAIL": self.bot.user_email,
        }
        with tempfile.TemporaryDirectory(prefix="lon-index-") as tmp:
            env = {"GIT_INDEX_FILE": os.path.join(tmp, "index")}
            self._git(["read-tree", self.base], env=env)
            blob = self._git(["hash-object", "-w", "--stdin"], input=content)
            self._git(
                ["update-index", "--add", "--cacheinfo", f"100644,{blob},{self._lock_path}"],
                env=env,
            )
            tree = self._git(["write-tree"], env=env)

        commit = self._git(
            ["commit-tree", tree, "-p", self.base, "-F", "-"],
            env=identity, input=message,
        )
        logger.info("已创建提交 %s", commit[:7])

        # 推送地址可能包含凭据，不写入日志和错误信息
        target = self.bot.push_target
        shown = redact_url(target)
        try:
            self._git(["push", "--force", target, f"{commit}:refs/heads/{self.branch}"])
        except ApiError as e:
            raise ApiError(str(e).replace(target, shown)) from None
        logger.info("已推送到 %s 的分支 %s", shown, self.branch)

        self._git(["update-ref", f"refs/heads/{self.branch}", commit])
        return commit
