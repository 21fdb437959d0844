"""Git 源拉取

职责:
- 通过 git ls-remote 把分支 / 标签解析为提交（歧义与不存在都直接失败）
- 单次浅拉取到临时目录，同时得到 NAR 哈希和 lastModified
"""

from __future__ import annotations

import logging
import re
import tempfile

from lon.core.exceptions import AmbiguousRef, FetchError, NetworkError, RefNotFound
from lon.core.models import LockEntry, SourceSpec
from lon.utils.hashing import nar_sri
from lon.utils.shell import CommandExecutor, run_cmd

logger = logging.getLogger(__name__)

_SHA_RE = re.compile(r"^[0-9a-f]{40}$")


def is_commit(ref: str) -> bool:
    return bool(_SHA_RE.match(ref))


def resolve_ref(
    executor: CommandExecutor, url: str, ref: str, *, timeout: int | None = None,
) -> str:
    """把分支或标签解析为提交 SHA，40 位十六进制直接视为提交

    附注标签指向标签对象，取 `refs/tags/<ref>^{}` 行上剥离后的提交。

    Raises:
        RefNotFound: 没有匹配的引用
        AmbiguousRef: 分支与标签同名（或多个引用）
        NetworkError: git 执行失败或超时
    """
    if is_commit(ref):
        return ref

    tag = f"refs/tags/{ref}"
    r = run_cmd(
        ["git", "ls-remote", url, f"refs/heads/{ref}", tag, f"{tag}^{{}}"],
        executor=executor, timeout=timeout, label="git ls-remote", error=NetworkError,
    )
    refs: dict[str, str] = {}
    for line in r.stdout.splitlines():
        parts = line.split()
        if len(parts) == 2:
            refs[parts[1]] = parts[0]
    peeled = refs.pop(f"{tag}^{{}}", None)

    if not refs:
        raise RefNotFound(f"远端不存在引用 {ref}")
    if len(refs) > 1:
        raise AmbiguousRef(f"引用 {ref} 有歧义: {', '.join(sorted(refs))}")
    if tag in refs and peeled:
        return peeled
    (sha,) = refs.values()
    return sha


class GitFetcher:
    """git 仓库: 解析引用 + 拉取检出 + NAR 哈希"""

    def __init__(self, executor: CommandExecutor, *, timeout: int | None = None) -> None:
        self.executor = executor
        self.timeout = timeout

    def resolve(self, spec: SourceSpec, revision: str | None = None) -> LockEntry:
        rev = revision or resolve_ref(self.executor, spec.git_url, spec.ref, timeout=self.timeout)
        logger.debug("拉取 %s@%s", spec.name, rev)

        with tempfile.TemporaryDirectory(prefix="lon-git-") as tmp:
            self._git(["init", "-q"], tmp)
            self._git(["remote", "add", "origin", spec.git_url], tmp)
            try:
                self._git(["fetch", "-q", "--depth=1", "origin", rev], tmp)
            except NetworkError as e:
                if "not our ref" in str(e) or "couldn't find remote ref" in str(e):
                    raise RefNotFound(f"远端不存在提交 {rev}") from e
                raise
            self._git(["checkout", "-q", "FETCH_HEAD"], tmp)
            if spec.submodules:
                self._git(["submodule", "update", "--init", "--recursive", "--depth=1"], tmp)

            out = self._git(["log", "-1", "--format=%ct"], tmp).strip()
            try:
                last_modified = int(out)
            except ValueError:
                raise FetchError(f"无法解析提交时间: {out!r}") from None

            hash_ = nar_sri(tmp)

        return LockEntry(
            name=spec.name,
            kind=spec.kind,
            revision=rev,
            hash=hash_,
            last_modified=last_modified,
            submodules=spec.submodules,
        )

    def _git(self, args: list[str], cwd: str) -> str:
        r = run_cmd(
            ["git", *args], executor=self.executor, cwd=cwd,
            timeout=self.timeout, label=f"git {args[0]}", error=NetworkError,
        )
        return r.stdout
