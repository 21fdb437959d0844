"""测试公共夹具：脚本化的子进程执行器、HTTP 客户端与拉取策略"""

from __future__ import annotations

import subprocess
from collections.abc import Iterator
from pathlib import Path
from typing import Any, Callable

import pytest

from lon.core.exceptions import FetchError
from lon.core.lockfile import LockfileStore
from lon.core.manifest import SourceRegistry
from lon.core.models import LockEntry, Lockfile, SourceSpec
from lon.utils.hashing import to_sri
from lon.utils.http import HttpResponse
from lon.utils.shell import CommandResult

SHA_A = "a" * 40
SHA_B = "b" * 40
SHA_C = "c" * 40


def sri(seed: str) -> str:
    """由种子字符生成合法的 sha256 SRI"""
    return to_sri(seed.encode("ascii")[:1] * 32)


# =========================================================================
# 子进程
# =========================================================================


class FakeExecutor:
    """按参数前缀匹配返回预置结果，记录所有调用

    rules 中的值可以是 CommandResult、字符串（视为成功的 stdout）、
    异常实例（直接抛出）或接收 (args, kwargs) 的函数。
    未匹配的命令默认成功且无输出。
    """

    def __init__(self) -> None:
        self.rules: list[tuple[tuple[str, ...], Any]] = []
        self.calls: list[dict[str, Any]] = []

    def on(self, *prefix: str, result: Any = "") -> FakeExecutor:
        self.rules.append((prefix, result))
        return self

    def commands(self) -> list[list[str]]:
        return [c["args"] for c in self.calls]

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        input: str | None = None,
    ) -> CommandResult:
        args = cmd.split() if isinstance(cmd, str) else list(cmd)
        call = {"args": args, "cwd": cwd, "env": env, "timeout": timeout, "input": input}
        self.calls.append(call)
        for prefix, result in reversed(self.rules):
            if tuple(args[: len(prefix)]) != prefix:
                continue
            if isinstance(result, BaseException):
                raise result
            if callable(result):
                result = result(args, call)
            if isinstance(result, str):
                return CommandResult(returncode=0, stdout=result, stderr="")
            return result
        return CommandResult(returncode=0, stdout="", stderr="")


def failed(stderr: str, returncode: int = 1) -> CommandResult:
    return CommandResult(returncode=returncode, stdout="", stderr=stderr)


def timeout_error(args: list[str] | None = None) -> subprocess.TimeoutExpired:
    return subprocess.TimeoutExpired(cmd=args or ["git"], timeout=1)


# =========================================================================
# HTTP
# =========================================================================


class FakeHttp:
    """预置 (方法, URL) → 响应，以及 URL → 下载内容"""

    def __init__(self) -> None:
        self.responses: dict[tuple[str, str], list[Any]] = {}
        self.downloads: dict[str, Any] = {}
        self.requests: list[dict[str, Any]] = []

    def reply(self, method: str, url: str, status: int = 200, body: Any = None,
              headers: dict[str, str] | None = None) -> FakeHttp:
        import json
        raw = b"" if body is None else json.dumps(body).encode("utf-8")
        resp = HttpResponse(status=status, body=raw, headers=headers or {})
        self.responses.setdefault((method, url), []).append(resp)
        return self

    def request(self, method: str, url: str, *, headers: dict[str, str] | None = None,
                json_body: Any = None, timeout: int = 60) -> HttpResponse:
        self.requests.append(
            {"method": method, "url": url, "headers": headers or {}, "json": json_body}
        )
        queue = self.responses.get((method, url))
        if not queue:
            raise AssertionError(f"unexpected request: {method} {url}")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def iter_bytes(self, url: str, *, headers: dict[str, str] | None = None,
                   timeout: int = 60) -> Iterator[bytes]:
        self.requests.append({"method": "DOWNLOAD", "url": url, "headers": headers or {}})
        data = self.downloads.get(url)
        if data is None:
            raise AssertionError(f"unexpected download: {url}")
        if isinstance(data, BaseException):
            raise data
        yield from (data[i:i + 4] for i in range(0, len(data), 4))


# =========================================================================
# 拉取策略
# =========================================================================


class StubStrategy:
    """按名称返回预置的锁条目或抛出预置异常，记录调用次数"""

    def __init__(self, table: dict[str, Any] | None = None) -> None:
        self.table: dict[str, Any] = dict(table or {})
        self.calls: list[tuple[str, str | None]] = []

    def resolve(self, spec: SourceSpec, revision: str | None = None) -> LockEntry:
        self.calls.append((spec.name, revision))
        value = self.table[spec.name]
        if callable(value) and not isinstance(value, LockEntry):
            value = value(spec, revision)
        if isinstance(value, FetchError):
            raise value
        return value


def entry(spec: SourceSpec, revision: str, seed: str, **kw: Any) -> LockEntry:
    return LockEntry(name=spec.name, kind=spec.kind, revision=revision, hash=sri(seed), **kw)


def write_workspace(
    directory: Path, specs: list[SourceSpec], entries: list[LockEntry],
) -> tuple[SourceRegistry, LockfileStore]:
    registry = SourceRegistry(directory / "lon.yml")
    store = LockfileStore(directory / "lon.lock")
    registry.save({s.name: s for s in specs})
    store.write(Lockfile(entries={e.name: e for e in entries}))
    return registry, store


@pytest.fixture()
def executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture()
def http() -> FakeHttp:
    return FakeHttp()


@pytest.fixture()
def make_workspace(tmp_path: Path) -> Callable[..., tuple[SourceRegistry, LockfileStore]]:
    def _make(specs: list[SourceSpec], entries: list[LockEntry]):
        return write_workspace(tmp_path, specs, entries)
    return _make
