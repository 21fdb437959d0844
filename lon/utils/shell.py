"""子进程执行工具

通过 CommandExecutor 协议抽象子进程调用（git、nix 等外部工具），
测试时注入脚本化的假实现，无需 patch subprocess。
"""

from __future__ import annotations

import logging
import os
import shlex
import subprocess
from dataclasses import dataclass
from typing import Protocol

from lon.core.exceptions import LonError

logger = logging.getLogger(__name__)


# =========================================================================
# 命令执行结果
# =========================================================================

@dataclass
class CommandResult:
    """命令执行结果（与 subprocess 解耦）"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def success(self) -> bool:
        return self.returncode == 0


# =========================================================================
# 命令执行器协议
# =========================================================================

class CommandExecutor(Protocol):
    """命令执行器协议

    env 为在当前进程环境之上追加的变量；超时抛出 subprocess.TimeoutExpired。
    """

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        input: str | None = None,
    ) -> CommandResult:
        ...


class LocalExecutor:
    """本地子进程执行器（默认实现）"""

    def execute(
        self,
        cmd: str | list[str],
        *,
        cwd: str = ".",
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        input: str | None = None,
    ) -> CommandResult:
        args = shlex.split(cmd) if isinstance(cmd, str) else cmd
        full_env = {**os.environ, **env} if env else None
        r = subprocess.run(
            args, capture_output=True, text=True, input=input,
            cwd=cwd, env=full_env, check=False, timeout=timeout,
        )
        return CommandResult(
            returncode=r.returncode,
            stdout=r.stdout,
            stderr=r.stderr,
        )


# =========================================================================
# 全局默认执行器
# =========================================================================

_default_executor: CommandExecutor = LocalExecutor()


def get_executor() -> CommandExecutor:
    return _default_executor


# =========================================================================
# 便捷函数
# =========================================================================

def run_cmd(
    args: list[str],
    *,
    executor: CommandExecutor | None = None,
    cwd: str = ".",
    env: dict[str, str] | None = None,
    timeout: int | None = None,
    input: str | None = None,
    label: str = "cmd",
    error: type[LonError] = LonError,
) -> CommandResult:
    """执行命令，非零退出或超时时抛出 error 指定的异常类型

    Args:
        args: 参数列表（不经过 shell）
        label: 日志与错误信息中的标签，不应包含凭据
        error: 失败时抛出的 LonError 子类，由调用方按所处边界选择
    """
    runner = executor or get_executor()
    logger.debug("  %s: %s (cwd=%s)", label, args[:2], cwd)
    try:
        r = runner.execute(args, cwd=cwd, env=env, timeout=timeout, input=input)
    except subprocess.TimeoutExpired:
        raise error(f"{label} 超时 ({timeout}s)") from None
    except FileNotFoundError as e:
        raise error(f"{label} 无法执行: {e.filename} 未安装") from e
    if not r.success:
        raise error(f"{label} 失败 (rc={r.returncode}): {r.stderr.strip()[:500]}")
    return r
