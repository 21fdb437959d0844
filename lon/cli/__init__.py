"""lon 命令行接口

CLI 按领域拆分为子模块，每个模块注册自己的命令到 main group。
LonError 统一记录日志后以退出码 1 结束，中断以 130 结束。
"""

from __future__ import annotations

import logging
import os
from typing import Any

import click

from lon import __version__
from lon.core.config import Config
from lon.core.exceptions import LonError
from lon.services.container import ServiceContainer, init_container
from lon.utils.logger import resolve_level, setup_logging

logger = logging.getLogger(__name__)


def _svc() -> ServiceContainer:
    """当前命令的服务容器"""
    return click.get_current_context().find_object(ServiceContainer)


class LonGroup(click.Group):
    """把领域异常转换为退出码"""

    def invoke(self, ctx: click.Context) -> Any:
        try:
            return super().invoke(ctx)
        except LonError as e:
            logger.error("[%s] %s", e.code, e)
            for detail in getattr(e, "details", []):
                logger.error("  - %s", detail)
            ctx.exit(1)
        except KeyboardInterrupt:
            logger.error("已中断")
            ctx.exit(130)


@click.group(cls=LonGroup)
@click.version_option(version=__version__)
@click.option(
    "-d", "--directory", envvar="LON_DIRECTORY", default=".",
    type=click.Path(file_okay=False), help="工作目录（默认当前目录）",
)
@click.option("-v", "--verbose", is_flag=True, help="输出调试日志")
@click.option("-q", "--quiet", is_flag=True, help="只输出错误")
@click.pass_context
def main(ctx: click.Context, directory: str, verbose: bool, quiet: bool) -> None:
    """lon - 把 Git / GitHub / Tarball 源锁定到锁文件"""
    setup_logging(
        level=resolve_level(verbose, quiet, os.getenv("LON_LOG_LEVEL", "INFO")),
        json_output=os.getenv("LON_LOG_JSON", "") == "1",
    )
    if isinstance(ctx.obj, ServiceContainer):
        return
    ctx.obj = init_container(ServiceContainer(Config.from_file(directory)))


# 注册各领域子命令
from lon.cli.cmd_sources import register as _reg_sources  # noqa: E402
from lon.cli.cmd_bot import register as _reg_bot  # noqa: E402

_reg_sources(main)
_reg_bot(main)
