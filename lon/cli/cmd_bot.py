"""CLI — bot 命令"""

from __future__ import annotations

import click

from lon.cli import _svc
from lon.core.config import FORGES
from lon.services.bot import BotState


def register(group: click.Group) -> None:
    group.add_command(bot)


@click.command()
@click.argument("forge", type=click.Choice(FORGES))
@click.pass_context
def bot(ctx: click.Context, forge: str) -> None:
    """检查更新并在托管平台上开启 / 更新 PR (MR)"""
    svc = _svc()
    plan, bot_settings, forge_settings = svc.bot_plan(forge)
    report = svc.bot(bot_settings, forge_settings).run(plan)

    if report.state == BotState.NO_CHANGES:
        click.echo("没有可用的更新")
    elif report.state == BotState.DONE:
        click.echo(report.request_url)
    else:
        click.echo(f"发布失败: {report.error}", err=True)
    if report.failed_sources:
        click.echo(f"更新失败的源: {', '.join(report.failed_sources)}", err=True)
    ctx.exit(report.exit_code)
