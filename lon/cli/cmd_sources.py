"""CLI — 源管理命令"""

from __future__ import annotations

import click

from lon.cli import _svc
from lon.core.models import SourceKind, SourceSpec, UpdateResult, UpdateStatus
from lon.services.source_service import parse_github_identifier


def register(group: click.Group) -> None:
    group.add_command(init)
    group.add_command(add)
    group.add_command(update)
    group.add_command(modify)
    group.add_command(remove)
    group.add_command(freeze)
    group.add_command(unfreeze)


def _echo_result(r: UpdateResult) -> None:
    if r.status == UpdateStatus.UPDATED:
        old = r.before.revision if r.before else "(无)"
        new = r.after.revision if r.after else ""
        click.echo(f"  {r.name:20s} {old[:12]} → {new[:12]}")
    elif r.status == UpdateStatus.SKIPPED:
        click.echo(f"  {r.name:20s} 跳过 ({r.reason})")
    elif r.status == UpdateStatus.FAILED:
        click.echo(f"  {r.name:20s} 失败: {r.reason}")
    else:
        click.echo(f"  {r.name:20s} 无变化")


@click.command()
@click.option("--from-niv", "from_niv", default=None, type=click.Path(dir_okay=False),
              help="从 niv 的 sources.json 导入")
def init(from_niv: str | None) -> None:
    """创建空的 lon.yml 与 lon.lock"""
    names = _svc().sources.init(from_niv)
    for name in names:
        click.echo(f"已导入: {name}")


# ---- add ----

@click.group()
def add() -> None:
    """添加新的源"""


@add.command(name="git")
@click.argument("name")
@click.argument("url")
@click.argument("ref")
@click.option("--revision", default=None, help="锁定指定提交（不解析 ref）")
@click.option("--submodules", is_flag=True, help="包含子模块")
@click.option("--frozen", is_flag=True, help="添加后立即冻结")
def add_git(
    name: str, url: str, ref: str, revision: str | None, submodules: bool, frozen: bool,
) -> None:
    """添加 git 仓库源"""
    spec = SourceSpec(
        name=name, kind=SourceKind.GIT, url=url, ref=ref,
        submodules=submodules, frozen=frozen,
    )
    entry = _svc().sources.add(spec, revision)
    click.echo(f"已添加 {name}@{entry.revision}")


@add.command(name="github")
@click.argument("identifier", metavar="OWNER/REPO")
@click.argument("ref")
@click.option("--name", default=None, help="源名称（默认为仓库名）")
@click.option("--revision", default=None, help="锁定指定提交（不解析 ref）")
@click.option("--frozen", is_flag=True, help="添加后立即冻结")
def add_github(
    identifier: str, ref: str, name: str | None, revision: str | None, frozen: bool,
) -> None:
    """添加 GitHub 仓库源"""
    owner, repo = parse_github_identifier(identifier)
    spec = SourceSpec(
        name=name or repo, kind=SourceKind.GITHUB, owner=owner, repo=repo,
        ref=ref, frozen=frozen,
    )
    entry = _svc().sources.add(spec, revision)
    click.echo(f"已添加 {spec.name}@{entry.revision}")


@add.command(name="tarball")
@click.argument("name")
@click.argument("url")
@click.option("--frozen", is_flag=True, help="添加后立即冻结")
def add_tarball(name: str, url: str, frozen: bool) -> None:
    """添加 tarball 源"""
    spec = SourceSpec(name=name, kind=SourceKind.TARBALL, url=url, frozen=frozen)
    entry = _svc().sources.add(spec)
    click.echo(f"已添加 {name} ({entry.hash})")


# ---- update / modify ----

@click.command()
@click.argument("names", nargs=-1)
@click.option("--force", is_flag=True, help="同时更新已冻结的源")
@click.option("--commit", is_flag=True, help="锁文件变化时创建本地提交")
@click.pass_context
def update(ctx: click.Context, names: tuple[str, ...], force: bool, commit: bool) -> None:
    """更新源（不指定名称则更新全部）"""
    outcome = _svc().sources.update(list(names) or None, force=force, commit=commit)
    for r in outcome.results:
        _echo_result(r)
    if outcome.commit:
        click.echo(f"已提交: {outcome.commit[:7]}")
    if outcome.failed:
        click.echo(f"{len(outcome.failed)} 个源更新失败", err=True)
        ctx.exit(1)


@click.command()
@click.argument("name")
@click.option("--ref", default=None, help="新的分支或标签")
@click.option("--revision", default=None, help="锁定指定提交")
def modify(name: str, ref: str | None, revision: str | None) -> None:
    """修改源的 ref 或锁定的修订"""
    if ref is None and revision is None:
        raise click.UsageError("至少需要 --ref 或 --revision 之一")
    _echo_result(_svc().sources.modify(name, ref=ref, revision=revision))


# ---- remove / freeze ----

@click.command()
@click.argument("name")
def remove(name: str) -> None:
    """移除源（声明与锁条目）"""
    _svc().sources.remove(name)
    click.echo(f"已移除: {name}")


@click.command()
@click.argument("name")
def freeze(name: str) -> None:
    """冻结源，update 时跳过"""
    if _svc().sources.freeze(name):
        click.echo(f"已冻结: {name}")


@click.command()
@click.argument("name")
def unfreeze(name: str) -> None:
    """解冻源"""
    if _svc().sources.unfreeze(name):
        click.echo(f"已解冻: {name}")
