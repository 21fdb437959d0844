"""提交信息渲染

单个源:
    lon: update <name>

      <旧修订>
    → <新修订>

    Last N commits:
      <短修订> <标题>

多个源时标题为 "lon: update"，每个源一个 "• <name>:" 块，缩进整体加深两格。
提交列表块只在配置了列表且至少有一个提交时出现。
"""

from __future__ import annotations

from lon.core.models import BotChange

TITLE_PREFIX = "lon: update"


def _commit_list(change: BotChange, indent: int) -> list[str]:
    if not change.list_commits or not change.commits:
        return []
    prefix = " " * indent
    lines = ["", f"{prefix}Last {len(change.commits)} commits:"]
    lines.extend(f"{prefix}  {c.short} {c.summary}" for c in change.commits)
    return lines


def render_commit_message(changes: list[BotChange]) -> str:
    if not changes:
        raise ValueError("没有变更，无法生成提交信息")

    ordered = sorted(changes, key=lambda c: c.name)
    if len(ordered) == 1:
        change = ordered[0]
        lines = [
            f"{TITLE_PREFIX} {change.name}",
            "",
            f"  {change.old_revision}",
            f"→ {change.new_revision}",
        ]
        lines.extend(_commit_list(change, 0))
    else:
        lines = [TITLE_PREFIX]
        for change in ordered:
            lines.extend([
                "",
                f"• {change.name}:",
                f"    {change.old_revision}",
                f"  → {change.new_revision}",
            ])
            lines.extend(_commit_list(change, 2))
    return "\n".join(lines) + "\n"


def split_message(message: str) -> tuple[str, str]:
    """提交信息 → (标题, 正文)，用作 PR/MR 的标题和描述"""
    title, _, body = message.partition("\n")
    return title, body.strip("\n")
