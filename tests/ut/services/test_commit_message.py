"""提交信息渲染单元测试"""

from __future__ import annotations

import pytest

from conftest import SHA_A, SHA_B, SHA_C
from lon.core.models import BotChange, Commit
from lon.services.bot.commit_message import render_commit_message, split_message

D = "d" * 40


class TestRenderCommitMessage:
    def test_single(self) -> None:
        msg = render_commit_message([BotChange("nixpkgs", SHA_A, SHA_B)])
        assert msg == f"lon: update nixpkgs\n\n  {SHA_A}\n→ {SHA_B}\n"

    def test_single_with_commits(self) -> None:
        change = BotChange(
            "nixpkgs", SHA_A, SHA_B, list_commits=True,
            commits=[Commit(SHA_C, "fix: thing\n\nlong body"), Commit(D, "feat: other")],
        )
        assert render_commit_message([change]) == (
            "lon: update nixpkgs\n"
            "\n"
            f"  {SHA_A}\n"
            f"→ {SHA_B}\n"
            "\n"
            "Last 2 commits:\n"
            "  ccccccc fix: thing\n"
            "  ddddddd feat: other\n"
        )

    def test_multiple_sorted_by_name(self) -> None:
        changes = [
            BotChange("zlib", SHA_B, SHA_C),
            BotChange("alpha", SHA_A, SHA_B, list_commits=True, commits=[Commit(D, "chore: bump")]),
        ]
        assert render_commit_message(changes) == (
            "lon: update\n"
            "\n"
            "• alpha:\n"
            f"    {SHA_A}\n"
            f"  → {SHA_B}\n"
            "\n"
            "  Last 1 commits:\n"
            "    ddddddd chore: bump\n"
            "\n"
            "• zlib:\n"
            f"    {SHA_B}\n"
            f"  → {SHA_C}\n"
        )

    def test_listing_enabled_but_empty(self) -> None:
        change = BotChange("blob", "0" * 64, "1" * 64, list_commits=True, commits=[])
        assert "Last" not in render_commit_message([change])

    def test_commits_ignored_when_listing_disabled(self) -> None:
        change = BotChange("x", SHA_A, SHA_B, commits=[Commit(SHA_C, "subject")])
        assert "subject" not in render_commit_message([change])

    def test_empty(self) -> None:
        with pytest.raises(ValueError):
            render_commit_message([])


class TestSplitMessage:
    def test_title_and_body(self) -> None:
        title, body = split_message(f"lon: update x\n\n  {SHA_A}\n→ {SHA_B}\n")
        assert title == "lon: update x"
        assert body == f"  {SHA_A}\n→ {SHA_B}"

    def test_title_only(self) -> None:
        assert split_message("lon: update") == ("lon: update", "")
