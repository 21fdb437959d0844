"""bot 数据模型

- BotState: 状态机终态
- BotPlan: 本次运行的参数
- BotReport: 运行报告（每步追加一条 steps 记录）
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from lon.core.models import BotChange, Lockfile, SourceSpec, UpdateResult

UPDATE_BRANCH = "lon/update"


class BotState(str, Enum):
    PENDING = "pending"
    NO_CHANGES = "no_changes"
    DONE = "done"
    PUBLISH_FAILED = "publish_failed"


@dataclass
class BotPlan:
    forge: str
    branch: str = UPDATE_BRANCH
    labels: tuple[str, ...] = ()
    list_commits: int | None = None   # None 表示不列出提交


@dataclass
class BotReport:
    plan: BotPlan
    state: BotState = BotState.PENDING
    specs: dict[str, SourceSpec] = field(default_factory=dict)
    base_lock: Lockfile | None = None
    results: list[UpdateResult] = field(default_factory=list)
    changes: list[BotChange] = field(default_factory=list)
    candidate: Lockfile | None = None
    content: str = ""
    message: str = ""
    commit: str = ""
    request_url: str = ""
    error: str = ""
    steps: list[dict[str, Any]] = field(default_factory=list)

    @property
    def failed_sources(self) -> list[str]:
        return [r.name for r in self.results if r.failed]

    @property
    def exit_code(self) -> int:
        if self.state == BotState.PUBLISH_FAILED or self.failed_sources:
            return 1
        return 0
