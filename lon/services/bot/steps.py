"""bot 步骤实现

步骤顺序：
1. plan - 对所有未冻结的源执行更新检查
2. stage - 在内存中生成候选锁文件
3. publish - 建分支、提交、推送、开启或更新 PR/MR（严格串行）
4. persist - 发布成功后写回工作区锁文件
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from lon.core.engine import UpdateEngine
    from lon.core.lockfile import LockfileStore
    from lon.services.bot.models import BotReport
    from lon.services.forge.base import ForgeClient

from lon.core.engine import apply_results
from lon.core.exceptions import ValidationError
from lon.core.lockfile import serialize_lockfile
from lon.core.models import BotChange
from lon.services.bot.commit_message import render_commit_message, split_message
from lon.services.bot.models import BotState

logger = logging.getLogger(__name__)


class BotSteps:
    """bot 步骤集合"""

    def __init__(
        self, engine: UpdateEngine, store: LockfileStore, forge: ForgeClient,
    ) -> None:
        self.engine = engine
        self.store = store
        self.forge = forge

    def plan(self, report: BotReport) -> None:
        """步骤1: 检查更新，没有 Updated 结果时终止于 NO_CHANGES"""
        specs, lock = self.engine.load()
        report.specs = specs
        report.base_lock = lock
        report.results = self.engine.run([specs[n] for n in sorted(specs)], lock, force=False)

        for result in report.results:
            if result.failed:
                logger.error("源 %s 更新失败，不计入本次变更: %s", result.name, result.reason)

        updated = [r for r in report.results if r.updated]
        report.steps.append({
            "step": "plan", "status": "done",
            "updated": [r.name for r in updated],
            "failed": report.failed_sources,
        })
        logger.info("[Step 1] 检查完成: %d 个源有更新", len(updated))
        if not updated:
            report.state = BotState.NO_CHANGES
            logger.info("没有可用的更新")

    def stage(self, report: BotReport) -> None:
        """步骤2: 生成候选锁文件，只存在于内存中"""
        if report.base_lock is None:
            raise ValidationError("尚未执行 plan 步骤")
        report.candidate = apply_results(report.base_lock, report.results)
        report.content = serialize_lockfile(report.candidate)
        report.changes = [BotChange.from_result(r) for r in report.results if r.updated]
        report.steps.append({
            "step": "stage", "status": "done",
            "changes": [c.name for c in report.changes],
        })
        logger.info("[Step 2] 候选锁文件已生成: %d 个变更", len(report.changes))

    def publish(self, report: BotReport) -> None:
        """步骤3: 分支 → 提交列表 → 提交推送 → PR/MR"""
        plan = report.plan
        self.forge.create_or_update_branch(plan.branch)

        if plan.list_commits is not None:
            for change in report.changes:
                change.list_commits = True
                change.commits = list(self.forge.list_commits_between(
                    report.specs[change.name],
                    change.old_revision, change.new_revision, plan.list_commits,
                ))

        report.message = render_commit_message(report.changes)
        report.commit = self.forge.commit_and_push(report.message, report.content)

        title, body = split_message(report.message)
        report.request_url = self.forge.open_or_update_request(title, body, plan.labels)
        report.state = BotState.DONE
        report.steps.append({
            "step": "publish", "status": "done",
            "branch": plan.branch, "commit": report.commit, "url": report.request_url,
        })
        logger.info("[Step 3] 已发布: %s", report.request_url)

    def persist(self, report: BotReport) -> None:
        """步骤4: 发布成功后把已发布的内容写回工作区"""
        if report.candidate is None:
            raise ValidationError("尚未执行 stage 步骤")
        written = self.store.write(report.candidate)
        report.steps.append({"step": "persist", "status": "done", "written": written})
        logger.info("[Step 4] 工作区锁文件已同步")
