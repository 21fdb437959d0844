"""bot 编排器

状态机: Plan → (NoChanges | Stage → Publish → Done | Stage → PublishFailed)
只有 Publish 成功后才会写入任何本地文件。
"""

from __future__ import annotations

import logging

from lon.core.exceptions import ForgeError
from lon.services.bot.models import BotPlan, BotReport, BotState
from lon.services.bot.steps import BotSteps

logger = logging.getLogger(__name__)


class BotOrchestrator:
    def __init__(self, steps: BotSteps) -> None:
        self.steps = steps

    def run(self, plan: BotPlan) -> BotReport:
        report = BotReport(plan=plan)

        self.steps.plan(report)
        if report.state == BotState.NO_CHANGES:
            return report

        self.steps.stage(report)
        try:
            self.steps.publish(report)
        except ForgeError as e:
            report.state = BotState.PUBLISH_FAILED
            report.error = str(e)
            report.steps.append({"step": "publish", "status": "failed", "error": str(e)})
            logger.error("发布失败 [%s]: %s", e.code, e)
            return report

        self.steps.persist(report)
        return report
