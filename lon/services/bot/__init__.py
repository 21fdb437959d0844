"""bot 模块

- models.py: BotPlan / BotReport / BotState
- steps.py: plan / stage / publish / persist 四个步骤
- orchestrator.py: 状态机
- commit_message.py: 提交信息渲染
"""

from lon.services.bot.models import BotPlan, BotReport, BotState
from lon.services.bot.orchestrator import BotOrchestrator
from lon.services.bot.steps import BotSteps

__all__ = [
    "BotOrchestrator",
    "BotPlan",
    "BotReport",
    "BotState",
    "BotSteps",
]
