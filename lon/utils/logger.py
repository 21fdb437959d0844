"""lon 日志配置

普通文本与结构化 JSON 两种输出格式，统一输出到 stderr。
stdout 留给命令本身的输出（如 `lon update` 的变更列表）。
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone

LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class JSONFormatter(logging.Formatter):
    """一行一个 JSON 对象，便于 CI 日志采集

    字段: timestamp, level, logger, message, module, function, line,
    以及有异常时的 exception。
    """

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.fromtimestamp(
                record.created, tz=timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }
        if record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, ensure_ascii=False)


def resolve_level(
    verbose: bool = False, quiet: bool = False, default: str = "INFO",
) -> str:
    """命令行开关优先于环境变量: -v → DEBUG, -q → ERROR"""
    if verbose:
        return "DEBUG"
    if quiet:
        return "ERROR"
    level = default.upper()
    return level if level in LEVELS else "INFO"


def setup_logging(level: str = "INFO", json_output: bool = False) -> None:
    """配置根日志器

    参数:
        level: 日志级别字符串（DEBUG, INFO, WARNING, ERROR, CRITICAL）
        json_output: True 时输出 JSON（CI 环境），否则输出人类可读格式

    重复调用会先清理已有 handler，不会重复输出。
    """
    root = logging.getLogger()
    reset_logging()
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler(sys.stderr)
    if json_output:
        handler.setFormatter(JSONFormatter())
    else:
        fmt = "%(asctime)s [%(levelname)-7s] %(name)s: %(message)s"
        handler.setFormatter(logging.Formatter(fmt))
    root.addHandler(handler)


def reset_logging() -> None:
    """移除根日志器上的所有 handler（测试中重新配置时使用）"""
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
