"""YAML 读写与原子写入

lon.yml、lon.config.yml 通过此处读写；lon.lock 复用 atomic_write。
统一 utf-8 编码、空值保护、目录自动创建。
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

# 声明文件不会很大，超过此限制视为误用
MAX_YAML_SIZE = 10 * 1024 * 1024


def atomic_write(path: Path, content: str) -> None:
    """原子写入：同目录临时文件 + os.replace，中途崩溃不会损坏原文件"""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(dir=str(path.parent), prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
            f.write(content)
        os.replace(tmp, str(path))
    except BaseException:
        # 包括 KeyboardInterrupt：中断时同样不能留下临时文件
        try:
            os.unlink(tmp)
        except OSError:
            logger.debug("临时文件清理失败: %s", tmp)
        raise


def load_yaml(path: str | Path) -> dict[str, Any]:
    """读取 YAML 映射，文件不存在或为空时返回空字典

    Raises:
        ValueError: 文件过大或顶层不是映射
        yaml.YAMLError: 格式错误
    """
    p = Path(path)
    if not p.exists():
        return {}

    size = p.stat().st_size
    if size > MAX_YAML_SIZE:
        raise ValueError(f"YAML 文件过大: {p} ({size} 字节)")

    with open(p, encoding="utf-8") as f:
        try:
            result = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error("解析 YAML 文件失败: %s, 错误: %s", p, e)
            raise

    if result is None:
        return {}
    if not isinstance(result, dict):
        raise ValueError(f"{p} 顶层不是映射 (实际类型: {type(result).__name__})")
    return result


def dump_yaml(data: Any) -> str:
    return yaml.safe_dump(
        data, default_flow_style=False, allow_unicode=True, sort_keys=False,
    )


def save_yaml(path: str | Path, data: Any) -> None:
    """原子写入 YAML 文件，保持键顺序"""
    atomic_write(Path(path), dump_yaml(data))
