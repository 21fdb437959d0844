"""源声明文件（lon.yml）管理

职责:
- 加载 / 校验 / 保存 SourceSpec 集合（按名称排序写回）
- 校验声明与锁文件一一对应
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml

from lon.core.exceptions import ConfigError, ValidationError
from lon.core.models import Lockfile, SourceKind, SourceSpec
from lon.utils.yaml_io import load_yaml, save_yaml

logger = logging.getLogger(__name__)


class SourceRegistry:
    """源声明注册表 - lon.yml 的读写"""

    def __init__(self, path: Path) -> None:
        self.path = path

    def init(self) -> bool:
        """创建空声明文件，已存在时不覆盖，返回是否创建"""
        if self.path.exists():
            logger.info("声明文件已存在: %s", self.path)
            return False
        self.save({})
        logger.info("已创建声明文件: %s", self.path)
        return True

    def load(self) -> dict[str, SourceSpec]:
        """加载所有源声明，文件缺失视为空集合

        Raises:
            ConfigError: 文件格式错误或声明字段不完整
        """
        try:
            data = load_yaml(self.path)
        except (ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"声明文件无效: {self.path}: {e}") from e

        raw = data.get("sources") or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"{self.path}: sources 必须是映射")

        specs: dict[str, SourceSpec] = {}
        for name in sorted(raw, key=str):
            info = raw[name]
            if not isinstance(info, dict):
                raise ConfigError(f"{self.path}: 源 {name} 的声明必须是映射")
            try:
                spec = SourceSpec.from_dict(str(name), info)
            except ValidationError as e:
                raise ConfigError(f"{self.path}: 源 {name}: {e}") from e
            _check_spec(spec, self.path)
            specs[spec.name] = spec

        logger.debug("已加载 %d 个源声明", len(specs))
        return specs

    def save(self, specs: dict[str, SourceSpec]) -> None:
        payload: dict[str, Any] = {
            "sources": {name: specs[name].to_dict() for name in sorted(specs)},
        }
        save_yaml(self.path, payload)


def _check_spec(spec: SourceSpec, path: Path) -> None:
    missing = []
    if spec.kind == SourceKind.GITHUB:
        if not spec.owner:
            missing.append("owner")
        if not spec.repo:
            missing.append("repo")
    elif not spec.url:
        missing.append("url")
    if spec.kind != SourceKind.TARBALL and not spec.ref:
        missing.append("ref")
    if missing:
        raise ConfigError(f"{path}: 源 {spec.name} 缺少字段: {', '.join(missing)}")


def check_consistency(specs: dict[str, SourceSpec], lock: Lockfile) -> None:
    """声明与锁条目必须一一对应，不做自动修复

    Raises:
        ConfigError: 任一方存在另一方没有的名称，或类型不一致
    """
    declared = set(specs)
    locked = set(lock.entries)
    problems = []
    for name in sorted(declared - locked):
        problems.append(f"{name} 已声明但未锁定")
    for name in sorted(locked - declared):
        problems.append(f"{name} 已锁定但未声明")
    for name in sorted(declared & locked):
        if specs[name].kind != lock.entries[name].kind:
            problems.append(
                f"{name} 类型不一致: 声明 {specs[name].kind.value}, "
                f"锁定 {lock.entries[name].kind.value}"
            )
    if problems:
        raise ConfigError("声明文件与锁文件不一致: " + "; ".join(problems))
