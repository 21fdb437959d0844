"""niv sources.json 导入

带 owner 的条目转为 github 源，其余转为 git 源（repo 字段即仓库地址），
每个源锁定在 niv 记录的 rev 上。
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path

from lon.core.exceptions import ConfigError
from lon.core.models import SourceKind, SourceSpec

logger = logging.getLogger(__name__)


@dataclass
class NivImport:
    spec: SourceSpec
    revision: str


def load_niv(path: str | Path) -> list[NivImport]:
    """读取 niv 锁文件，按名称排序返回待导入的源

    Raises:
        ConfigError: 文件不可读、不是 JSON 对象或条目缺少 repo/branch/rev
    """
    p = Path(path)
    try:
        data = json.loads(p.read_text(encoding="utf-8"))
    except OSError as e:
        raise ConfigError(f"无法读取 niv 锁文件 {p}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"niv 锁文件不是合法的 JSON: {p}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"niv 锁文件顶层必须是对象: {p}")

    imports = []
    for name in sorted(data):
        package = data[name]
        if not isinstance(package, dict):
            raise ConfigError(f"niv 条目 {name} 必须是对象")
        missing = [k for k in ("repo", "branch", "rev") if not package.get(k)]
        if missing:
            raise ConfigError(f"niv 条目 {name} 缺少字段: {', '.join(missing)}")

        logger.info("转换 %s ...", name)
        owner = package.get("owner")
        if owner:
            spec = SourceSpec(
                name=name, kind=SourceKind.GITHUB,
                owner=str(owner), repo=str(package["repo"]), ref=str(package["branch"]),
            )
        else:
            spec = SourceSpec(
                name=name, kind=SourceKind.GIT,
                url=str(package["repo"]), ref=str(package["branch"]),
            )
        imports.append(NivImport(spec=spec, revision=str(package["rev"])))
    return imports
