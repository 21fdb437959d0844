"""本地路径覆盖

LON_OVERRIDE_<name>=<path> 在本次调用内用本地路径替代该源的拉取结果。
名称不做任何转义或清洗，使用特殊字符的名称由调用方自行承担风险。
覆盖只存在于内存中，从不写入锁文件。
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

logger = logging.getLogger(__name__)

OVERRIDE_PREFIX = "LON_OVERRIDE_"


class OverrideResolver:
    """名称 → 本地路径的只读映射"""

    def __init__(self, overrides: Mapping[str, str] | None = None) -> None:
        self._overrides = dict(overrides or {})

    @classmethod
    def from_env(cls, environ: Mapping[str, str]) -> OverrideResolver:
        overrides = {
            key[len(OVERRIDE_PREFIX):]: value
            for key, value in environ.items()
            if key.startswith(OVERRIDE_PREFIX) and len(key) > len(OVERRIDE_PREFIX) and value
        }
        for name, path in sorted(overrides.items()):
            logger.info("源 %s 使用本地覆盖: %s", name, path)
        return cls(overrides)

    def lookup(self, name: str) -> str | None:
        return self._overrides.get(name)

    def names(self) -> list[str]:
        return sorted(self._overrides)

    def __bool__(self) -> bool:
        return bool(self._overrides)
