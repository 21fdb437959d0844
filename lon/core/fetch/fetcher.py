"""拉取入口 - 按 SourceSpec.kind 分发到对应策略"""

from __future__ import annotations

import logging
from typing import Protocol

from lon.core.exceptions import FetchError
from lon.core.models import LockEntry, SourceKind, SourceSpec

logger = logging.getLogger(__name__)


class FetchStrategy(Protocol):
    def resolve(self, spec: SourceSpec, revision: str | None = None) -> LockEntry:
        ...


class Fetcher:
    """源 → 锁条目

    revision 给定时跳过引用解析，直接锁定该修订（tarball 忽略）。
    抛出的 FetchError 总是带上源名称。
    """

    def __init__(self, strategies: dict[SourceKind, FetchStrategy]) -> None:
        self.strategies = strategies

    def resolve(self, spec: SourceSpec, revision: str | None = None) -> LockEntry:
        strategy = self.strategies.get(spec.kind)
        if strategy is None:
            raise FetchError(f"没有可用的拉取策略: {spec.kind.value}", name=spec.name)
        try:
            return strategy.resolve(spec, revision)
        except FetchError as e:
            if not e.name:
                e.name = spec.name
            raise
